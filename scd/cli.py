"""scd CLI — command-line interface."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from scd import __version__

app = typer.Typer(
    name="scd",
    help="A terminal file manager that drives your interactive shell.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

SHELLS = ("zsh", "fish")


def version_callback(value: bool):
    if value:
        console.print(f"[bold cyan]scd[/bold cyan] v{__version__}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    directory: Optional[Path] = typer.Option(
        None,
        "--dir",
        "-d",
        help="Directory to start in (defaults to the current one).",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Log debug output."),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
):
    """Browse files; directory changes and file operations go through your shell."""
    from scd.config import setup_logging

    setup_logging(verbose)
    if ctx.invoked_subcommand is not None:
        return

    from scd.config import load_config
    from scd.errors import BridgeError
    from scd.ui import run_ui

    config = load_config()
    start = (directory or Path.cwd()).resolve()
    try:
        run_ui(start, config, console)
    except BridgeError as e:
        err_console.print(f"[red]✗[/red] {e}")
        raise typer.Exit(1)


# ── Shell-side commands ─────────────────────────────────────
# Run by the shell integration, not by hand.


@app.command("send-pid")
def send_pid(pid: int = typer.Argument(..., help="The shell's pid.")):
    """Announce the shell to scd. Blocks until scd is listening."""
    from scd.bridge import send_event
    from scd.config import load_config
    from scd.models import ProcessStarted

    send_event(ProcessStarted(pid=pid), load_config().bridge, wait=True)


@app.command("cd")
def cd(path: Path = typer.Argument(..., help="The shell's new working directory.")):
    """Tell scd the shell changed directory."""
    from scd.bridge import send_event
    from scd.config import load_config
    from scd.models import DirectoryChanged

    send_event(DirectoryChanged(path=path.resolve()), load_config().bridge)


@app.command("exit")
def exit_():
    """Tell scd the shell is exiting."""
    from scd.bridge import send_event
    from scd.config import load_config
    from scd.models import ProcessExited

    send_event(ProcessExited(), load_config().bridge)


@app.command("task")
def task(
    command: list[str] = typer.Argument(..., help="Command to run as a background task."),
    display: Optional[str] = typer.Option(
        None, "--display", help="Text shown in the task list instead of the command."
    ),
):
    """
    Run a command as a monitored task in scd.

    Usage:
        scd task -- curl -O https://example.com/big.iso
    """
    from scd.bridge import send_event
    from scd.config import load_config
    from scd.models import RunTask

    text = " ".join(command)
    if not send_event(RunTask(command=text, display=display or ""), load_config().bridge):
        err_console.print("[yellow]scd is not running; task not started.[/yellow]")
        raise typer.Exit(1)


@app.command("get-cmd")
def get_cmd():
    """Print the next command scd wants the shell to evaluate."""
    from scd.bridge import receive_command
    from scd.config import load_config

    typer.echo(receive_command(load_config().bridge))


@app.command("init")
def init(shell: str = typer.Argument(..., help="Shell to integrate with: zsh or fish.")):
    """
    Print the shell integration script.

    Usage:
        eval "$(scd init zsh)"        # ~/.zshrc
        scd init fish | source        # ~/.config/fish/config.fish
    """
    from scd.config import SHELL_SCRIPTS_DIR

    if shell not in SHELLS:
        err_console.print(f"[red]✗[/red] Unsupported shell '{shell}' (choose: {', '.join(SHELLS)})")
        raise typer.Exit(1)
    typer.echo((SHELL_SCRIPTS_DIR / f"scd.{shell}").read_text(), nl=False)


# ── Config Commands ─────────────────────────────────────────


config_app = typer.Typer(help="Manage scd configuration.")
app.add_typer(config_app, name="config")


@config_app.command("init")
def config_init():
    """Create the default configuration file."""
    from scd.config import CONFIG_FILE, ensure_dirs, save_default_config

    ensure_dirs()

    if CONFIG_FILE.exists():
        console.print(f"[yellow]Config already exists:[/yellow] {CONFIG_FILE}")
    else:
        path = save_default_config()
        console.print(f"[green]✓[/green] Created config: {path}")


@config_app.command("show")
def config_show():
    """Show current configuration."""
    from scd.config import load_config

    config = load_config()
    console.print_json(data=config.model_dump())


if __name__ == "__main__":
    app()
