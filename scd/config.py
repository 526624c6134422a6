"""Configuration management for scd."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel, Field


SCD_DIR = Path.home() / ".config" / "scd"
CONFIG_FILE = SCD_DIR / "config.yaml"
LOG_DIR = SCD_DIR / "logs"

# Shell integration scripts shipped with the package
SHELL_SCRIPTS_DIR = Path(__file__).parent / "shell"


class BridgeConfig(BaseModel):
    """Shell bridge settings."""

    events_path: str = "/tmp/scd-shell-events"
    commands_path: str = "/tmp/scd-cmds-to-run"
    wake_signal: str = "SIGUSR1"
    deinit_timeout_seconds: float = 1.0
    # Shell-side retry window while scd reopens events-out between reads
    send_attempts: int = 40
    send_interval_seconds: float = 0.05


class UIConfig(BaseModel):
    """Terminal UI settings."""

    tick_seconds: float = 2.0
    message_seconds: float = 4.0
    show_hidden: bool = False
    show_sysmon: bool = True


class TaskConfig(BaseModel):
    """Background task settings."""

    shell: str | None = None  # Falls back to $SHELL, then "sh"

    def resolve_shell(self) -> str:
        return self.shell or os.environ.get("SHELL") or "sh"


class ScdConfig(BaseModel):
    """Root configuration model."""

    bridge: BridgeConfig = Field(default_factory=BridgeConfig)
    ui: UIConfig = Field(default_factory=UIConfig)
    tasks: TaskConfig = Field(default_factory=TaskConfig)
    default_opener: str = "xdg-open"
    # "png, jpg": "feh": comma-separated extensions mapped to an opener
    open_methods: dict[str, str] = Field(default_factory=dict)

    def opener_for(self, path: Path) -> str:
        """Pick the command used to open a file, by extension."""
        ext = path.suffix.lstrip(".")
        if ext:
            for exts, cmd in self.open_methods.items():
                if ext in (e.strip() for e in exts.split(",")):
                    return cmd
        return self.default_opener


def ensure_dirs() -> None:
    """Create scd directories if they don't exist."""
    SCD_DIR.mkdir(parents=True, exist_ok=True)
    LOG_DIR.mkdir(parents=True, exist_ok=True)


def load_config() -> ScdConfig:
    """Load configuration from ~/.config/scd/config.yaml, falling back to defaults."""
    if CONFIG_FILE.exists():
        with open(CONFIG_FILE) as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
        return ScdConfig(**raw)
    return ScdConfig()


def save_default_config() -> Path:
    """Write default config to ~/.config/scd/config.yaml."""
    ensure_dirs()
    config = ScdConfig()
    with open(CONFIG_FILE, "w") as f:
        yaml.dump(config.model_dump(), f, default_flow_style=False, sort_keys=False)
    return CONFIG_FILE


def setup_logging(verbose: bool = False) -> Path:
    """
    Route loguru output to a file under LOG_DIR.

    The UI owns the terminal, so nothing may be written to stderr while
    it runs. The shell-side subcommands share the same sink.
    """
    ensure_dirs()
    log_file = LOG_DIR / "scd.log"
    logger.remove()
    logger.add(
        log_file,
        level="DEBUG" if verbose else "INFO",
        rotation="1 MB",
        retention=3,
        enqueue=True,
    )
    return log_file
