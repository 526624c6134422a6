"""Rendering — turns App state into a rich renderable."""

from __future__ import annotations

from rich.console import Group, RenderableType
from rich.layout import Layout
from rich.table import Table
from rich.text import Text

from scd.app import App, Focus
from scd.models import Exited, Running, Stopped, Task
from scd.modes import Ask, Edit, Message, Normal
from scd.sysmon import Snapshot, format_uptime

PROMPT_STYLE = "bright_yellow"
VALUE_STYLE = "bold bright_cyan"
SYSMON_ROWS = 3

_UNITS = [
    (1024**4, "T"),
    (1024**3, "G"),
    (1024**2, "M"),
    (1024, "K"),
    (1, "B"),
]


def format_size(size: int) -> str:
    """Human readable size, e.g. 1.5K."""
    for div, unit in _UNITS:
        if size >= div:
            return f"{size / div:.1f}{unit}"
    return "0B"


def task_status(task: Task) -> Text:
    status = task.status
    if isinstance(status, Running):
        return Text(status.text, style="white")
    if isinstance(status, Stopped):
        return Text("⏸ stopped", style="bright_yellow")
    assert isinstance(status, Exited)
    if status.success:
        return Text("✓", style="bright_cyan")
    return Text(f"✗ {status.code}", style="bright_red")


def render_files(app: App, height: int) -> RenderableType:
    files = app.files
    lines: list[Text] = []
    selected = files.selected_index
    # Keep the selection on screen
    offset = 0
    if selected is not None and height > 0 and selected >= height:
        offset = selected - height + 1
    for i, f in enumerate(files.files[offset : offset + max(height, 0)], start=offset):
        if f.is_dir:
            style = "blue"
        elif f.is_executable:
            style = "green"
        else:
            style = "white"
        mark = "+" if f.path in files.marked else " "
        line = Text(f"{mark} {f.name}{f.marker}", style=style)
        if i == selected and app.focus == Focus.FILES:
            line.stylize("black on blue")
        lines.append(line)
    return Group(*lines)


def render_tasks(app: App) -> RenderableType:
    table = Table(expand=True, box=None, show_edge=False, pad_edge=False)
    table.add_column("Task", ratio=1, no_wrap=True, overflow="ellipsis")
    table.add_column("Status", justify="right", no_wrap=True)
    for i, task in enumerate(app.tasks.tasks):
        selected = app.focus == Focus.TASKS and i == app.task_index
        prefix = Text("> ", style="blue") if selected else Text("  ")
        table.add_row(prefix + Text(task.display), task_status(task))
    return table


def render_status(app: App) -> RenderableType:
    mode = app.modes.mode
    if isinstance(mode, Message):
        return Text(mode.text, style=PROMPT_STYLE)
    if isinstance(mode, Ask):
        return Text(mode.prompt, style=PROMPT_STYLE)
    if isinstance(mode, Edit):
        before, after = mode.text[: mode.cursor], mode.text[mode.cursor :]
        return Text.assemble(
            (mode.prompt, PROMPT_STYLE),
            (before, "bright_cyan"),
            (after[:1] or " ", "reverse"),
            (after[1:], "bright_cyan"),
        )
    assert isinstance(mode, Normal)

    grid = Table.grid(expand=True)
    grid.add_column()
    grid.add_column(justify="right")
    left = Text()
    file = app.files.selected()
    if file is not None:
        left.append(file.permissions, style="bright_green")
        left.append(f" {format_size(file.size)}")
    right = ""
    if app.files.marked:
        right = f"M:{len(app.files.marked)} "
    position = 0 if app.files.selected_index is None else app.files.selected_index + 1
    right += f"{position}/{len(app.files.files)}"
    if not app.bridge.attached:
        right += " [no shell]"
    grid.add_row(left, Text(right))
    return grid


def meter(label: str, percent: int, width: int = 30) -> Text:
    """A one-line bar like ``CPU    ■■■■■■■■■■■■          45%``."""
    if not 0 <= percent <= 100:
        percent = 0
    filled = width * percent // 100
    return Text.assemble(
        (f"{label:<7}", ""),
        ("■" * filled, VALUE_STYLE),
        ("■" * (width - filled), "bright_black"),
        (f" {percent:>3}%", VALUE_STYLE),
    )


def render_sysmon(snapshot: Snapshot) -> RenderableType:
    load = " ".join(f"{x:.2f}" for x in snapshot.load)
    header = Text.assemble(
        ("LA ", ""),
        (load, VALUE_STYLE),
        ("  UP ", ""),
        (format_uptime(snapshot.uptime), VALUE_STYLE),
    )
    return Group(
        header,
        meter("CPU", snapshot.cpu_percent),
        meter("Memory", snapshot.memory_percent),
    )


def render(app: App, height: int) -> RenderableType:
    layout = Layout()
    task_rows = len(app.tasks.tasks)
    show_sysmon = app.sysmon is not None and app.config.ui.show_sysmon
    reserved = 2 + (task_rows + 1 if task_rows else 0) + (SYSMON_ROWS if show_sysmon else 0)
    parts = [Layout(Text(str(app.files.dir), style="underline"), name="header", size=1)]
    parts.append(Layout(render_files(app, max(height - reserved, 0)), name="files"))
    if task_rows:
        parts.append(Layout(render_tasks(app), name="tasks", size=task_rows + 1))
    if show_sysmon:
        parts.append(Layout(render_sysmon(app.sysmon.snapshot), name="sysmon", size=SYSMON_ROWS))
    parts.append(Layout(render_status(app), name="status", size=1))
    layout.split_column(*parts)
    return layout
