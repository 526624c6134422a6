"""App — the single consumer that owns and mutates all UI state."""

from __future__ import annotations

import signal
from enum import Enum

from loguru import logger

from scd.bridge import ShellBridge
from scd.config import ScdConfig
from scd.errors import ScdError
from scd.events import Event, FilesChanged, KeyPressed, ShellMessage, Tick, TaskUpdate
from scd.files import FileManager
from scd.models import DirectoryChanged, ProcessExited, ProcessStarted, RunTask, ShellEvent, Task
from scd.modes import (
    ModeEngine,
    PendingAction,
    PendingDelete,
    PendingFilter,
    PendingNewTask,
    PendingRename,
    PendingSignal,
    Trigger,
)
from scd.sysmon import SystemMonitor
from scd.tasks import TaskSupervisor


class Focus(str, Enum):
    FILES = "files"
    TASKS = "tasks"


class App:
    """
    Routes every multiplexed event to the component that owns it.

    Only the consumer thread calls into an App, so nothing here is locked.
    """

    def __init__(
        self,
        files: FileManager,
        bridge: ShellBridge,
        tasks: TaskSupervisor,
        config: ScdConfig | None = None,
        sysmon: SystemMonitor | None = None,
    ):
        self.config = config or ScdConfig()
        self.files = files
        self.bridge = bridge
        self.tasks = tasks
        self.modes = ModeEngine(self, self.config.ui.message_seconds)
        self.focus = Focus.FILES
        self.task_index: int | None = None
        self.sysmon = sysmon
        self.running = True

    # ── Event routing ───────────────────────────────────────

    def handle(self, event: Event) -> None:
        """Apply one event. Recoverable errors become a status-bar message."""
        try:
            if isinstance(event, KeyPressed):
                self.on_key(event.key)
            elif isinstance(event, Tick):
                self.modes.on_tick(event.timestamp)
                if self.sysmon is not None:
                    self.sysmon.refresh()
            elif isinstance(event, FilesChanged):
                self.files.on_notify(event.kind)
            elif isinstance(event, ShellMessage):
                self.on_shell_event(event.event)
            elif isinstance(event, TaskUpdate):
                self.tasks.on_event(event.pid, event.event)
                self._clamp_task_index()
        except (ScdError, OSError) as e:
            logger.warning(f"[app] {type(e).__name__}: {e}")
            self.modes.show_message(str(e))

    def on_shell_event(self, event: ShellEvent) -> None:
        if isinstance(event, ProcessStarted):
            self.modes.show_message(f"Shell attached (pid {event.pid})")
        elif isinstance(event, DirectoryChanged):
            self.files.cd(event.path)
        elif isinstance(event, ProcessExited):
            logger.info("[app] shell exited, quitting")
            self.running = False
        elif isinstance(event, RunTask):
            self.start_task(event.command, event.display_text())

    def on_key(self, key: str) -> None:
        if not self.modes.is_normal:
            key = self.modes.on_key(key)
            if key is None:
                return
        if key == "q":
            self.running = False
        elif key == "tab":
            self.focus = Focus.TASKS if self.focus == Focus.FILES else Focus.FILES
            self._clamp_task_index()
        elif key == "!":
            self.modes.edit("Task: ", PendingNewTask())
        elif self.focus == Focus.TASKS:
            self.on_task_key(key)
        else:
            self.on_file_key(key)

    # ── Files ───────────────────────────────────────────────

    def on_file_key(self, key: str) -> None:
        files = self.files
        if key in ("j", "down"):
            files.select_next()
        elif key in ("k", "up"):
            files.select_prev()
        elif key in ("g", "home"):
            files.select_first()
        elif key in ("G", "end"):
            files.select_last()
        elif key in ("l", "enter"):
            self.open_selected()
        elif key in ("h", "esc"):
            self.go_parent()
        elif key == ".":
            files.toggle_hidden()
        elif key == " ":
            files.toggle_mark()
        elif key == "p":
            self.paste_marked("cp -r {} .")
        elif key == "m":
            self.paste_marked("mv {} .")
        elif key == "d":
            file = files.selected()
            if file is not None:
                kind = "directory" if file.is_dir else "file"
                self.modes.ask(
                    f"Delete {kind} {file.name}? [y/N]",
                    PendingDelete(file.path, file.name, file.is_dir),
                )
        elif key == "r":
            file = files.selected()
            if file is not None:
                self.modes.edit("Rename: ", PendingRename(file.path), file.name)
        elif key == "/":
            self.modes.edit("/", PendingFilter(), files.filter)

    def open_selected(self) -> None:
        file = self.files.selected()
        if file is None:
            return
        if file.is_dir:
            self.files.cd(file.path)
            self.bridge.cd(file.path)
        else:
            self.bridge.open(file.path, self.config.opener_for(file.path))

    def go_parent(self) -> None:
        current = self.files.dir
        parent = current.parent
        if parent == current:
            return
        self.files.cd(parent)
        self.files.select_name(current.name)
        self.bridge.cd(parent)

    def paste_marked(self, template: str) -> None:
        if not self.files.marked:
            self.modes.show_message("No files marked")
            return
        marked = self.files.take_marked()
        self.bridge.run(template, [str(p) for p in marked], echo=True)

    # ── Tasks ───────────────────────────────────────────────

    def start_task(self, command: str, display: str = "") -> None:
        self.tasks.spawn(command, display)
        self.task_index = 0

    def selected_task(self) -> Task | None:
        if self.task_index is None or self.task_index >= len(self.tasks.tasks):
            return None
        return self.tasks.tasks[self.task_index]

    def _clamp_task_index(self) -> None:
        count = len(self.tasks.tasks)
        if count == 0:
            self.task_index = None
        elif self.task_index is None or self.task_index >= count:
            self.task_index = 0

    def on_task_key(self, key: str) -> None:
        count = len(self.tasks.tasks)
        if key in ("j", "down") and count:
            self.task_index = ((self.task_index or 0) + 1) % count
        elif key in ("k", "up") and count:
            self.task_index = ((self.task_index or 0) - 1) % count
        elif key in ("g", "home"):
            self.task_index = 0 if count else None
        elif key in ("G", "end"):
            self.task_index = count - 1 if count else None
        elif key == "c":
            self.tasks.clear_finished()
            self._clamp_task_index()
        elif key == "z":
            task = self.selected_task()
            if task is not None:
                self.tasks.stop(task.pid)
        elif key == "t":
            task = self.selected_task()
            if task is not None and task.is_running:
                self.modes.ask(
                    f"Terminate '{task.command}' with SIGTERM? [y/N]",
                    PendingSignal(task.pid, signal.SIGTERM, task.command),
                )
        elif key == "9":
            task = self.selected_task()
            if task is not None and task.is_running:
                self.modes.ask(
                    f"Kill '{task.command}' with SIGKILL? [y/N]",
                    PendingSignal(task.pid, signal.SIGKILL, task.command),
                )

    # ── Deferred actions ────────────────────────────────────

    def perform(self, action: PendingAction, trigger: Trigger, text: str = "") -> None:
        """Run the deferred half of an Ask or Edit prompt."""
        if isinstance(action, PendingFilter):
            if trigger == Trigger.CHANGE:
                self.files.set_filter(text)
            elif trigger in (Trigger.COMMIT, Trigger.CANCEL):
                # Keep whatever is selected, show everything again
                self.files.set_filter("")
        elif trigger == Trigger.CANCEL or trigger == Trigger.CHANGE:
            return
        elif isinstance(action, PendingDelete):
            self.bridge.run("rm -r", [str(action.path)], echo=True)
        elif isinstance(action, PendingRename):
            if text and text != action.path.name:
                target = action.path.with_name(text)
                self.bridge.run("mv", [str(action.path), str(target)], echo=True)
        elif isinstance(action, PendingNewTask):
            if text.strip():
                self.start_task(text.strip())
        elif isinstance(action, PendingSignal):
            self.tasks.send_signal(action.pid, action.signum)

    # ── Lifecycle ───────────────────────────────────────────

    def close(self) -> None:
        self.bridge.deinit()
        self.bridge.teardown()
