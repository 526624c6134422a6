"""Task supervisor — runs background commands and tracks their progress."""

from __future__ import annotations

import os
import signal
import subprocess
import threading
from collections.abc import Callable
from pathlib import Path
from typing import IO

from loguru import logger

from scd.config import TaskConfig
from scd.errors import SpawnError, TaskSignalError
from scd.models import (
    RUNNING,
    Exited,
    Running,
    Stopped,
    Task,
    TaskEvent,
    TaskExited,
    TaskOutput,
    TaskStream,
)
from scd.tasks.parsers import derive_status

Emit = Callable[[int, TaskEvent], None]
StartThread = Callable[[str, Callable[[], None]], object]

_CHUNK = 4096


def split_carriage_returns(stream: IO[bytes]):
    """
    Yield decoded pieces of ``stream`` split on ``\\r``.

    Progress meters redraw themselves with a carriage return, so every
    redraw becomes its own status update.
    """
    pending = b""
    while True:
        chunk = stream.read1(_CHUNK) if hasattr(stream, "read1") else stream.read(_CHUNK)
        if not chunk:
            break
        pending += chunk
        *pieces, pending = pending.split(b"\r")
        for piece in pieces:
            yield piece.decode("utf-8", errors="replace")
    if pending:
        yield pending.decode("utf-8", errors="replace")


def _daemon_thread(name: str, target: Callable[[], None]) -> threading.Thread:
    thread = threading.Thread(target=target, name=f"scd-{name}", daemon=True)
    thread.start()
    return thread


def build_argv(command: str, shell: str) -> list[str]:
    # fish keeps itself around as the parent unless told to exec
    if Path(shell).name == "fish":
        return [shell, "-c", f"exec {command}"]
    return [shell, "-c", command]


class TaskSupervisor:
    """
    Owns every task, keyed by pid.

    All mutation happens on the consumer thread through ``on_event``;
    reader threads only emit.
    """

    def __init__(
        self,
        emit: Emit,
        config: TaskConfig | None = None,
        start_thread: StartThread | None = None,
    ):
        self.emit = emit
        self.config = config or TaskConfig()
        self.start_thread = start_thread or _daemon_thread
        self.tasks: list[Task] = []

    def get(self, pid: int) -> Task | None:
        for task in self.tasks:
            if task.pid == pid:
                return task
        return None

    # ── Spawning ────────────────────────────────────────────

    def spawn(self, command: str, display: str = "") -> Task:
        """Start ``command`` through the user's shell and begin streaming its output."""
        if not command.strip():
            raise SpawnError("Empty command")
        shell = self.config.resolve_shell()
        try:
            proc = subprocess.Popen(
                build_argv(command, shell),
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            raise SpawnError(f"Cannot run '{command}': {e.strerror or e}") from e

        task = Task(pid=proc.pid, command=command, display=display or command)
        self.tasks.insert(0, task)
        logger.info(f"[task] started {proc.pid}: {command}")

        self.start_thread(f"task-{proc.pid}-out", lambda: self._read_stdout(proc))
        self.start_thread(f"task-{proc.pid}-err", lambda: self._read_stderr(proc))
        return task

    def _read_stdout(self, proc: subprocess.Popen) -> None:
        """Stream stdout, then reap the child. The only place ``wait()`` is called."""
        assert proc.stdout is not None
        with proc.stdout:
            for line in split_carriage_returns(proc.stdout):
                self.emit(proc.pid, TaskOutput(line, TaskStream.STDOUT))
        code = proc.wait()
        self.emit(proc.pid, TaskExited(code))

    def _read_stderr(self, proc: subprocess.Popen) -> None:
        assert proc.stderr is not None
        with proc.stderr:
            for line in split_carriage_returns(proc.stderr):
                self.emit(proc.pid, TaskOutput(line, TaskStream.STDERR))

    # ── Events ──────────────────────────────────────────────

    def on_event(self, pid: int, event: TaskEvent) -> None:
        task = self.get(pid)
        if task is None:
            logger.debug(f"[task] update for unknown task {pid} ignored")
            return

        if isinstance(event, TaskExited):
            if isinstance(task.status, Exited):
                return
            task.status = Exited(event.code)
            logger.info(f"[task] {pid} exited with {event.code}")
            self.tasks.sort(key=Task.sort_rank)
            return

        # Output never moves a task backwards
        if not isinstance(task.status, Running):
            return
        task.status = Running(derive_status(task.command, event.line, RUNNING))

    # ── Control ─────────────────────────────────────────────

    def stop(self, pid: int) -> None:
        """Interrupt a task and show it as stopped straight away."""
        task = self.get(pid)
        if task is None or not task.is_running:
            return
        self.send_signal(pid, signal.SIGINT)
        task.status = Stopped()

    def send_signal(self, pid: int, signum: int) -> None:
        try:
            os.kill(pid, signum)
        except ProcessLookupError as e:
            raise TaskSignalError(f"Task {pid} is no longer running") from e
        except PermissionError as e:
            raise TaskSignalError(f"Not allowed to signal task {pid}") from e
        logger.info(f"[task] sent {signal.Signals(signum).name} to {pid}")

    def clear_finished(self) -> int:
        """Drop every task that is no longer running. Returns how many were removed."""
        before = len(self.tasks)
        self.tasks = [t for t in self.tasks if t.is_running]
        return before - len(self.tasks)
