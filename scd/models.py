"""Shared data models for scd."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter


# ── Shell events (wire format) ──────────────────────────────


class ProcessStarted(BaseModel):
    """The shell announced its pid."""

    kind: Literal["pid"] = "pid"
    pid: int


class DirectoryChanged(BaseModel):
    """The shell's working directory changed."""

    kind: Literal["cd"] = "cd"
    path: Path


class ProcessExited(BaseModel):
    """The shell exited."""

    kind: Literal["exit"] = "exit"


class RunTask(BaseModel):
    """The shell asked scd to run and monitor a background task."""

    kind: Literal["task"] = "task"
    command: str
    display: str = ""

    def display_text(self) -> str:
        return self.display or self.command


ShellEvent = Annotated[
    Union[ProcessStarted, DirectoryChanged, ProcessExited, RunTask],
    Field(discriminator="kind"),
]

shell_event_adapter: TypeAdapter[ShellEvent] = TypeAdapter(ShellEvent)


# ── Task state ──────────────────────────────────────────────


RUNNING = "Running"


class TaskStream(str, Enum):
    STDOUT = "stdout"
    STDERR = "stderr"


@dataclass(frozen=True)
class Running:
    text: str = RUNNING


@dataclass(frozen=True)
class Stopped:
    pass


@dataclass(frozen=True)
class Exited:
    code: int

    @property
    def success(self) -> bool:
        return self.code == 0


TaskStatus = Union[Running, Stopped, Exited]


@dataclass(frozen=True)
class TaskOutput:
    """One carriage-return delimited chunk of task output."""

    line: str
    stream: TaskStream = TaskStream.STDOUT


@dataclass(frozen=True)
class TaskExited:
    """The task process was reaped."""

    code: int


TaskEvent = Union[TaskOutput, TaskExited]


@dataclass
class Task:
    """A background command supervised by scd."""

    pid: int
    command: str
    display: str
    status: TaskStatus = field(default_factory=Running)

    @property
    def name(self) -> str:
        """First whitespace-delimited token of the command."""
        parts = self.command.split()
        return parts[0] if parts else ""

    @property
    def is_running(self) -> bool:
        return isinstance(self.status, Running)

    def sort_rank(self) -> int:
        """Running tasks first, then stopped, then failed, then succeeded."""
        if isinstance(self.status, Running):
            return 0
        if isinstance(self.status, Stopped):
            return 1
        return 2 if not self.status.success else 3
