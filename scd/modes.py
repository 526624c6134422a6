"""Modal command engine — the ask/edit/message state machine behind the status bar."""

from __future__ import annotations

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Protocol, Union

from scd.errors import ScdError

MESSAGE_SECONDS = 4.0


# ── Pending actions ─────────────────────────────────────────
# Each captures its target when the prompt opens; it is never
# re-resolved from the current selection.


@dataclass(frozen=True)
class PendingDelete:
    path: Path
    name: str
    is_dir: bool


@dataclass(frozen=True)
class PendingRename:
    path: Path


@dataclass(frozen=True)
class PendingFilter:
    pass


@dataclass(frozen=True)
class PendingNewTask:
    pass


@dataclass(frozen=True)
class PendingSignal:
    pid: int
    signum: int
    command: str


PendingAction = Union[PendingDelete, PendingRename, PendingFilter, PendingNewTask, PendingSignal]


class Trigger(str, Enum):
    CONFIRM = "confirm"  # Ask answered yes
    CHANGE = "change"  # Edit buffer changed
    COMMIT = "commit"  # Edit confirmed with Enter
    CANCEL = "cancel"  # Edit abandoned with Esc


class Dispatcher(Protocol):
    def perform(self, action: PendingAction, trigger: Trigger, text: str = "") -> None: ...


# ── Modes ───────────────────────────────────────────────────


@dataclass(frozen=True)
class Normal:
    pass


@dataclass(frozen=True)
class Message:
    text: str
    expires_at: float


@dataclass(frozen=True)
class Ask:
    prompt: str
    action: PendingAction


@dataclass
class Edit:
    prompt: str
    action: PendingAction
    text: str = ""
    cursor: int = 0

    def insert(self, ch: str) -> bool:
        if not 0 <= self.cursor <= len(self.text):
            return False
        self.text = self.text[: self.cursor] + ch + self.text[self.cursor :]
        self.cursor += len(ch)
        return True

    def delete_backward(self) -> bool:
        if not 0 < self.cursor <= len(self.text):
            return False
        self.text = self.text[: self.cursor - 1] + self.text[self.cursor :]
        self.cursor -= 1
        return True

    def delete_forward(self) -> bool:
        if not 0 <= self.cursor < len(self.text):
            return False
        self.text = self.text[: self.cursor] + self.text[self.cursor + 1 :]
        return True

    def clear(self) -> bool:
        changed = bool(self.text)
        self.text = ""
        self.cursor = 0
        return changed

    def move(self, offset: int) -> None:
        target = self.cursor + offset
        if 0 <= target <= len(self.text):
            self.cursor = target

    def move_to(self, position: int) -> None:
        if 0 <= position <= len(self.text):
            self.cursor = position


Mode = Union[Normal, Message, Ask, Edit]


class ModeEngine:
    """
    Holds the single active Mode.

    Keys reach ``on_key`` only when the mode is not Normal; it returns the
    key back when the caller should handle it as a Normal-mode key (a
    message preempted by a keypress).
    """

    def __init__(self, dispatcher: Dispatcher, message_seconds: float = MESSAGE_SECONDS):
        self.dispatcher = dispatcher
        self.message_seconds = message_seconds
        self.mode: Mode = Normal()

    @property
    def is_normal(self) -> bool:
        return isinstance(self.mode, Normal)

    # ── Entering modes ──────────────────────────────────────

    def show_message(self, text: str, now: float | None = None) -> None:
        now = time.monotonic() if now is None else now
        self.mode = Message(text, now + self.message_seconds)

    def ask(self, prompt: str, action: PendingAction) -> None:
        self.mode = Ask(prompt, action)

    def edit(self, prompt: str, action: PendingAction, text: str = "") -> None:
        self.mode = Edit(prompt, action, text, len(text))

    # ── Events ──────────────────────────────────────────────

    def on_tick(self, now: float) -> None:
        if isinstance(self.mode, Message) and now >= self.mode.expires_at:
            self.mode = Normal()

    def on_key(self, key: str) -> str | None:
        mode = self.mode
        if isinstance(mode, Normal):
            return key
        if isinstance(mode, Message):
            self.mode = Normal()
            return key
        if isinstance(mode, Ask):
            self.mode = Normal()
            if key == "y":
                self._perform(mode.action, Trigger.CONFIRM)
            return None
        self._on_edit_key(mode, key)
        return None

    def _on_edit_key(self, mode: Edit, key: str) -> None:
        changed = False
        if key == "enter":
            self.mode = Normal()
            self._perform(mode.action, Trigger.COMMIT, mode.text)
            return
        if key in ("esc", "ctrl-["):
            self.mode = Normal()
            self._perform(mode.action, Trigger.CANCEL)
            return

        if key in ("home", "ctrl-a"):
            mode.move_to(0)
        elif key in ("end", "ctrl-e"):
            mode.move_to(len(mode.text))
        elif key in ("left", "ctrl-b"):
            mode.move(-1)
        elif key in ("right", "ctrl-f"):
            mode.move(1)
        elif key in ("backspace", "ctrl-h"):
            changed = mode.delete_backward()
        elif key in ("delete", "ctrl-d"):
            changed = mode.delete_forward()
        elif key == "ctrl-u":
            changed = mode.clear()
        elif len(key) == 1:
            changed = mode.insert(key)

        if changed:
            self._perform(mode.action, Trigger.CHANGE, mode.text)

    def _perform(self, action: PendingAction, trigger: Trigger, text: str = "") -> None:
        try:
            self.dispatcher.perform(action, trigger, text)
        except (ScdError, OSError) as e:
            self.show_message(str(e))
