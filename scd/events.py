"""Event multiplexer — merges every input source into one blocking stream."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

from loguru import logger

from scd.errors import ProducerError
from scd.models import ShellEvent, TaskEvent


@dataclass(frozen=True)
class KeyPressed:
    key: str


@dataclass(frozen=True)
class Tick:
    timestamp: float


@dataclass(frozen=True)
class FilesChanged:
    """Raw filesystem notification for the watched directory."""

    kind: str  # "created" | "deleted" | "modified" | "moved"


@dataclass(frozen=True)
class ShellMessage:
    event: ShellEvent


@dataclass(frozen=True)
class TaskUpdate:
    pid: int
    event: TaskEvent


Event = Union[KeyPressed, Tick, FilesChanged, ShellMessage, TaskUpdate]

_EMPTY = object()


class Multiplexer:
    """
    Zero-buffer hand-off between many producer threads and one consumer.

    ``put()`` blocks until the consumer has taken the item, so no event
    is ever dropped or queued. Events from one producer keep their order;
    nothing is promised across producers.
    """

    def __init__(self) -> None:
        self._cond = threading.Condition()
        self._slot: object = _EMPTY
        self._offered = 0
        self._taken = 0
        self._failure: ProducerError | None = None

    def put(self, event: Event) -> None:
        """Hand an event to the consumer. Blocks until it is accepted."""
        with self._cond:
            while self._slot is not _EMPTY:
                self._cond.wait()
            self._slot = event
            self._offered += 1
            ticket = self._offered
            self._cond.notify_all()
            while self._taken < ticket:
                self._cond.wait()

    def next(self, timeout: float | None = None) -> Event | None:
        """
        Block until a producer offers an event and return it.

        Returns None only when ``timeout`` elapses. Raises ProducerError
        if any producer thread has died.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._cond:
            while self._slot is _EMPTY and self._failure is None:
                if deadline is None:
                    self._cond.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return None
                self._cond.wait(remaining)
            if self._failure is not None:
                raise self._failure
            event = self._slot
            self._slot = _EMPTY
            self._taken += 1
            self._cond.notify_all()
            return event  # type: ignore[return-value]

    def fail(self, error: ProducerError) -> None:
        with self._cond:
            if self._failure is None:
                self._failure = error
            self._cond.notify_all()

    def spawn(self, name: str, producer: Callable[[], None]) -> threading.Thread:
        """Run a producer on its own daemon thread; a crash is fatal to the consumer."""

        def _run() -> None:
            try:
                producer()
            except BaseException as e:  # noqa: BLE001 - reported to the consumer
                logger.exception(f"[events] producer '{name}' died")
                self.fail(ProducerError(name, e))

        thread = threading.Thread(target=_run, name=f"scd-{name}", daemon=True)
        thread.start()
        return thread

    def start_ticker(self, interval: float) -> threading.Thread:
        """Emit a Tick every ``interval`` seconds."""

        def _tick() -> None:
            while True:
                time.sleep(interval)
                self.put(Tick(time.monotonic()))

        return self.spawn("ticker", _tick)
