"""Errors raised by scd components.

Everything below ``ScdError`` is recoverable: the app shows it as a
transient message and keeps running. ``ProducerError`` is the exception.
"""

from __future__ import annotations


class ScdError(Exception):
    """Base class for recoverable scd errors."""


class BridgeError(ScdError):
    """The shell bridge could not open, read or write a pipe, or signal the shell."""


class PayloadError(ScdError):
    """A bridge payload could not be decoded."""


class SpawnError(ScdError):
    """A task process could not be started."""


class TaskSignalError(ScdError):
    """A signal could not be delivered to a task process."""


class ProducerError(RuntimeError):
    """An event producer thread died. Fatal: the UI can no longer make progress."""

    def __init__(self, source: str, cause: BaseException):
        super().__init__(f"event source '{source}' failed: {cause!r}")
        self.source = source
        self.cause = cause
