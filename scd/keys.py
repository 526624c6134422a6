"""Raw keyboard input, decoded into key names."""

from __future__ import annotations

import os
import sys
import termios
import tty
from collections.abc import Callable

_ESCAPES = {
    "\x1b[A": "up",
    "\x1b[B": "down",
    "\x1b[C": "right",
    "\x1b[D": "left",
    "\x1b[H": "home",
    "\x1b[F": "end",
    "\x1bOA": "up",
    "\x1bOB": "down",
    "\x1bOC": "right",
    "\x1bOD": "left",
    "\x1bOH": "home",
    "\x1bOF": "end",
    "\x1b[1~": "home",
    "\x1b[7~": "home",
    "\x1b[4~": "end",
    "\x1b[8~": "end",
    "\x1b[3~": "delete",
}

_CONTROLS = {
    "\r": "enter",
    "\n": "enter",
    "\t": "tab",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x1b": "esc",
}


def decode_keys(data: str) -> list[str]:
    """
    Split a chunk of terminal input into key names.

    Printable characters map to themselves, control characters to
    ``ctrl-<letter>``, known escape sequences to names like ``up``.
    Unknown escape sequences are dropped.
    """
    keys: list[str] = []
    i = 0
    while i < len(data):
        ch = data[i]
        if ch == "\x1b" and i + 1 < len(data) and data[i + 1] in "[O":
            j = i + 2
            while j < len(data) and not (data[j].isalpha() or data[j] == "~"):
                j += 1
            seq = data[i : j + 1]
            if seq in _ESCAPES:
                keys.append(_ESCAPES[seq])
            i = j + 1
            continue
        if ch in _CONTROLS:
            keys.append(_CONTROLS[ch])
        elif "\x01" <= ch <= "\x1a":
            keys.append(f"ctrl-{chr(ord(ch) + 96)}")
        elif ch.isprintable():
            keys.append(ch)
        i += 1
    return keys


class KeyReader:
    """Puts stdin in raw mode and feeds decoded keys to a callback."""

    def __init__(self, fd: int | None = None):
        self.fd = sys.stdin.fileno() if fd is None else fd
        self._old_termios: list | None = None

    def __enter__(self) -> KeyReader:
        try:
            self._old_termios = termios.tcgetattr(self.fd)
            tty.setraw(self.fd)
            # Keep output processing so rendered newlines still return the carriage
            attrs = termios.tcgetattr(self.fd)
            attrs[1] |= termios.OPOST | termios.ONLCR
            termios.tcsetattr(self.fd, termios.TCSANOW, attrs)
        except termios.error:
            self._old_termios = None
        return self

    def __exit__(self, *exc) -> None:
        self.restore()

    def restore(self) -> None:
        """Restore original terminal settings."""
        if self._old_termios is not None:
            try:
                termios.tcsetattr(self.fd, termios.TCSADRAIN, self._old_termios)
            except termios.error:
                pass

    def read_forever(self, emit: Callable[[str], None]) -> None:
        """Producer loop. Returns when stdin reaches EOF."""
        while True:
            data = os.read(self.fd, 1024)
            if not data:
                return
            for key in decode_keys(data.decode("utf-8", errors="replace")):
                emit(key)
