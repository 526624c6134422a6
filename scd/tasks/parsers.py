"""Progress parsers that turn a task's output line into a short status."""

from __future__ import annotations

import re
from enum import Enum

# Regex to strip ANSI escape codes from terminal output
_ANSI_RE = re.compile(r"\x1b\[[0-9;]*[a-zA-Z]|\x1b\].*?\x07|\x1b\[.*?[@-~]")


def strip_ansi(text: str) -> str:
    """Remove ANSI escape codes from text."""
    return _ANSI_RE.sub("", text)


class OutputParser(Enum):
    """
    Known progress formats, keyed by the tool that prints them.

    Each value is (pattern, percent group, rate group).
    """

    # " 45 1000k   45  450k    0     0   123k      0  0:00:08 0:00:03  0:00:05  123k"
    CURL = (re.compile(r"(\d+).*?(\w+)$"), 1, 2)
    # "file.iso   45%[======>      ] 450.00M  12.3MB/s    eta 40s"
    WGET = (re.compile(r"(\d+)%\[[^\]]*\]\s+\S+\s+([\d.,]+[KMGT]?B)/s"), 1, 2)
    # "    1,234,567  45%  123.45kB/s    0:00:05"
    RSYNC = (re.compile(r"(\d+)%\s+([\d.,]+[kKMGT]?B)/s"), 1, 2)

    def parse(self, line: str) -> str | None:
        """Return "<rate>/s <percent>%" or None if the line doesn't match."""
        pattern, percent, rate = self.value
        m = pattern.search(line)
        if m is None:
            return None
        return f"{m.group(rate)}/s {m.group(percent)}%"


PARSERS: dict[str, OutputParser] = {
    "curl": OutputParser.CURL,
    "wget": OutputParser.WGET,
    "rsync": OutputParser.RSYNC,
}


def parser_for(command: str) -> OutputParser | None:
    """Look up the parser for a command by its first word."""
    parts = command.split()
    if not parts:
        return None
    return PARSERS.get(parts[0].rsplit("/", 1)[-1])


def derive_status(command: str, line: str, fallback: str) -> str:
    """Best-effort status text for one output line. Never raises on odd input."""
    parser = parser_for(command)
    if parser is None:
        return fallback
    clean = strip_ansi(line).strip()
    if not clean:
        return fallback
    return parser.parse(clean) or fallback
