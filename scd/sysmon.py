"""System monitor — load average, uptime, CPU and memory usage."""

from __future__ import annotations

import time
from dataclasses import dataclass

import psutil

_UPTIME_UNITS = [
    (60 * 60 * 24 * 31, "month"),
    (60 * 60 * 24 * 7, "week"),
    (60 * 60 * 24, "day"),
]


def format_uptime(secs: int) -> str:
    """e.g. ``1 week, 2 days, 03:04:05``"""
    parts = []
    for div, unit in _UPTIME_UNITS:
        if secs >= div:
            n, secs = divmod(secs, div)
            parts.append(f"{n} {unit}{'s' if n > 1 else ''}")
    hours, secs = divmod(secs, 60 * 60)
    minutes, secs = divmod(secs, 60)
    parts.append(f"{hours:02}:{minutes:02}:{secs:02}")
    return ", ".join(parts)


@dataclass(frozen=True)
class Snapshot:
    load: tuple[float, float, float]
    uptime: int
    cpu_percent: int
    memory_percent: int


class SystemMonitor:
    """Samples the machine on every tick; the view reads ``snapshot``."""

    def __init__(self) -> None:
        # The first cpu_percent() call only primes psutil's counters
        psutil.cpu_percent(interval=None)
        self.snapshot = self.sample()

    def sample(self) -> Snapshot:
        mem = psutil.virtual_memory()
        load = tuple(round(x, 2) for x in psutil.getloadavg())
        return Snapshot(
            load=load,  # type: ignore[arg-type]
            uptime=int(time.time() - psutil.boot_time()),
            cpu_percent=round(psutil.cpu_percent(interval=None)),
            memory_percent=100 * mem.used // mem.total if mem.total else 0,
        )

    def refresh(self) -> Snapshot:
        self.snapshot = self.sample()
        return self.snapshot
