"""Directory model — listing, filtering, selection and marks for one directory."""

from __future__ import annotations

import os
import queue
import stat
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

CHANGE_KINDS = {"created", "deleted", "modified", "moved"}


@dataclass(frozen=True)
class FileInfo:
    """One directory entry."""

    path: Path
    name: str
    is_dir: bool
    mode: int
    size: int
    is_symlink: bool = False

    @classmethod
    def from_entry(cls, entry: os.DirEntry) -> FileInfo:
        st = _stat(entry)
        return cls(
            path=Path(entry.path),
            name=entry.name,
            is_dir=entry.is_dir(),
            mode=st.st_mode,
            size=st.st_size,
            is_symlink=entry.is_symlink(),
        )

    @property
    def is_fifo(self) -> bool:
        return stat.S_ISFIFO(self.mode)

    @property
    def is_executable(self) -> bool:
        return stat.S_ISREG(self.mode) and bool(self.mode & 0o111)

    @property
    def marker(self) -> str:
        """Type suffix shown after the name, ls -F style."""
        if self.is_symlink:
            return "@"
        if self.is_dir:
            return "/"
        if self.is_fifo:
            return "|"
        if self.is_executable:
            return "*"
        return ""

    @property
    def permissions(self) -> str:
        return stat.filemode(self.mode)


def _stat(entry: os.DirEntry) -> os.stat_result:
    # Dangling symlinks still get listed
    try:
        return entry.stat(follow_symlinks=True)
    except OSError:
        return entry.stat(follow_symlinks=False)


def read_dir(directory: Path) -> list[FileInfo]:
    """List a directory, directories first, then by name."""
    with os.scandir(directory) as it:
        files = []
        for entry in it:
            try:
                files.append(FileInfo.from_entry(entry))
            except FileNotFoundError:
                continue  # removed while listing
    files.sort(key=lambda f: (not f.is_dir, f.name))
    return files


class Watcher(Protocol):
    def watch(self, path: Path) -> None: ...

    def unwatch(self, path: Path) -> None: ...


class _Forwarder(FileSystemEventHandler):
    """Runs on the observer thread while it holds its lock, so it must never block."""

    def __init__(self, pending: queue.SimpleQueue):
        self.pending = pending

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in CHANGE_KINDS:
            self.pending.put(event.event_type)


class DirectoryWatcher:
    """
    Non-recursive watchdog observer for the directory on screen.

    Notifications are queued by the observer and handed on by ``drain()``,
    which runs as its own producer. ``watch``/``unwatch`` take the
    observer's lock, so a consumer blocked on a notification would
    otherwise never get it back.
    """

    def __init__(self) -> None:
        self._observer = Observer()
        self._pending: queue.SimpleQueue[str | None] = queue.SimpleQueue()
        self._handler = _Forwarder(self._pending)
        self._watches: dict[Path, object] = {}

    def start(self) -> None:
        self._observer.daemon = True
        self._observer.start()

    def stop(self) -> None:
        self._observer.stop()
        self._pending.put(None)

    def drain(self, emit: Callable[[str], None]) -> None:
        """Producer loop: forward queued change kinds until ``stop()``."""
        while True:
            kind = self._pending.get()
            if kind is None:
                return
            emit(kind)

    def watch(self, path: Path) -> None:
        self._watches[path] = self._observer.schedule(self._handler, str(path), recursive=False)

    def unwatch(self, path: Path) -> None:
        watch = self._watches.pop(path, None)
        if watch is not None:
            self._observer.unschedule(watch)


class FileManager:
    """
    The listing on screen.

    ``all_files`` is the raw directory listing; ``files`` is what is shown
    after the hidden-file and text filters. The selection follows the
    selected name whenever ``files`` is rebuilt.
    """

    def __init__(self, watcher: Watcher, directory: Path, show_hidden: bool = False):
        self.watcher = watcher
        self.dir: Path | None = None
        self.all_files: list[FileInfo] = []
        self.files: list[FileInfo] = []
        self.marked: list[Path] = []
        self.filter = ""
        self.show_hidden = show_hidden
        self.selected_index: int | None = None
        self.cd(Path(directory))

    # ── Navigation ──────────────────────────────────────────

    def cd(self, directory: Path) -> bool:
        """
        Show ``directory``. Returns False if it is already shown.

        On failure the previous directory stays on screen and the error
        propagates.
        """
        directory = Path(directory)
        if directory == self.dir:
            return False
        files = read_dir(directory)
        if self.dir is not None:
            self.watcher.unwatch(self.dir)
        self.dir = directory
        self.all_files = files
        self.selected_index = None
        self.apply_filter()
        self.watcher.watch(self.dir)
        logger.debug(f"[files] showing {self.dir}")
        return True

    def refresh(self) -> None:
        self.all_files = read_dir(self.dir)
        self.apply_filter()

    def on_notify(self, kind: str) -> None:
        """Reconcile with the filesystem after a watcher notification."""
        if kind in CHANGE_KINDS:
            self.refresh()

    # ── Filtering ───────────────────────────────────────────

    def apply_filter(self) -> None:
        selected = self.selected()
        needle = self.filter.lower()
        self.files = [
            f
            for f in self.all_files
            if (self.show_hidden or not f.name.startswith("."))
            and needle in f.name.lower()
        ]
        if selected is not None:
            self.select_name(selected.name)
        else:
            self.select_first()

    def set_filter(self, text: str) -> None:
        self.filter = text
        self.apply_filter()

    def toggle_hidden(self) -> None:
        self.show_hidden = not self.show_hidden
        self.apply_filter()

    def names(self) -> list[str]:
        return [f.name for f in self.files]

    # ── Selection ───────────────────────────────────────────

    def selected(self) -> FileInfo | None:
        if self.selected_index is None or self.selected_index >= len(self.files):
            return None
        return self.files[self.selected_index]

    def select_name(self, name: str) -> None:
        """Select ``name``, or the first entry if it is not shown."""
        for i, f in enumerate(self.files):
            if f.name == name:
                self.selected_index = i
                return
        self.select_first()

    def select_first(self) -> None:
        self.selected_index = 0 if self.files else None

    def select_last(self) -> None:
        self.selected_index = len(self.files) - 1 if self.files else None

    def select_next(self) -> None:
        if not self.files:
            return
        if self.selected_index is None:
            self.selected_index = 0
        else:
            self.selected_index = (self.selected_index + 1) % len(self.files)

    def select_prev(self) -> None:
        if not self.files:
            return
        if self.selected_index is None or self.selected_index == 0:
            self.selected_index = len(self.files) - 1
        else:
            self.selected_index -= 1

    # ── Marks ───────────────────────────────────────────────

    def toggle_mark(self) -> None:
        """Mark or unmark the selection, then move down unless at the end."""
        file = self.selected()
        if file is None:
            return
        if file.path in self.marked:
            self.marked.remove(file.path)
        else:
            self.marked.append(file.path)
        if self.selected_index is not None and self.selected_index < len(self.files) - 1:
            self.select_next()

    def take_marked(self) -> list[Path]:
        marked, self.marked = self.marked, []
        return marked
