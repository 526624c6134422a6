"""Tests for the watchdog-backed directory watcher."""

import queue
import threading
import time
from types import SimpleNamespace

import pytest

from scd.events import FilesChanged, Multiplexer
from scd.files import DirectoryWatcher, FileManager, _Forwarder


@pytest.fixture
def watcher():
    w = DirectoryWatcher()
    w.start()
    yield w
    w.stop()


@pytest.fixture
def mux(watcher):
    m = Multiplexer()
    m.spawn("watch", lambda: watcher.drain(lambda kind: m.put(FilesChanged(kind))))
    return m


def wait_for(mux, kind, timeout=5.0):
    """Consume events until a FilesChanged of ``kind`` arrives."""
    deadline = time.monotonic() + timeout
    seen = []
    while time.monotonic() < deadline:
        event = mux.next(timeout=deadline - time.monotonic())
        if event is None:
            break
        seen.append(event.kind)
        if event.kind == kind:
            return seen
    raise AssertionError(f"no '{kind}' notification, got {seen}")


class TestForwarder:
    def test_queues_change_kinds_only(self):
        pending = queue.SimpleQueue()
        forwarder = _Forwarder(pending)
        for kind in ("opened", "created", "closed", "deleted"):
            forwarder.on_any_event(SimpleNamespace(event_type=kind))
        assert [pending.get_nowait(), pending.get_nowait()] == ["created", "deleted"]
        assert pending.empty()


class TestDirectoryWatcher:
    def test_create_delete_move(self, watcher, mux, tmp_path):
        watcher.watch(tmp_path)
        (tmp_path / "new.txt").write_text("x")
        wait_for(mux, "created")
        (tmp_path / "new.txt").rename(tmp_path / "renamed.txt")
        wait_for(mux, "moved")
        (tmp_path / "renamed.txt").unlink()
        wait_for(mux, "deleted")

    def test_unwatched_directory_is_silent(self, watcher, mux, tmp_path):
        watcher.watch(tmp_path)
        watcher.unwatch(tmp_path)
        (tmp_path / "quiet.txt").write_text("x")
        assert mux.next(timeout=0.5) is None

    def test_drain_returns_after_stop(self):
        w = DirectoryWatcher()
        w.start()
        done = threading.Event()
        thread = threading.Thread(target=lambda: (w.drain(lambda kind: None), done.set()), daemon=True)
        thread.start()
        w.stop()
        assert done.wait(2)

    def test_cd_while_notification_pending(self, watcher, mux, tmp_path):
        (tmp_path / "sub").mkdir()
        files = FileManager(watcher, tmp_path)
        # Nobody consumes this, so the drain producer stays parked in put()
        (tmp_path / "download.part").write_text("partial")
        time.sleep(0.5)

        worker = threading.Thread(target=files.cd, args=(tmp_path / "sub",), daemon=True)
        worker.start()
        worker.join(3)
        assert not worker.is_alive()
        assert files.dir == tmp_path / "sub"

        # The pending notification is still delivered afterwards
        assert isinstance(mux.next(timeout=2), FilesChanged)
