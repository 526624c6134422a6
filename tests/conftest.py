"""Shared fixtures."""

from pathlib import Path

import pytest

from scd.bridge import ShellBridge
from scd.config import BridgeConfig


class FakeWatcher:
    """Records watch/unwatch calls instead of touching the filesystem."""

    def __init__(self):
        self.watched: list[Path] = []
        self.calls: list[tuple[str, Path]] = []

    def watch(self, path):
        self.watched.append(path)
        self.calls.append(("watch", path))

    def unwatch(self, path):
        self.watched.remove(path)
        self.calls.append(("unwatch", path))


@pytest.fixture
def watcher():
    return FakeWatcher()


@pytest.fixture
def bridge_config(tmp_path):
    return BridgeConfig(
        events_path=str(tmp_path / "events"),
        commands_path=str(tmp_path / "cmds"),
    )


@pytest.fixture
def bridge(bridge_config):
    """A ShellBridge whose outbound side records commands instead of signalling."""
    b = ShellBridge(bridge_config)
    b.sent = []
    b._wake = lambda pid: None
    b._send = lambda text: b.sent.append(text)
    return b


@pytest.fixture
def listing(tmp_path):
    """A directory holding a/, c and .b"""
    root = tmp_path / "root"
    root.mkdir()
    (root / "a").mkdir()
    (root / "c").write_text("see")
    (root / ".b").write_text("hidden")
    return root
