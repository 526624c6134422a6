"""UI runner — wires producers, the App and the screen together."""

from __future__ import annotations

from pathlib import Path

from loguru import logger
from rich.console import Console
from rich.live import Live

from scd.app import App
from scd.bridge import ShellBridge
from scd.config import ScdConfig
from scd.events import FilesChanged, KeyPressed, Multiplexer, ShellMessage, TaskUpdate
from scd.files import DirectoryWatcher, FileManager
from scd.keys import KeyReader
from scd.sysmon import SystemMonitor
from scd.tasks import TaskSupervisor
from scd.view import render


def run_ui(directory: Path, config: ScdConfig, console: Console | None = None) -> None:
    """
    Run the file manager until the user quits or the shell exits.

    Raises BridgeError if the bridge pipes cannot be created, and
    ProducerError if an input source dies.
    """
    console = console or Console()
    mux = Multiplexer()

    bridge = ShellBridge(config.bridge)
    bridge.setup()

    watcher = DirectoryWatcher()
    watcher.start()
    mux.spawn("watch", lambda: watcher.drain(lambda kind: mux.put(FilesChanged(kind))))
    files = FileManager(watcher, directory, show_hidden=config.ui.show_hidden)
    tasks = TaskSupervisor(
        lambda pid, event: mux.put(TaskUpdate(pid, event)),
        config.tasks,
        start_thread=mux.spawn,
    )
    sysmon = SystemMonitor() if config.ui.show_sysmon else None
    app = App(files, bridge, tasks, config, sysmon)

    mux.spawn("shell", lambda: bridge.receive_loop(lambda event: mux.put(ShellMessage(event))))
    mux.start_ticker(config.ui.tick_seconds)
    logger.info(f"[ui] started in {directory}")

    keys = KeyReader()
    try:
        with keys, Live(console=console, screen=True, auto_refresh=False) as live:
            mux.spawn("keys", lambda: keys.read_forever(lambda key: mux.put(KeyPressed(key))))
            while app.running:
                live.update(render(app, console.size.height), refresh=True)
                app.handle(mux.next())
    finally:
        watcher.stop()
        app.close()
        logger.info("[ui] stopped")
