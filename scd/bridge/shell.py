"""Shell bridge — lets scd and an interactive shell it does not own talk.

Two named pipes act as rendezvous points:

* events-out: the shell writes a ``ShellEvent`` whenever it starts,
  changes directory or exits. scd blocks reading it in a loop.
* commands-in: scd writes a ready-to-type command, after waking the shell
  with a signal. The shell's handler reads it and evaluates it.

Start order between the two sides is unknown, so both create the pipes
on first use.
"""

from __future__ import annotations

import errno
import os
import shlex
import signal
import threading
import time
from collections.abc import Callable, Sequence
from pathlib import Path

from loguru import logger
from pydantic import ValidationError

from scd.bridge.fifo import encode_frame, ensure_fifo, iter_frames, read_frame, remove_fifo
from scd.config import BridgeConfig
from scd.errors import BridgeError, PayloadError
from scd.models import ProcessStarted, ShellEvent, shell_event_adapter

PLACEHOLDER = "{}"
RUN_WITH_ECHO = "scd_run_with_echo"
RUN_SILENTLY = "scd_run_silently"
DEINIT = "scd_deinit"


def render_command(template: str, args: Sequence[str] = (), echo: bool = False) -> str:
    """
    Build the text the shell should evaluate.

    Arguments are quoted and substituted at ``{}`` when the template has
    one, otherwise appended. The result is wrapped in the shell-side
    function that either types it visibly or evaluates it silently.
    """
    quoted = " ".join(shlex.quote(a) for a in args)
    if PLACEHOLDER in template:
        cmd = template.replace(PLACEHOLDER, quoted)
    elif quoted:
        cmd = f"{template} {quoted}"
    else:
        cmd = template
    wrapper = RUN_WITH_ECHO if echo else RUN_SILENTLY
    return f"{wrapper} {shlex.quote(cmd)}"


def decode_event(payload: bytes) -> ShellEvent:
    try:
        return shell_event_adapter.validate_json(payload)
    except ValidationError as e:
        raise PayloadError(f"malformed shell event: {payload[:80]!r}") from e


def encode_event(event: ShellEvent) -> bytes:
    return shell_event_adapter.dump_json(event)


class ShellBridge:
    """
    The scd side of the bridge.

    Owns the attached shell's pid. The reader thread writes it, the
    command path reads it; a pid <= 0 means no shell is attached.
    """

    def __init__(self, config: BridgeConfig | None = None):
        self.config = config or BridgeConfig()
        self.events_path = Path(self.config.events_path)
        self.commands_path = Path(self.config.commands_path)
        self._pid = 0
        self._pid_lock = threading.Lock()
        self._writer: threading.Thread | None = None

    # ── pid ──────────────────────────────────────────────────

    @property
    def pid(self) -> int:
        with self._pid_lock:
            return self._pid

    def set_pid(self, pid: int) -> None:
        with self._pid_lock:
            self._pid = pid

    @property
    def attached(self) -> bool:
        return self.pid > 0

    # ── setup / teardown ─────────────────────────────────────

    def setup(self) -> None:
        """Create both pipes. Failure here is fatal to startup."""
        try:
            ensure_fifo(self.events_path)
            ensure_fifo(self.commands_path)
        except OSError as e:
            raise BridgeError(f"Cannot create shell bridge pipes: {e}") from e

    def deinit(self) -> None:
        """Ask the shell to remove its hooks. Best effort."""
        try:
            self.run(DEINIT)
        except BridgeError as e:
            logger.warning(f"[bridge] deinit failed: {e}")
            return
        if self._writer is not None:
            self._writer.join(self.config.deinit_timeout_seconds)

    def teardown(self) -> None:
        remove_fifo(self.events_path)
        # A writer still blocked on the pipe would lose its reader
        if self._writer is None or not self._writer.is_alive():
            remove_fifo(self.commands_path)

    # ── outbound ─────────────────────────────────────────────

    def run(self, template: str, args: Sequence[str] = (), echo: bool = False) -> bool:
        """
        Have the shell run a command.

        Silently does nothing when no shell is attached; the command is
        dropped, never replayed later. Returns True if it was sent.
        Only one command may be in flight: there is no queue and no
        acknowledgement.
        """
        pid = self.pid
        if pid <= 0:
            logger.debug(f"[bridge] no shell attached, dropping: {template}")
            return False

        text = render_command(template, args, echo)
        self._wake(pid)
        self._send(text)
        logger.info(f"[bridge] sent to {pid}: {text}")
        return True

    def cd(self, directory: str | Path) -> bool:
        return self.run("cd", [str(directory)])

    def open(self, path: str | Path, opener: str) -> bool:
        return self.run(opener, [str(path)], echo=True)

    def _wake(self, pid: int) -> None:
        signum = getattr(signal, self.config.wake_signal, signal.SIGUSR1)
        try:
            os.kill(pid, signum)
        except OSError as e:
            raise BridgeError(f"Failed to notify the shell ({pid}): {e}") from e

    def _send(self, text: str) -> None:
        """
        Write the command on a short-lived thread.

        Opening a pipe for writing blocks until the shell's handler opens
        it for reading, which must not stall the UI.
        """
        frame = encode_frame(text.encode())

        def _write() -> None:
            try:
                ensure_fifo(self.commands_path)
                with open(self.commands_path, "wb") as f:
                    f.write(frame)
            except OSError as e:
                logger.error(f"[bridge] writing command failed: {e}")

        self._writer = threading.Thread(target=_write, name="scd-bridge-writer", daemon=True)
        self._writer.start()

    # ── inbound ──────────────────────────────────────────────

    def read_events(self) -> list[ShellEvent]:
        """
        Open events-out once, read every frame until EOF and decode them.

        Blocks until a writer opens the pipe. Malformed payloads are
        logged and discarded; a ProcessStarted event updates the pid.
        """
        ensure_fifo(self.events_path)
        events: list[ShellEvent] = []
        with open(self.events_path, "rb") as f:
            try:
                for frame in iter_frames(f):
                    try:
                        event = decode_event(frame)
                    except PayloadError as e:
                        logger.warning(f"[bridge] discarding payload: {e}")
                        continue
                    if isinstance(event, ProcessStarted):
                        self.set_pid(event.pid)
                        logger.info(f"[bridge] shell attached: pid {event.pid}")
                    events.append(event)
            except EOFError as e:
                logger.warning(f"[bridge] discarding partial write: {e}")
        return events

    def receive_loop(self, emit: Callable[[ShellEvent], None]) -> None:
        """Producer loop: forward shell events forever."""
        while True:
            try:
                events = self.read_events()
            except OSError as e:
                raise BridgeError(f"Cannot read {self.events_path}: {e}") from e
            for event in events:
                emit(event)


# ── Shell side ──────────────────────────────────────────────
# Called from the `scd` subcommands the shell integration runs.


def send_event(
    event: ShellEvent,
    config: BridgeConfig | None = None,
    wait: bool = False,
    attempts: int | None = None,
    interval: float | None = None,
) -> bool:
    """
    Write one event to events-out.

    With ``wait`` the call blocks until scd opens the pipe (the shell runs
    it in the background). Otherwise it returns False without writing when
    scd is not reading, so a prompt never hangs on a file manager that
    isn't running. The reader reopens the pipe after each EOF, hence the
    retry; its window comes from ``send_attempts`` and
    ``send_interval_seconds`` unless overridden.
    """
    config = config or BridgeConfig()
    attempts = config.send_attempts if attempts is None else attempts
    interval = config.send_interval_seconds if interval is None else interval
    path = ensure_fifo(config.events_path)
    payload = encode_frame(encode_event(event))
    if wait:
        with open(path, "wb") as f:
            f.write(payload)
        return True
    for attempt in range(attempts):
        try:
            fd = os.open(path, os.O_WRONLY | os.O_NONBLOCK)
        except OSError as e:
            if e.errno != errno.ENXIO:
                raise BridgeError(f"Cannot open {path}: {e}") from e
            if attempt + 1 < attempts:
                time.sleep(interval)
            continue
        os.set_blocking(fd, True)
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        return True
    logger.debug(f"[bridge] nobody reading {path}, dropped {event.kind}")
    return False


def receive_command(config: BridgeConfig | None = None) -> str:
    """Read the next command from commands-in. Blocks until scd writes one."""
    config = config or BridgeConfig()
    path = ensure_fifo(config.commands_path)
    with open(path, "rb") as f:
        try:
            frame = read_frame(f)
        except EOFError as e:
            raise PayloadError(f"partial command: {e}") from e
    if frame is None:
        return ""
    return frame.decode()
