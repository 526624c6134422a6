"""Named pipe helpers and length-prefixed framing for the shell bridge."""

from __future__ import annotations

import os
import stat
import struct
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

# Native-endian unsigned 64-bit length prefix
_LEN = struct.Struct("=Q")


def ensure_fifo(path: str | Path) -> Path:
    """Create a named pipe at ``path`` unless one already exists."""
    path = Path(path)
    try:
        os.mkfifo(path, 0o700)
    except FileExistsError:
        if not stat.S_ISFIFO(path.stat().st_mode):
            raise
    return path


def remove_fifo(path: str | Path) -> bool:
    """Remove a named pipe. Returns False if it was already gone."""
    try:
        os.unlink(path)
    except FileNotFoundError:
        return False
    return True


def encode_frame(payload: bytes) -> bytes:
    return _LEN.pack(len(payload)) + payload


def write_frame(f: BinaryIO, payload: bytes) -> None:
    f.write(encode_frame(payload))
    f.flush()


def _read_exact(f: BinaryIO, n: int) -> bytes | None:
    buf = b""
    while len(buf) < n:
        chunk = f.read(n - len(buf))
        if not chunk:
            return None if not buf else buf
        buf += chunk
    return buf


def read_frame(f: BinaryIO) -> bytes | None:
    """
    Read one frame. Returns None on a clean EOF at a frame boundary.

    Raises EOFError if the stream ends in the middle of a frame.
    """
    header = _read_exact(f, _LEN.size)
    if header is None:
        return None
    if len(header) < _LEN.size:
        raise EOFError("truncated frame header")
    (length,) = _LEN.unpack(header)
    payload = _read_exact(f, length) if length else b""
    if payload is None or len(payload) < length:
        raise EOFError(f"truncated frame: expected {length} bytes")
    return payload


def iter_frames(f: BinaryIO) -> Iterator[bytes]:
    """Yield frames until EOF."""
    while True:
        frame = read_frame(f)
        if frame is None:
            return
        yield frame
