from __future__ import annotations

import errno
import fcntl
import logging
import os
import re
import struct
import termios
from contextlib import AbstractContextManager
from typing import Callable

from .keys import read_key

logger = logging.getLogger(__name__)


class RawMode(AbstractContextManager["RawMode"]):
    def __init__(self, fd: int) -> None:
        self.fd = fd
        self._orig: list | None = None

    def __enter__(self) -> "RawMode":
        if not os.isatty(self.fd):
            raise OSError(errno.ENOTTY, "stdin is not a tty")

        self._orig = termios.tcgetattr(self.fd)
        raw = termios.tcgetattr(self.fd)
        raw[0] &= ~(termios.BRKINT | termios.ICRNL | termios.INPCK | termios.ISTRIP | termios.IXON)
        raw[1] &= ~termios.OPOST
        raw[2] |= termios.CS8
        raw[3] &= ~(termios.ECHO | termios.ICANON | termios.IEXTEN | termios.ISIG)
        # Reads return after at most 100ms, with or without a byte.
        raw[6][termios.VMIN] = 0
        raw[6][termios.VTIME] = 1
        termios.tcsetattr(self.fd, termios.TCSAFLUSH, raw)
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._orig is not None:
            termios.tcsetattr(self.fd, termios.TCSAFLUSH, self._orig)
            self._orig = None


class Terminal:
    """The host tty: bounded byte reads, frame writes and size queries."""

    def __init__(self, ifd: int, ofd: int) -> None:
        self.ifd = ifd
        self.ofd = ofd

    def raw_mode(self) -> RawMode:
        return RawMode(self.ifd)

    def read_byte(self) -> int | None:
        try:
            data = os.read(self.ifd, 1)
        except (InterruptedError, BlockingIOError):
            return None
        if not data:
            return None
        return data[0]

    def read_key(self, idle: Callable[[], None] | None = None) -> int:
        return read_key(self.read_byte, idle)

    def write(self, data: bytes) -> None:
        view = memoryview(data)
        while view:
            n = os.write(self.ofd, view)
            if n <= 0:
                raise OSError(errno.EIO, "short write to terminal")
            view = view[n:]

    def get_cursor_position(self) -> tuple[int, int]:
        self.write(b"\x1b[6n")

        buf = bytearray()
        while len(buf) < 31:
            c = self.read_byte()
            if c is None:
                break
            buf.append(c)
            if c == ord("R"):
                break

        match = re.match(rb"\x1b\[(\d+);(\d+)R", bytes(buf))
        if not match:
            raise OSError(errno.EIO, "invalid cursor position response")
        return int(match.group(1)), int(match.group(2))

    def get_window_size(self) -> tuple[int, int]:
        try:
            packed = fcntl.ioctl(self.ofd, termios.TIOCGWINSZ, struct.pack("HHHH", 0, 0, 0, 0))
            rows, cols, _, _ = struct.unpack("HHHH", packed)
            if cols:
                return rows, cols
        except OSError as exc:
            logger.debug("TIOCGWINSZ failed: %s", exc)

        logger.info("probing window size with the cursor")
        orig_row, orig_col = self.get_cursor_position()
        self.write(b"\x1b[999C\x1b[999B")
        rows, cols = self.get_cursor_position()
        self.write(f"\x1b[{orig_row};{orig_col}H".encode())
        return rows, cols
