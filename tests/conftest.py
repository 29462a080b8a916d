from __future__ import annotations

from collections import deque

import pytest

from kilo.editor import Editor
from kilo.keys import read_key
from kilo.syntax import select_syntax


class FakeTerminal:
    """Replays queued input bytes and records every frame written."""

    def __init__(self, size: tuple[int, int] = (24, 80)) -> None:
        self.size = size
        self.input: deque[int] = deque()
        self.writes: list[bytes] = []

    def feed(self, data: bytes) -> None:
        self.input.extend(data)

    def read_byte(self) -> int | None:
        if not self.input:
            return None
        return self.input.popleft()

    def read_key(self, idle=None) -> int:
        if not self.input:
            raise AssertionError("editor asked for a key but no input is queued")
        return read_key(self.read_byte, idle)

    def write(self, data: bytes) -> None:
        self.writes.append(bytes(data))

    def get_window_size(self) -> tuple[int, int]:
        return self.size


@pytest.fixture
def make_editor():
    def _make(
        lines: list[str] | None = None,
        filename: str | None = None,
        size: tuple[int, int] = (24, 80),
    ) -> Editor:
        editor = Editor(FakeTerminal(size))
        editor.filename = filename
        editor.doc.set_syntax(select_syntax(filename))
        if lines is not None:
            editor.doc.load_lines(lines)
        return editor

    return _make
