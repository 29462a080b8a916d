from __future__ import annotations

from collections.abc import Iterable

from .constants import KILO_TAB_STOP
from .models import EditorSyntax, Row
from .syntax import update_syntax


def update_render(chars: str) -> str:
    out: list[str] = []
    idx = 0
    for ch in chars:
        if ch == "\t":
            out.append(" ")
            idx += 1
            while idx % KILO_TAB_STOP != 0:
                out.append(" ")
                idx += 1
        else:
            out.append(ch)
            idx += 1
    return "".join(out)


def row_cx_to_rx(row: Row, cx: int) -> int:
    rx = 0
    for ch in row.chars[:cx]:
        if ch == "\t":
            rx += (KILO_TAB_STOP - 1) - (rx % KILO_TAB_STOP)
        rx += 1
    return rx


def row_rx_to_cx(row: Row, rx: int) -> int:
    cur_rx = 0
    for cx, ch in enumerate(row.chars):
        if ch == "\t":
            cur_rx += (KILO_TAB_STOP - 1) - (cur_rx % KILO_TAB_STOP)
        cur_rx += 1
        if cur_rx > rx:
            return cx
    return row.size


class Document:
    """The rows of the file being edited.

    Every mutation re-derives ``render`` and ``hl`` for the rows it touches
    before returning, and bumps ``dirty``.
    """

    def __init__(self, syntax: EditorSyntax | None = None) -> None:
        self.rows: list[Row] = []
        self.syntax = syntax
        self.dirty = 0

    @property
    def numrows(self) -> int:
        return len(self.rows)

    def set_syntax(self, syntax: EditorSyntax | None) -> None:
        self.syntax = syntax
        for row in self.rows:
            row.hl_open_comment = False
        for idx in range(self.numrows):
            update_syntax(self, idx)

    def load_lines(self, lines: Iterable[str]) -> None:
        self.rows = []
        for line in lines:
            self.insert_row(self.numrows, line.rstrip("\r\n"))
        self.dirty = 0

    def update_row(self, idx: int) -> None:
        row = self.rows[idx]
        row.render = update_render(row.chars)
        update_syntax(self, idx)

    def insert_row(self, at: int, s: str) -> None:
        at = max(0, min(at, self.numrows))
        # Start from the state the following row was seeded with, so the
        # highlighter notices when the new row changes it.
        seed = self.rows[at - 1].hl_open_comment if at > 0 else False
        self.rows.insert(at, Row(chars=s, hl_open_comment=seed))
        self.update_row(at)
        self.dirty += 1

    def delete_row(self, at: int) -> None:
        if at < 0 or at >= self.numrows:
            return
        removed = self.rows.pop(at)
        self.dirty += 1
        if at < self.numrows:
            seed = self.rows[at - 1].hl_open_comment if at > 0 else False
            if seed != removed.hl_open_comment:
                update_syntax(self, at)

    def split_row(self, y: int, x: int) -> None:
        if y == self.numrows:
            self.insert_row(y, "")
            return
        row = self.rows[y]
        x = max(0, min(x, row.size))
        self.insert_row(y + 1, row.chars[x:])
        row.chars = row.chars[:x]
        self.update_row(y)

    def join_row(self, y: int) -> int:
        """Append row ``y`` to row ``y - 1`` and return the join column."""
        if y <= 0 or y >= self.numrows:
            return 0
        prev = self.rows[y - 1]
        col = prev.size
        self.append_string(y - 1, self.rows[y].chars)
        self.delete_row(y)
        return col

    def append_string(self, y: int, s: str) -> None:
        self.rows[y].chars += s
        self.update_row(y)
        self.dirty += 1

    def insert_char(self, y: int, x: int, c: str) -> None:
        row = self.rows[y]
        if x < 0 or x > row.size:
            x = row.size
        row.chars = row.chars[:x] + c + row.chars[x:]
        self.update_row(y)
        self.dirty += 1

    def delete_char(self, y: int, x: int) -> None:
        row = self.rows[y]
        if x < 0 or x >= row.size:
            return
        row.chars = row.chars[:x] + row.chars[x + 1 :]
        self.update_row(y)
        self.dirty += 1

    def to_text(self) -> str:
        return "".join(f"{row.chars}\n" for row in self.rows)
