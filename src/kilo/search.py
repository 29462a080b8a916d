from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from .constants import (
    ARROW_DOWN,
    ARROW_LEFT,
    ARROW_RIGHT,
    ARROW_UP,
    ENTER,
    ESC,
    HL_MATCH,
)
from .document import row_rx_to_cx

if TYPE_CHECKING:
    from .editor import Editor


@dataclass
class SearchState:
    cx: int
    cy: int
    coloff: int
    rowoff: int
    last_match: int = -1
    direction: int = 1
    saved_hl_line: int = -1
    saved_hl: list[int] | None = None


def begin(editor: Editor) -> SearchState:
    return SearchState(editor.cx, editor.cy, editor.coloff, editor.rowoff)


def restore_highlight(editor: Editor, state: SearchState) -> None:
    rows = editor.doc.rows
    if state.saved_hl is not None and 0 <= state.saved_hl_line < len(rows):
        rows[state.saved_hl_line].hl = state.saved_hl
    state.saved_hl = None
    state.saved_hl_line = -1


def cancel(editor: Editor, state: SearchState) -> None:
    restore_highlight(editor, state)
    editor.cx = state.cx
    editor.cy = state.cy
    editor.coloff = state.coloff
    editor.rowoff = state.rowoff


def next_match(editor: Editor, query: str, last_match: int, direction: int) -> tuple[int, int] | None:
    rows = editor.doc.rows
    numrows = len(rows)
    current = last_match
    if current == -1 and direction == -1:
        current = numrows
    for _ in range(numrows):
        current = (current + direction) % numrows
        pos = rows[current].render.find(query)
        if pos != -1:
            return current, pos
    return None


def step(editor: Editor, state: SearchState, query: str, key: int) -> None:
    """Advance the incremental search after ``key`` changed the prompt."""
    restore_highlight(editor, state)

    if key in (ENTER, ESC):
        state.last_match = -1
        state.direction = 1
        return
    if key in (ARROW_RIGHT, ARROW_DOWN):
        state.direction = 1
    elif key in (ARROW_LEFT, ARROW_UP):
        state.direction = -1
    else:
        state.last_match = -1
        state.direction = 1

    match = next_match(editor, query, state.last_match, state.direction)
    if match is None:
        return

    y, rx = match
    row = editor.doc.rows[y]
    state.last_match = y
    editor.cy = y
    editor.cx = row_rx_to_cx(row, rx)
    # Pushes the match row to the top of the screen on the next scroll.
    editor.rowoff = editor.doc.numrows

    state.saved_hl_line = y
    state.saved_hl = row.hl.copy()
    end = min(rx + len(query), row.rsize)
    row.hl[rx:end] = [HL_MATCH] * (end - rx)
