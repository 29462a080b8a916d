from __future__ import annotations

import time
from typing import TYPE_CHECKING

from .constants import (
    ANSI_CLEAR_LINE,
    ANSI_CURSOR_HOME,
    ANSI_DEFAULT_FG,
    ANSI_HIDE_CURSOR,
    ANSI_INVERT_OFF,
    ANSI_INVERT_ON,
    ANSI_SHOW_CURSOR,
    HL_NORMAL,
    KILO_STATUS_TIMEOUT,
    KILO_VERSION,
)
from .document import row_cx_to_rx
from .syntax import syntax_to_color

if TYPE_CHECKING:
    from .editor import Editor


def scroll(editor: Editor) -> None:
    doc = editor.doc
    editor.rx = 0
    if editor.cy < doc.numrows:
        editor.rx = row_cx_to_rx(doc.rows[editor.cy], editor.cx)

    if editor.cy < editor.rowoff:
        editor.rowoff = editor.cy
    if editor.cy >= editor.rowoff + editor.screenrows:
        editor.rowoff = editor.cy - editor.screenrows + 1
    if editor.rx < editor.coloff:
        editor.coloff = editor.rx
    if editor.rx >= editor.coloff + editor.screencols:
        editor.coloff = editor.rx - editor.screencols + 1


def draw_welcome(editor: Editor, out: list[str]) -> None:
    welcome = f"Kilo editor -- version {KILO_VERSION}"[: editor.screencols]
    padding = (editor.screencols - len(welcome)) // 2
    if padding:
        out.append("~")
        padding -= 1
    if padding > 0:
        out.append(" " * padding)
    out.append(welcome)


def draw_line(editor: Editor, filerow: int, out: list[str]) -> None:
    row = editor.doc.rows[filerow]
    start = editor.coloff
    chars = row.render[start : start + editor.screencols]
    hl = row.hl[start : start + editor.screencols]
    current_color = -1
    for ch, h in zip(chars, hl):
        code = ord(ch)
        if code < 32 or code == 127 or 0x80 <= code < 0xA0:
            sym = chr(ord("@") + code) if code <= 26 else "?"
            out.append(ANSI_INVERT_ON)
            out.append(sym)
            out.append(ANSI_INVERT_OFF)
            if current_color != -1:
                out.append(f"\x1b[{current_color}m")
        elif h == HL_NORMAL:
            if current_color != -1:
                out.append(ANSI_DEFAULT_FG)
                current_color = -1
            out.append(ch)
        else:
            color = syntax_to_color(h)
            if color != current_color:
                out.append(f"\x1b[{color}m")
                current_color = color
            out.append(ch)
    out.append(ANSI_DEFAULT_FG)


def draw_rows(editor: Editor, out: list[str]) -> None:
    numrows = editor.doc.numrows
    for y in range(editor.screenrows):
        filerow = editor.rowoff + y
        if filerow < numrows:
            draw_line(editor, filerow, out)
        elif numrows == 0 and y == editor.screenrows // 3:
            draw_welcome(editor, out)
        else:
            out.append("~")
        out.append(ANSI_CLEAR_LINE)
        out.append("\r\n")


def draw_status_bar(editor: Editor, out: list[str]) -> None:
    doc = editor.doc
    name = editor.filename or "[No Name]"
    modified = "(modified)" if doc.dirty else ""
    status = f"{name:.20} - {doc.numrows} lines {modified}"[: editor.screencols]
    filetype = doc.syntax.filetype if doc.syntax is not None else "no ft"
    rstatus = f"{filetype} | {editor.cy + 1}/{doc.numrows}"

    out.append(ANSI_INVERT_ON)
    out.append(status)
    fill = len(status)
    while fill < editor.screencols:
        if editor.screencols - fill == len(rstatus):
            out.append(rstatus)
            break
        out.append(" ")
        fill += 1
    out.append(ANSI_INVERT_OFF)
    out.append("\r\n")


def draw_message_bar(editor: Editor, out: list[str], now: float) -> None:
    out.append(ANSI_CLEAR_LINE)
    if editor.statusmsg and now - editor.statusmsg_time < KILO_STATUS_TIMEOUT:
        out.append(editor.statusmsg[: editor.screencols])


def draw_frame(editor: Editor, now: float | None = None) -> bytes:
    """Scroll, then build the whole screen as one byte string."""
    if now is None:
        now = time.time()
    scroll(editor)
    out: list[str] = [ANSI_HIDE_CURSOR, ANSI_CURSOR_HOME]
    draw_rows(editor, out)
    draw_status_bar(editor, out)
    draw_message_bar(editor, out, now)
    out.append(f"\x1b[{editor.cy - editor.rowoff + 1};{editor.rx - editor.coloff + 1}H")
    out.append(ANSI_SHOW_CURSOR)
    return "".join(out).encode("latin-1", errors="replace")


def refresh_screen(editor: Editor) -> None:
    editor.term.write(draw_frame(editor))
