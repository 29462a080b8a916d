from __future__ import annotations

import contextlib
import errno
import logging
import os
import signal
import sys
import time
from typing import Final

from . import search
from .constants import (
    ANSI_CLEAR_SCREEN,
    ANSI_CURSOR_HOME,
    ARROW_DOWN,
    ARROW_LEFT,
    ARROW_RIGHT,
    ARROW_UP,
    BACKSPACE,
    CTRL_F,
    CTRL_H,
    CTRL_L,
    CTRL_Q,
    CTRL_S,
    DEL_KEY,
    END_KEY,
    ENTER,
    ESC,
    HOME_KEY,
    KILO_QUERY_LEN,
    KILO_QUIT_TIMES,
    PAGE_DOWN,
    PAGE_UP,
)
from .document import Document
from .logs import setup_logging
from .screen import refresh_screen
from .search import SearchState
from .syntax import select_syntax
from .terminal import Terminal

logger = logging.getLogger(__name__)

STDIN_FD: Final[int] = 0
STDOUT_FD: Final[int] = 1


def _is_prompt_char(c: int) -> bool:
    return 32 <= c < 127


class Editor:
    def __init__(self, term: Terminal) -> None:
        self.term = term
        self.doc = Document()
        self.cx = 0
        self.cy = 0
        self.rx = 0
        self.rowoff = 0
        self.coloff = 0
        self.screenrows = 0
        self.screencols = 0
        self.filename: str | None = None
        self.statusmsg = ""
        self.statusmsg_time = 0.0
        self.quit_times = KILO_QUIT_TIMES
        self.resize_pending = False
        self.update_window_size()

    def update_window_size(self) -> None:
        try:
            rows, cols = self.term.get_window_size()
        except OSError as exc:
            raise OSError(exc.errno, "Unable to query screen size") from exc
        self.screenrows = max(1, rows - 2)
        self.screencols = max(1, cols)

    def handle_sigwinch(self, _signum: int, _frame) -> None:
        # Only flag it: the handler may interrupt a frame write or a cursor probe.
        self.resize_pending = True

    def apply_resize(self) -> None:
        if not self.resize_pending:
            return
        self.resize_pending = False
        self.update_window_size()
        self.refresh_screen()

    def read_key(self) -> int:
        return self.term.read_key(idle=self.apply_resize)

    def set_status_message(self, fmt: str, *args: object) -> None:
        self.statusmsg = fmt % args if args else fmt
        self.statusmsg_time = time.time()

    def select_syntax_highlight(self) -> None:
        self.doc.set_syntax(select_syntax(self.filename))

    def refresh_screen(self) -> None:
        refresh_screen(self)

    def open_file(self, filename: str) -> None:
        """Load ``filename`` into the document.

        Raises ``FileNotFoundError`` for a missing file after remembering the
        name, so the caller can start a new file under it.
        """
        self.filename = filename
        self.select_syntax_highlight()
        with open(filename, "rb") as f:
            self.doc.load_lines(line.decode("latin-1") for line in f)
        logger.info(
            "opened %s: %d rows, syntax %s",
            filename,
            self.doc.numrows,
            self.doc.syntax.filetype if self.doc.syntax else None,
        )

    def save(self) -> bool:
        if not self.filename:
            filename = self.prompt("Save as: %s (ESC to cancel)")
            if filename is None:
                self.set_status_message("Save aborted")
                return False
            self.filename = filename
            self.select_syntax_highlight()

        data = self.doc.to_text().encode("latin-1")
        fd = -1
        try:
            fd = os.open(self.filename, os.O_RDWR | os.O_CREAT, 0o644)
            os.ftruncate(fd, len(data))
            view = memoryview(data)
            while view:
                n = os.write(fd, view)
                if n <= 0:
                    raise OSError(errno.EIO, "short write")
                view = view[n:]
        except OSError as exc:
            logger.warning("saving %s failed: %s", self.filename, exc)
            self.set_status_message("Can't save! I/O error: %s", os.strerror(exc.errno or errno.EIO))
            return False
        finally:
            if fd != -1:
                os.close(fd)

        self.doc.dirty = 0
        logger.info("wrote %d bytes to %s", len(data), self.filename)
        self.set_status_message("%d bytes written to disk", len(data))
        return True

    def prompt(self, template: str, state: SearchState | None = None) -> str | None:
        """Read a line in the message bar; ``None`` when cancelled with ESC.

        With a search ``state`` every key is also fed to the search engine.
        """
        buf = ""
        while True:
            self.set_status_message(template, buf)
            self.refresh_screen()

            c = self.read_key()
            if c in (DEL_KEY, CTRL_H, BACKSPACE):
                buf = buf[:-1]
            elif c == ESC:
                self.set_status_message("")
                if state is not None:
                    search.step(self, state, buf, c)
                return None
            elif c == ENTER:
                if buf:
                    self.set_status_message("")
                    if state is not None:
                        search.step(self, state, buf, c)
                    return buf
            elif _is_prompt_char(c) and len(buf) < KILO_QUERY_LEN:
                buf += chr(c)

            if state is not None:
                search.step(self, state, buf, c)

    def find(self) -> None:
        state = search.begin(self)
        query = self.prompt("Search: %s (Use ESC/Arrows/Enter)", state)
        if query is None:
            search.cancel(self, state)

    def current_row_size(self) -> int:
        if self.cy < self.doc.numrows:
            return self.doc.rows[self.cy].size
        return 0

    def move_cursor(self, key: int) -> None:
        numrows = self.doc.numrows
        if key == ARROW_LEFT:
            if self.cx != 0:
                self.cx -= 1
            elif self.cy > 0:
                self.cy -= 1
                self.cx = self.doc.rows[self.cy].size
        elif key == ARROW_RIGHT:
            if self.cy < numrows:
                if self.cx < self.current_row_size():
                    self.cx += 1
                else:
                    self.cx = 0
                    self.cy += 1
        elif key == ARROW_UP:
            if self.cy != 0:
                self.cy -= 1
        elif key == ARROW_DOWN:
            if self.cy < numrows:
                self.cy += 1

        self.cx = min(self.cx, self.current_row_size())

    def insert_char(self, c: int) -> None:
        if self.cy == self.doc.numrows:
            self.doc.insert_row(self.doc.numrows, "")
        self.doc.insert_char(self.cy, self.cx, chr(c))
        self.cx += 1

    def insert_newline(self) -> None:
        if self.cx == 0:
            self.doc.insert_row(self.cy, "")
        else:
            self.doc.split_row(self.cy, self.cx)
        self.cy += 1
        self.cx = 0

    def del_char(self) -> None:
        if self.cy == self.doc.numrows:
            return
        if self.cx == 0 and self.cy == 0:
            return
        if self.cx > 0:
            self.doc.delete_char(self.cy, self.cx - 1)
            self.cx -= 1
        else:
            self.cx = self.doc.join_row(self.cy)
            self.cy -= 1

    def del_forward(self) -> None:
        if self.cy >= self.doc.numrows:
            return
        if self.cx < self.current_row_size():
            self.doc.delete_char(self.cy, self.cx)
        elif self.cy + 1 < self.doc.numrows:
            self.doc.join_row(self.cy + 1)

    def page(self, key: int) -> None:
        if key == PAGE_UP:
            self.cy = self.rowoff
        else:
            self.cy = min(self.rowoff + self.screenrows - 1, self.doc.numrows)
        for _ in range(self.screenrows):
            self.move_cursor(ARROW_UP if key == PAGE_UP else ARROW_DOWN)

    def quit(self) -> bool:
        """Return False while unsaved changes still need more Ctrl-Q presses."""
        if self.doc.dirty and self.quit_times > 0:
            self.set_status_message(
                "WARNING!!! File has unsaved changes. Press Ctrl-Q %d more times to quit.",
                self.quit_times,
            )
            self.quit_times -= 1
            return False
        return True

    def process_key(self, c: int) -> None:
        if c == CTRL_Q:
            if not self.quit():
                return
            self.term.write(f"{ANSI_CLEAR_SCREEN}{ANSI_CURSOR_HOME}".encode())
            raise SystemExit(0)

        if c == ENTER:
            self.insert_newline()
        elif c == CTRL_S:
            self.save()
        elif c == CTRL_F:
            self.find()
        elif c == HOME_KEY:
            self.cx = 0
        elif c == END_KEY:
            self.cx = self.current_row_size()
        elif c in (BACKSPACE, CTRL_H):
            self.del_char()
        elif c == DEL_KEY:
            self.del_forward()
        elif c in (PAGE_UP, PAGE_DOWN):
            self.page(c)
        elif c in (ARROW_UP, ARROW_DOWN, ARROW_LEFT, ARROW_RIGHT):
            self.move_cursor(c)
        elif c in (CTRL_L, ESC):
            pass
        elif c < 256:
            self.insert_char(c)

        self.quit_times = KILO_QUIT_TIMES

    def process_keypress(self) -> None:
        self.process_key(self.read_key())


def run(argv: list[str] | None = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    if len(args) > 1:
        print("Usage: kilo [filename]", file=sys.stderr)
        return 1
    try:
        setup_logging()
    except OSError as exc:
        print(f"kilo: cannot open log file: {exc}", file=sys.stderr)
        return 1
    if not os.isatty(STDIN_FD) or not os.isatty(STDOUT_FD):
        print("kilo: stdin/stdout must be a tty", file=sys.stderr)
        return 1

    term = Terminal(STDIN_FD, STDOUT_FD)
    try:
        with term.raw_mode():
            editor = Editor(term)
            if args:
                try:
                    editor.open_file(args[0])
                except FileNotFoundError:
                    logger.info("%s does not exist, starting a new file", args[0])
            signal.signal(signal.SIGWINCH, editor.handle_sigwinch)
            editor.set_status_message("HELP: Ctrl-S = save | Ctrl-Q = quit | Ctrl-F = find")
            while True:
                editor.refresh_screen()
                editor.process_keypress()
    except SystemExit as exc:
        if isinstance(exc.code, int):
            return exc.code
        return 0
    except OSError as exc:
        logger.exception("fatal error")
        with contextlib.suppress(OSError):
            term.write(f"{ANSI_CLEAR_SCREEN}{ANSI_CURSOR_HOME}".encode())
        print(f"kilo: {exc}", file=sys.stderr)
        return 1
