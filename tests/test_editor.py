"""Tests for the editor controller."""

from __future__ import annotations

import contextlib
import errno

import pytest

from kilo.constants import (
    ARROW_DOWN,
    ARROW_LEFT,
    ARROW_RIGHT,
    ARROW_UP,
    BACKSPACE,
    CTRL_H,
    CTRL_L,
    CTRL_Q,
    CTRL_S,
    DEL_KEY,
    END_KEY,
    ENTER,
    ESC,
    HL_MATCH,
    HOME_KEY,
    KILO_QUIT_TIMES,
    PAGE_DOWN,
    PAGE_UP,
)
from kilo.editor import Editor, run
from kilo.keys import read_key


def raw(editor: Editor) -> list[str]:
    return [row.chars for row in editor.doc.rows]


def type_text(editor: Editor, text: str) -> None:
    for ch in text:
        editor.process_key(ord(ch))


class TestInit:
    def test_screen_size_leaves_two_bars(self, make_editor) -> None:
        editor = make_editor(size=(24, 80))
        assert (editor.screenrows, editor.screencols) == (22, 80)

    def test_window_size_failure_is_fatal(self, make_editor) -> None:
        editor = make_editor()

        def broken() -> tuple[int, int]:
            raise OSError(5, "no size")

        editor.term.get_window_size = broken
        with pytest.raises(OSError, match="Unable to query screen size"):
            editor.update_window_size()


class TestEditing:
    def test_typing_into_empty_document(self, make_editor) -> None:
        editor = make_editor([])
        type_text(editor, "hi")
        assert raw(editor) == ["hi"]
        assert (editor.cx, editor.cy) == (2, 0)
        assert editor.doc.dirty > 0

    def test_enter_splits_row(self, make_editor) -> None:
        editor = make_editor(["hello world"])
        editor.cx = 5
        editor.process_key(ENTER)
        assert raw(editor) == ["hello", " world"]
        assert (editor.cx, editor.cy) == (0, 1)

    def test_enter_at_column_zero_inserts_above(self, make_editor) -> None:
        editor = make_editor(["abc"])
        editor.process_key(ENTER)
        assert raw(editor) == ["", "abc"]
        assert editor.cy == 1

    def test_enter_past_eof_appends(self, make_editor) -> None:
        editor = make_editor(["abc"])
        editor.cy = 1
        editor.process_key(ENTER)
        assert raw(editor) == ["abc", ""]
        assert editor.cy == 2

    def test_backspace(self, make_editor) -> None:
        editor = make_editor(["abc"])
        editor.cx = 2
        editor.process_key(BACKSPACE)
        assert raw(editor) == ["ac"]
        assert editor.cx == 1

    def test_ctrl_h_is_backspace(self, make_editor) -> None:
        editor = make_editor(["abc"])
        editor.cx = 3
        editor.process_key(CTRL_H)
        assert raw(editor) == ["ab"]

    def test_backspace_at_line_start_joins(self, make_editor) -> None:
        editor = make_editor(["foo", "bar"])
        editor.cy = 1
        editor.process_key(BACKSPACE)
        assert raw(editor) == ["foobar"]
        assert (editor.cx, editor.cy) == (3, 0)

    def test_backspace_at_document_start_is_noop(self, make_editor) -> None:
        editor = make_editor(["abc"])
        editor.process_key(BACKSPACE)
        assert raw(editor) == ["abc"]
        assert editor.doc.dirty == 0

    def test_delete_removes_next_byte(self, make_editor) -> None:
        editor = make_editor(["abc"])
        editor.cx = 1
        editor.process_key(DEL_KEY)
        assert raw(editor) == ["ac"]
        assert editor.cx == 1

    def test_delete_at_line_end_joins(self, make_editor) -> None:
        editor = make_editor(["foo", "bar"])
        editor.cx = 3
        editor.process_key(DEL_KEY)
        assert raw(editor) == ["foobar"]
        assert (editor.cx, editor.cy) == (3, 0)

    def test_delete_at_end_of_document_is_noop(self, make_editor) -> None:
        editor = make_editor(["foo"])
        editor.cx = 3
        editor.process_key(DEL_KEY)
        assert raw(editor) == ["foo"]

    def test_control_bytes_are_inserted(self, make_editor) -> None:
        editor = make_editor([""])
        editor.process_key(0x01)
        assert raw(editor) == ["\x01"]

    def test_ignored_keys(self, make_editor) -> None:
        editor = make_editor(["abc"])
        editor.process_key(CTRL_L)
        editor.process_key(ESC)
        assert raw(editor) == ["abc"]
        assert editor.doc.dirty == 0


class TestMovement:
    def test_left_wraps_to_previous_line_end(self, make_editor) -> None:
        editor = make_editor(["abc", "de"])
        editor.cy = 1
        editor.process_key(ARROW_LEFT)
        assert (editor.cx, editor.cy) == (3, 0)

    def test_right_wraps_to_next_line(self, make_editor) -> None:
        editor = make_editor(["abc", "de"])
        editor.cx = 3
        editor.process_key(ARROW_RIGHT)
        assert (editor.cx, editor.cy) == (0, 1)

    def test_right_stops_past_eof(self, make_editor) -> None:
        editor = make_editor(["a"])
        editor.cy = 1
        editor.process_key(ARROW_RIGHT)
        assert (editor.cx, editor.cy) == (0, 1)

    def test_vertical_moves_clamp_column(self, make_editor) -> None:
        editor = make_editor(["abcdef", "ab", "abcdef"])
        editor.cx = 5
        editor.process_key(ARROW_DOWN)
        assert (editor.cx, editor.cy) == (2, 1)
        editor.process_key(ARROW_UP)
        assert (editor.cx, editor.cy) == (2, 0)
        editor.process_key(ARROW_UP)
        assert editor.cy == 0

    def test_down_reaches_row_past_eof(self, make_editor) -> None:
        editor = make_editor(["a", "b"])
        for _ in range(5):
            editor.process_key(ARROW_DOWN)
        assert editor.cy == 2

    def test_home_and_end(self, make_editor) -> None:
        editor = make_editor(["hello"])
        editor.process_key(END_KEY)
        assert editor.cx == 5
        editor.process_key(HOME_KEY)
        assert editor.cx == 0

    def test_page_down_and_up(self, make_editor) -> None:
        editor = make_editor([str(i) for i in range(100)], size=(12, 80))
        editor.process_key(PAGE_DOWN)
        assert editor.cy == 19
        editor.refresh_screen()
        editor.process_key(PAGE_UP)
        assert editor.cy == 0

    def test_page_down_stops_at_eof(self, make_editor) -> None:
        editor = make_editor(["a", "b", "c"], size=(12, 80))
        editor.process_key(PAGE_DOWN)
        assert editor.cy == 3


class TestQuit:
    def test_clean_document_quits_at_once(self, make_editor) -> None:
        editor = make_editor(["a"])
        with pytest.raises(SystemExit) as exc:
            editor.process_key(CTRL_Q)
        assert exc.value.code == 0
        assert editor.term.writes[-1] == b"\x1b[2J\x1b[H"

    def test_dirty_document_needs_repeated_presses(self, make_editor) -> None:
        editor = make_editor(["a"])
        type_text(editor, "x")
        for remaining in range(KILO_QUIT_TIMES, 0, -1):
            editor.process_key(CTRL_Q)
            assert f"Press Ctrl-Q {remaining} more times" in editor.statusmsg
        with pytest.raises(SystemExit):
            editor.process_key(CTRL_Q)

    def test_other_key_resets_quit_counter(self, make_editor) -> None:
        editor = make_editor(["a"])
        type_text(editor, "x")
        editor.process_key(CTRL_Q)
        editor.process_key(ARROW_LEFT)
        assert editor.quit_times == KILO_QUIT_TIMES


class TestFiles:
    def test_round_trip(self, make_editor, tmp_path) -> None:
        path = tmp_path / "main.c"
        content = b"int main(void) {\n\treturn 0;\n}\n\xe9\x01\n"
        path.write_bytes(content)
        editor = make_editor()
        editor.open_file(str(path))
        assert editor.doc.dirty == 0
        assert editor.doc.syntax.filetype == "c"
        assert editor.save()
        assert path.read_bytes() == content

    def test_trailing_newline_normalized(self, make_editor, tmp_path) -> None:
        path = tmp_path / "notes.txt"
        path.write_bytes(b"one\r\ntwo")
        editor = make_editor()
        editor.open_file(str(path))
        editor.save()
        assert path.read_bytes() == b"one\ntwo\n"

    def test_missing_file_remembers_name(self, make_editor, tmp_path) -> None:
        editor = make_editor()
        path = tmp_path / "new.py"
        with pytest.raises(FileNotFoundError):
            editor.open_file(str(path))
        assert editor.filename == str(path)
        assert editor.doc.syntax.filetype == "python"

    def test_save_resets_dirty(self, make_editor, tmp_path) -> None:
        path = tmp_path / "out.txt"
        editor = make_editor(["abc"], filename=str(path))
        type_text(editor, "x")
        assert editor.doc.dirty > 0
        editor.process_key(CTRL_S)
        assert editor.doc.dirty == 0
        assert path.read_bytes() == b"xabc\n"
        assert editor.statusmsg == "5 bytes written to disk"

    def test_save_truncates_longer_file(self, make_editor, tmp_path) -> None:
        path = tmp_path / "out.txt"
        path.write_bytes(b"a much longer previous content\n")
        editor = make_editor(["short"], filename=str(path))
        editor.save()
        assert path.read_bytes() == b"short\n"

    def test_save_failure_keeps_state(self, make_editor, tmp_path) -> None:
        editor = make_editor(["abc"], filename=str(tmp_path))
        type_text(editor, "x")
        dirty = editor.doc.dirty
        assert not editor.save()
        assert editor.statusmsg.startswith("Can't save! I/O error: ")
        assert editor.doc.dirty == dirty
        assert raw(editor) == ["xabc"]

    def test_save_as_prompt(self, make_editor, tmp_path) -> None:
        editor = make_editor(["int x;"])
        path = tmp_path / "named.c"
        editor.term.feed(str(path).encode() + b"\r")
        assert editor.save()
        assert editor.filename == str(path)
        assert editor.doc.syntax.filetype == "c"
        assert path.read_bytes() == b"int x;\n"

    def test_save_as_cancelled(self, make_editor) -> None:
        editor = make_editor(["abc"])
        type_text(editor, "x")
        editor.term.feed(b"na\x1b")
        assert not editor.save()
        assert editor.filename is None
        assert editor.statusmsg == "Save aborted"
        assert editor.doc.dirty > 0


class TestPrompt:
    def test_backspace_edits_buffer(self, make_editor) -> None:
        editor = make_editor([])
        editor.term.feed(b"abx\x7fc\r")
        assert editor.prompt("> %s") == "abc"

    def test_enter_on_empty_buffer_keeps_prompting(self, make_editor) -> None:
        editor = make_editor([])
        editor.term.feed(b"\r\rz\r")
        assert editor.prompt("> %s") == "z"

    def test_arrow_keys_not_inserted(self, make_editor) -> None:
        editor = make_editor([])
        editor.term.feed(b"a\x1b[Ab\r")
        assert editor.prompt("> %s") == "ab"

    def test_prompt_redraws_each_key(self, make_editor) -> None:
        editor = make_editor([])
        editor.term.feed(b"ab\r")
        editor.prompt("Name: %s")
        assert b"Name: ab" in editor.term.writes[-1]


class TestFind:
    def test_find_and_confirm(self, make_editor) -> None:
        editor = make_editor(["foo", "bar", "foo"])
        editor.term.feed(b"\x06foo\x1b[B\r")
        editor.process_keypress()
        assert (editor.cx, editor.cy) == (0, 2)
        assert all(HL_MATCH not in row.hl for row in editor.doc.rows)
        assert editor.statusmsg == ""

    def test_find_and_cancel(self, make_editor) -> None:
        editor = make_editor(["foo", "bar", "foo"])
        editor.cy = 1
        editor.term.feed(b"\x06foo\x1b")
        editor.process_keypress()
        assert (editor.cx, editor.cy) == (0, 1)
        assert all(HL_MATCH not in row.hl for row in editor.doc.rows)

    def test_match_highlight_visible_while_searching(self, make_editor) -> None:
        editor = make_editor(["say foo"])
        editor.term.feed(b"\x06foo\r")
        editor.process_keypress()
        frames_with_match = [w for w in editor.term.writes if b"\x1b[34mfoo" in w]
        assert frames_with_match


class TestResize:
    def test_signal_only_flags_resize(self, make_editor) -> None:
        editor = make_editor(["a"], size=(24, 80))
        editor.term.size = (10, 40)
        editor.handle_sigwinch(28, None)
        assert editor.resize_pending
        assert editor.term.writes == []
        assert (editor.screenrows, editor.screencols) == (22, 80)

    def test_resize_applied_between_keys(self, make_editor) -> None:
        editor = make_editor(["a"], size=(24, 80))
        editor.term.size = (10, 40)
        editor.handle_sigwinch(28, None)
        editor.apply_resize()
        assert not editor.resize_pending
        assert (editor.screenrows, editor.screencols) == (8, 40)
        assert len(editor.term.writes) == 1

    def test_apply_without_signal_is_noop(self, make_editor) -> None:
        editor = make_editor(["a"])
        editor.apply_resize()
        assert editor.term.writes == []


class ScriptedTerminal:
    """Stands in for ``kilo.terminal.Terminal`` inside ``run()``."""

    input = b""
    size: tuple[int, int] | None = (24, 80)
    last: ScriptedTerminal | None = None

    def __init__(self, ifd: int, ofd: int) -> None:
        self.pending = list(self.input)
        self.writes: list[bytes] = []
        ScriptedTerminal.last = self

    @contextlib.contextmanager
    def raw_mode(self):
        yield self

    def read_key(self, idle=None) -> int:
        if not self.pending:
            raise AssertionError("run() asked for a key but no input is queued")
        return read_key(lambda: self.pending.pop(0) if self.pending else None, idle)

    def write(self, data: bytes) -> None:
        self.writes.append(bytes(data))

    def get_window_size(self) -> tuple[int, int]:
        if self.size is None:
            raise OSError(errno.EIO, "Input/output error")
        return self.size


class TestRun:
    @pytest.fixture
    def tty(self, monkeypatch):
        monkeypatch.delenv("KILO_LOG", raising=False)
        monkeypatch.setattr("kilo.editor.os.isatty", lambda fd: True)
        monkeypatch.setattr("kilo.editor.signal.signal", lambda signum, handler: None)
        monkeypatch.setattr("kilo.editor.Terminal", ScriptedTerminal)
        monkeypatch.setattr(ScriptedTerminal, "input", b"")
        monkeypatch.setattr(ScriptedTerminal, "size", (24, 80))
        return ScriptedTerminal

    def test_usage_error(self, capsys) -> None:
        assert run(["a.c", "b.c"]) == 1
        assert "Usage: kilo [filename]" in capsys.readouterr().err

    def test_requires_a_tty(self, monkeypatch, capsys) -> None:
        monkeypatch.delenv("KILO_LOG", raising=False)
        monkeypatch.setattr("kilo.editor.os.isatty", lambda fd: False)
        assert run([]) == 1
        assert "kilo: stdin/stdout must be a tty" in capsys.readouterr().err

    def test_unwritable_log_file(self, monkeypatch, tmp_path, capsys) -> None:
        monkeypatch.setenv("KILO_LOG", str(tmp_path / "missing" / "kilo.log"))
        assert run([]) == 1
        assert capsys.readouterr().err.startswith("kilo: cannot open log file: ")

    def test_fatal_error_clears_screen(self, tty, capsys) -> None:
        tty.size = None
        assert run([]) == 1
        assert "kilo: [Errno 5] Unable to query screen size" in capsys.readouterr().err
        assert tty.last.writes[-1] == b"\x1b[2J\x1b[H"

    def test_quit_returns_zero(self, tty, tmp_path) -> None:
        path = tmp_path / "a.txt"
        path.write_bytes(b"hello\n")
        tty.input = b"\x11"
        assert run([str(path)]) == 0
        assert b"hello" in tty.last.writes[0]
        assert b"HELP: Ctrl-S = save" in tty.last.writes[0]
        assert tty.last.writes[-1] == b"\x1b[2J\x1b[H"

    def test_missing_file_starts_new_document(self, tty, tmp_path) -> None:
        path = tmp_path / "new.txt"
        tty.input = b"hi\x13\x11"
        assert run([str(path)]) == 0
        assert path.read_bytes() == b"hi\n"
