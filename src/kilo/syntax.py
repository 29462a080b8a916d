from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING

from .constants import (
    C_HL_EXTENSIONS,
    C_HL_KEYWORDS,
    HL_COMMENT,
    HL_HIGHLIGHT_NUMBERS,
    HL_HIGHLIGHT_STRINGS,
    HL_KEYWORD1,
    HL_KEYWORD2,
    HL_MATCH,
    HL_MLCOMMENT,
    HL_NORMAL,
    HL_NUMBER,
    HL_STRING,
    PY_HL_EXTENSIONS,
    PY_HL_KEYWORDS,
    SEPARATORS,
)
from .models import EditorSyntax, Row

if TYPE_CHECKING:
    from .document import Document

logger = logging.getLogger(__name__)

HLDB: tuple[EditorSyntax, ...] = (
    EditorSyntax(
        filetype="c",
        filematch=C_HL_EXTENSIONS,
        keywords=C_HL_KEYWORDS,
        singleline_comment_start="//",
        multiline_comment_start="/*",
        multiline_comment_end="*/",
        flags=HL_HIGHLIGHT_NUMBERS | HL_HIGHLIGHT_STRINGS,
    ),
    EditorSyntax(
        filetype="python",
        filematch=PY_HL_EXTENSIONS,
        keywords=PY_HL_KEYWORDS,
        singleline_comment_start="#",
        multiline_comment_start="",
        multiline_comment_end="",
        flags=HL_HIGHLIGHT_NUMBERS | HL_HIGHLIGHT_STRINGS,
    ),
)

# C isspace() in the "C" locale.
_WHITESPACE = " \t\n\v\f\r"


def is_separator(c: str) -> bool:
    return not c or c in _WHITESPACE or c == "\0" or c in SEPARATORS


def _is_digit(c: str) -> bool:
    return "0" <= c <= "9"


def syntax_to_color(hl: int) -> int:
    if hl in (HL_COMMENT, HL_MLCOMMENT):
        return 36
    if hl == HL_KEYWORD1:
        return 33
    if hl == HL_KEYWORD2:
        return 32
    if hl == HL_STRING:
        return 35
    if hl == HL_NUMBER:
        return 31
    if hl == HL_MATCH:
        return 34
    return 37


def select_syntax(filename: str | None) -> EditorSyntax | None:
    """Return the definition whose file patterns match ``filename``.

    Patterns starting with a dot are compared against the extension of the
    last path component, anything else is a substring match on the whole name.
    """
    if not filename:
        return None
    ext = os.path.splitext(os.path.basename(filename))[1]
    for syntax in HLDB:
        for pattern in syntax.filematch:
            if pattern.startswith("."):
                if ext == pattern:
                    logger.debug("selected %s syntax for %s", syntax.filetype, filename)
                    return syntax
            elif pattern in filename:
                logger.debug("selected %s syntax for %s", syntax.filetype, filename)
                return syntax
    return None


def _match_keyword(text: str, i: int, keywords: tuple[str, ...]) -> tuple[int, int] | None:
    best: tuple[int, int] | None = None
    for kw in keywords:
        kw2 = kw.endswith("|")
        token = kw[:-1] if kw2 else kw
        end = i + len(token)
        if not token or not text.startswith(token, i):
            continue
        # Keywords must end at a separator: "intx" is not "int".
        if not is_separator(text[end : end + 1]):
            continue
        if best is None or len(token) > best[0]:
            best = (len(token), HL_KEYWORD2 if kw2 else HL_KEYWORD1)
    return best


def highlight_row(row: Row, syntax: EditorSyntax | None, in_comment: bool = False) -> bool:
    """Recompute ``row.hl`` and return whether the row ends inside a comment."""
    p = row.render
    n = len(p)
    hl = [HL_NORMAL] * n
    row.hl = hl
    if syntax is None:
        return False

    scs = syntax.singleline_comment_start
    mcs = syntax.multiline_comment_start
    mce = syntax.multiline_comment_end
    multiline = bool(mcs and mce)
    strings = syntax.flags & HL_HIGHLIGHT_STRINGS
    numbers = syntax.flags & HL_HIGHLIGHT_NUMBERS

    prev_sep = True
    quote = ""
    in_comment = in_comment and multiline
    i = 0
    while i < n:
        c = p[i]
        prev_hl = hl[i - 1] if i > 0 else HL_NORMAL

        if scs and not quote and not in_comment and p.startswith(scs, i):
            hl[i:] = [HL_COMMENT] * (n - i)
            break

        if multiline and not quote:
            if in_comment:
                if p.startswith(mce, i):
                    hl[i : i + len(mce)] = [HL_MLCOMMENT] * len(mce)
                    i += len(mce)
                    in_comment = False
                    prev_sep = True
                    continue
                hl[i] = HL_MLCOMMENT
                i += 1
                continue
            if p.startswith(mcs, i):
                hl[i : i + len(mcs)] = [HL_MLCOMMENT] * len(mcs)
                i += len(mcs)
                in_comment = True
                continue

        if strings:
            if quote:
                hl[i] = HL_STRING
                if c == "\\" and i + 1 < n:
                    hl[i + 1] = HL_STRING
                    i += 2
                    continue
                if c == quote:
                    quote = ""
                i += 1
                prev_sep = True
                continue
            if c in ('"', "'"):
                quote = c
                hl[i] = HL_STRING
                i += 1
                continue

        if numbers and (
            (_is_digit(c) and (prev_sep or prev_hl == HL_NUMBER))
            or (c == "." and prev_hl == HL_NUMBER)
        ):
            hl[i] = HL_NUMBER
            i += 1
            prev_sep = False
            continue

        if prev_sep and syntax.keywords:
            match = _match_keyword(p, i, syntax.keywords)
            if match is not None:
                klen, mark = match
                hl[i : i + klen] = [mark] * klen
                i += klen
                prev_sep = False
                continue

        prev_sep = is_separator(c)
        i += 1

    return in_comment


def update_syntax(doc: Document, idx: int) -> None:
    """Highlight row ``idx`` and carry a changed comment state down the file."""
    rows = doc.rows
    while 0 <= idx < len(rows):
        row = rows[idx]
        seed = idx > 0 and rows[idx - 1].hl_open_comment
        open_comment = highlight_row(row, doc.syntax, seed)
        if row.hl_open_comment == open_comment:
            return
        row.hl_open_comment = open_comment
        idx += 1
