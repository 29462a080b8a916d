from __future__ import annotations

import logging
from typing import Callable

from .constants import CSI_SIMPLE_MAP, CSI_TILDE_MAP, ESC, SS3_SIMPLE_MAP

logger = logging.getLogger(__name__)

# Returns one byte, or None when the bounded wait expired.
ByteReader = Callable[[], int | None]


def _read_byte_blocking(read_byte: ByteReader, idle: Callable[[], None] | None) -> int:
    while True:
        c = read_byte()
        if c is not None:
            return c
        if idle is not None:
            idle()


def read_key(read_byte: ByteReader, idle: Callable[[], None] | None = None) -> int:
    """Decode one logical key.

    A lone ESC and a truncated escape sequence look the same on the wire;
    both come back as ``ESC``, as does any sequence we do not know.
    ``idle`` runs each time the wait for the first byte times out.
    """
    c = _read_byte_blocking(read_byte, idle)
    if c != ESC:
        return c

    seq0 = read_byte()
    if seq0 is None:
        return ESC
    seq1 = read_byte()
    if seq1 is None:
        return ESC

    if seq0 == ord("["):
        if ord("0") <= seq1 <= ord("9"):
            seq2 = read_byte()
            if seq2 is None:
                return ESC
            if seq2 == ord("~") and seq1 in CSI_TILDE_MAP:
                return CSI_TILDE_MAP[seq1]
            logger.debug("unknown escape sequence: ESC [ %r %r", chr(seq1), chr(seq2))
            return ESC
        if seq1 in CSI_SIMPLE_MAP:
            return CSI_SIMPLE_MAP[seq1]
    elif seq0 == ord("O"):
        if seq1 in SS3_SIMPLE_MAP:
            return SS3_SIMPLE_MAP[seq1]
    logger.debug("unknown escape sequence: ESC %r %r", chr(seq0), chr(seq1))
    return ESC
