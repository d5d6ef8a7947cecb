# src/taskdeck/client/keys.py

from __future__ import annotations

import codecs
import contextlib
import os
import sys
from collections.abc import Iterator
from enum import StrEnum


class Key(StrEnum):
    ENTER = "enter"
    BACKSPACE = "backspace"
    UP = "up"
    DOWN = "down"
    TAB = "tab"
    INTERRUPT = "interrupt"
    EOF = "eof"


_CONTROL: dict[str, Key] = {
    "\r": Key.ENTER,
    "\n": Key.ENTER,
    "\x7f": Key.BACKSPACE,
    "\x08": Key.BACKSPACE,
    "\t": Key.TAB,
    "\x03": Key.INTERRUPT,
    "\x04": Key.EOF,
}

_ESCAPES: dict[str, Key] = {
    "\x1b[A": Key.UP,
    "\x1bOA": Key.UP,
    "\x1b[B": Key.DOWN,
    "\x1bOB": Key.DOWN,
}


class KeyDecoder:
    """
    Raw terminal input -> keys.

    Printable characters come out as one-character strings. Escape
    sequences split across reads are held back until complete; unknown ones
    are dropped. Bytes go through `feed_bytes`, which keeps a UTF-8 sequence
    cut between two reads until its last byte arrives.
    """

    def __init__(self) -> None:
        self._pending = ""
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed_bytes(self, data: bytes) -> list[Key | str]:
        return self.feed(self._utf8.decode(data))

    def feed(self, data: str) -> list[Key | str]:
        self._pending += data
        out: list[Key | str] = []
        while self._pending:
            ch = self._pending[0]

            if ch == "\x1b":
                seq = self._take_escape()
                if seq is None:
                    break
                key = _ESCAPES.get(seq)
                if key is not None:
                    out.append(key)
                continue

            self._pending = self._pending[1:]
            if ch in _CONTROL:
                # "\r\n" is one Enter.
                if ch == "\r" and self._pending.startswith("\n"):
                    self._pending = self._pending[1:]
                out.append(_CONTROL[ch])
            elif ch.isprintable():
                out.append(ch)
        return out

    def _take_escape(self) -> str | None:
        buf = self._pending
        if len(buf) < 2:
            return None
        if buf[1] not in "[O":
            self._pending = buf[1:]
            return "\x1b"
        # CSI / SS3: parameters then one final byte in @..~
        for i in range(2, len(buf)):
            if "@" <= buf[i] <= "~":
                self._pending = buf[i + 1 :]
                return buf[: i + 1]
        return None


@contextlib.contextmanager
def raw_terminal(fd: int | None = None) -> Iterator[int]:
    """Put the tty in cbreak mode for the duration of the block (no-op if not a tty)."""
    if fd is None:
        fd = sys.stdin.fileno()
    if not os.isatty(fd):
        yield fd
        return

    import termios
    import tty

    saved = termios.tcgetattr(fd)
    try:
        tty.setcbreak(fd)
        # cbreak keeps ISIG; Ctrl+C must arrive as a key.
        attrs = termios.tcgetattr(fd)
        attrs[3] &= ~(termios.ISIG | termios.ECHO)
        termios.tcsetattr(fd, termios.TCSANOW, attrs)
        yield fd
    finally:
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)
