# src/taskdeck/client/editor.py

"""
Single-line input editor for the terminal client.

Rendering rule: every change redraws the whole input line (carriage
return, clear line, prompt, buffer). Nothing relies on the terminal's idea
of the cursor column.

Enter hands the trimmed buffer to the caller and records it in history,
but the buffer is only cleared by accept(), once the command is known to
have been sent, or by park(), once it is held in the client outbox.
"""

from __future__ import annotations

import re
import sys
from typing import Protocol, TextIO

from .keys import Key

CLEAR_LINE = "\r\x1b[2K"
RED = "\x1b[1;31m"
YELLOW = "\x1b[1;33m"
RESET = "\x1b[0m"

_PROMPT_ECHO_RE = re.compile(r"^tasksh> ", re.MULTILINE)


class Display(Protocol):
    def write(self, text: str) -> None: ...


class AnsiDisplay:
    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    def write(self, text: str) -> None:
        self._stream.write(text)
        self._stream.flush()


def _crlf(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\n", "\r\n")


class LineEditor:
    def __init__(self, display: Display, *, prompt: str = "tasksh> ") -> None:
        self.display = display
        self.prompt = prompt
        self.buffer = ""
        # Append-only; no eviction.
        self.history: list[str] = []
        self._index = -1  # -1: live buffer, 0: newest history entry
        self._draft = ""

    @property
    def history_index(self) -> int:
        return self._index

    def redraw(self) -> None:
        self.display.write(CLEAR_LINE + self.prompt + self.buffer)

    def handle_key(self, key: Key | str) -> str | None:
        """Apply one key. Returns a command to send when Enter completes one."""
        if key == Key.UP:
            if self._index < len(self.history) - 1:
                if self._index == -1:
                    self._draft = self.buffer
                self._index += 1
                self.buffer = self.history[-1 - self._index]
                self.redraw()
            return None

        if key == Key.DOWN:
            if self._index > 0:
                self._index -= 1
                self.buffer = self.history[-1 - self._index]
                self.redraw()
            elif self._index == 0:
                self._index = -1
                self.buffer = self._draft
                self.redraw()
            return None

        if key == Key.BACKSPACE:
            if self.buffer:
                self.buffer = self.buffer[:-1]
                self.redraw()
            return None

        if key == Key.ENTER:
            command = self.buffer.strip()
            self.display.write("\r\n")
            self._index = -1
            self._draft = ""
            if not command:
                self.buffer = ""
                self.redraw()
                return None
            self.history.append(command)
            return command

        if isinstance(key, Key):
            # Tab, Ctrl+C and Ctrl+D are handled by the caller.
            return None

        self.buffer += key
        self._index = -1
        self.redraw()
        return None

    def accept(self, command: str) -> None:
        """`command` was delivered; clear the buffer if it still holds it."""
        if self.buffer.strip() == command:
            self.buffer = ""
            self.redraw()

    def park(self, command: str) -> None:
        """`command` waits in the outbox: listed as pending, input starts on a fresh line."""
        if self.buffer.strip() == command:
            self.buffer = ""
        self.notice(f"Queued until reconnect: {command}")

    def prefill(self, command: str) -> None:
        """Suggested command: shown for editing, never sent automatically."""
        self.buffer = command
        self._index = -1
        self.redraw()

    def show_output(self, text: str) -> None:
        text = _PROMPT_ECHO_RE.sub("", text)
        self.display.write(CLEAR_LINE + _crlf(text.rstrip("\n")) + "\r\n")
        self.redraw()

    def show_error(self, text: str) -> None:
        self.display.write(CLEAR_LINE + f"{RED}Error: {_crlf(text.rstrip())}{RESET}\r\n")
        self.redraw()

    def notice(self, text: str, *, color: str = YELLOW) -> None:
        self.display.write(CLEAR_LINE + f"{color}{text}{RESET}\r\n")
        self.redraw()
