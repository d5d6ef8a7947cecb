# src/taskdeck/cli/terminal.py

"""
Terminal client entrypoint.

Reads raw keys from stdin, edits one input line locally (LineEditor) and
talks to the server's tasksh session over the WebSocket channel
(TerminalClient). Lines starting with "/" are local commands.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import sys

from ..client.editor import AnsiDisplay, LineEditor
from ..client.keys import Key, KeyDecoder, raw_terminal
from ..client.supervisor import TerminalClient
from ..config import get_settings
from ..logging_setup import setup_logging
from .commands import registry as command_registry

logger = logging.getLogger(__name__)

GREEN = "\x1b[1;3;32m"
EXIT_COMMANDS = ("/exit", "/quit")


async def run_terminal(settings, *, fd: int | None = None) -> bool:
    """Run until /exit, Ctrl+C/Ctrl+D or reconnect exhaustion. False on exhaustion."""
    if fd is None:
        fd = sys.stdin.fileno()

    editor = LineEditor(AnsiDisplay(), prompt=settings.terminal_prompt)
    client = TerminalClient(
        settings.terminal_url,
        editor,
        attempts=settings.reconnect_attempts,
        delay_seconds=settings.reconnect_delay_seconds,
    )
    decoder = KeyDecoder()

    loop = asyncio.get_running_loop()
    inbox: asyncio.Queue[bytes] = asyncio.Queue()
    loop.add_reader(fd, lambda: inbox.put_nowait(os.read(fd, 1024)))

    editor.notice("Connecting to Taskwarrior Shell...", color=GREEN)
    session = asyncio.create_task(client.run(), name="terminal-session")

    try:
        while True:
            read = asyncio.create_task(inbox.get())
            done, _ = await asyncio.wait({read, session}, return_when=asyncio.FIRST_COMPLETED)
            if session in done:
                read.cancel()
                break

            data = read.result()
            if not data:
                break

            for key in decoder.feed_bytes(data):
                if key in (Key.INTERRUPT, Key.EOF):
                    return True

                command = editor.handle_key(key)
                if command is None:
                    continue

                if command.lower() in EXIT_COMMANDS:
                    return True

                if command.startswith("/"):
                    editor.accept(command)
                    reply = await command_registry.handle(client, command, emit=editor.notice)
                    if reply:
                        editor.show_output(reply)
                    continue

                await client.submit(command)
    finally:
        loop.remove_reader(fd)
        await client.stop()
        if not session.done():
            session.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await session

    return not client.failed


def main() -> None:
    settings = get_settings()
    setup_logging(
        log_dir=settings.data_dir.parent / "logs",
        log_name="taskdeck-terminal.log",
        console=False,
    )

    ok = True
    with raw_terminal() as fd:
        with contextlib.suppress(KeyboardInterrupt):
            ok = asyncio.run(run_terminal(settings, fd=fd))
    sys.stdout.write("\r\n")
    raise SystemExit(0 if ok else 1)


if __name__ == "__main__":
    main()
