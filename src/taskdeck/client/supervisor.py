# src/taskdeck/client/supervisor.py

"""
TerminalClient: keeps one session channel open for a LineEditor.

Reconnect policy: after a close, up to `attempts` reconnects with a fixed
`delay_seconds` between them; the counter resets on every successful
connect. Exhausting it is final and shown to the user.

Commands submitted while disconnected go to an outbox and are sent, in
order, right after the next successful connect. A queued command leaves
the input line (it is listed as pending) so typing can go on meanwhile.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Any

from websockets.asyncio.client import connect as ws_connect
from websockets.exceptions import ConnectionClosed, WebSocketException

from ..terminal.protocol import (
    CommandEnvelope,
    ErrorEnvelope,
    OutputEnvelope,
    ParseEnvelope,
    ProtocolError,
    decode,
    encode,
)
from .editor import RED, LineEditor

logger = logging.getLogger(__name__)

RECONNECT_FAILED_TEXT = "Failed to reconnect after multiple attempts. Please restart the client."

Connector = Callable[[str], Awaitable[Any]]


class TerminalClient:
    def __init__(
        self,
        url: str,
        editor: LineEditor,
        *,
        attempts: int = 5,
        delay_seconds: float = 2.0,
        connect: Connector | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.url = url
        self.editor = editor
        self.attempts = max(0, int(attempts))
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._connect = connect or ws_connect
        self._sleep = sleep
        self._conn: Any = None
        self._stopped = False
        self.failed = False
        self.outbox: deque[str] = deque()

    @property
    def connected(self) -> bool:
        return self._conn is not None

    async def run(self) -> bool:
        """Connect and reconnect until stop() or exhaustion. False when exhausted."""
        failures = 0
        while not self._stopped:
            conn = await self._open()
            if conn is not None:
                failures = 0
                self._conn = conn
                try:
                    await self._flush_outbox()
                    await self._receive(conn)
                finally:
                    self._conn = None
                if self._stopped:
                    break
                self.editor.notice("Connection closed.", color=RED)

            if failures >= self.attempts:
                self.failed = True
                self.editor.notice(RECONNECT_FAILED_TEXT, color=RED)
                logger.warning("Giving up on %s after %d reconnect attempts", self.url, failures)
                return False

            failures += 1
            self.editor.notice(f"Attempting to reconnect ({failures}/{self.attempts})...")
            await self._sleep(self.delay_seconds)
        return True

    async def stop(self) -> None:
        self._stopped = True
        conn = self._conn
        if conn is not None:
            await conn.close()

    async def submit(self, command: str) -> bool:
        """Send `command`, or queue it until the channel is back. True when sent now."""
        if self._conn is not None and not self.outbox:
            if await self._send(self._conn, CommandEnvelope(command)):
                self.editor.accept(command)
                return True

        if not self.outbox or self.outbox[-1] != command:
            self.outbox.append(command)
        self.editor.park(command)
        return False

    async def ask(self, text: str) -> bool:
        """Request a command suggestion for natural-language `text`."""
        if self._conn is None:
            self.editor.notice("Not connected; suggestions need a live session.", color=RED)
            return False
        return await self._send(self._conn, ParseEnvelope(text))

    async def _open(self) -> Any:
        try:
            return await self._connect(self.url)
        except (OSError, WebSocketException, asyncio.TimeoutError) as e:
            logger.info("Connect to %s failed: %s", self.url, e)
            return None

    async def _send(self, conn: Any, envelope: CommandEnvelope | ParseEnvelope) -> bool:
        try:
            await conn.send(encode(envelope))
        except ConnectionClosed:
            return False
        return True

    async def _flush_outbox(self) -> None:
        while self.outbox and self._conn is not None:
            command = self.outbox[0]
            if not await self._send(self._conn, CommandEnvelope(command)):
                return
            self.outbox.popleft()
            self.editor.notice(f"Sent queued command: {command}")
            logger.debug("Flushed queued command %r", command)

    async def _receive(self, conn: Any) -> None:
        try:
            async for raw in conn:
                self._dispatch(raw)
        except ConnectionClosed as e:
            logger.info("Session channel closed: %s", e)

    def _dispatch(self, raw: str | bytes) -> None:
        try:
            envelope = decode(raw)
        except ProtocolError:
            text = raw.decode("utf-8", "replace") if isinstance(raw, bytes) else raw
            self.editor.show_output(text)
            return

        if isinstance(envelope, OutputEnvelope):
            self.editor.show_output(envelope.output)
        elif isinstance(envelope, ErrorEnvelope):
            self.editor.show_error(envelope.error)
        elif isinstance(envelope, CommandEnvelope):
            self.editor.prefill(envelope.command)
        else:
            logger.debug("Ignoring unexpected %s frame", type(envelope).__name__)
