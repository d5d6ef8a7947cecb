# src/taskdeck/terminal/bridge.py

"""
TerminalSessionBridge: one channel <-> one interactive subprocess.

Lifecycle:
- on connect a welcome `output` envelope is sent;
- stdout/stderr chunks are forwarded as `output`/`error` envelopes by two
  pump tasks running concurrently with stdin writes;
- inbound `command` frames are shaped (multi-step sub-commands) and written
  to stdin in arrival order; `parse` frames are answered with a suggested
  `command` envelope;
- whichever ends first (process exit or transport close) terminates the
  other. On process exit the remaining output is drained, a farewell
  `output` envelope is sent and the channel is closed. Nothing is sent after
  that.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import AsyncIterator, Awaitable, Callable

from websockets.exceptions import ConnectionClosed

from ..core.ports import Channel, CommandTranslator, InteractiveProcess
from ..taskwarrior.errors import ExecutionError
from .protocol import (
    CommandEnvelope,
    Envelope,
    ErrorEnvelope,
    OutputEnvelope,
    ParseEnvelope,
    ProtocolError,
    decode,
    encode,
)
from .shaping import InputShaper

logger = logging.getLogger(__name__)

WELCOME_TEXT = (
    "Welcome to Taskwarrior Shell (tasksh)\n"
    "Type commands directly without 'task' prefix\n"
    "Type 'exit' to close the terminal session\n"
)
FAREWELL_TEXT = "\nTaskwarrior shell session ended. Refresh to start a new session."


class TerminalSessionBridge:
    def __init__(
        self,
        channel: Channel,
        process: InteractiveProcess,
        *,
        shaper: InputShaper | None = None,
        translator: CommandTranslator | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._channel = channel
        self._process = process
        self._shaper = shaper or InputShaper()
        self._translator = translator
        self._sleep = sleep
        self._terminated = False

    @property
    def terminated(self) -> bool:
        return self._terminated

    async def run(self) -> None:
        """Serve the session until the process exits or the channel closes."""
        await self._send(OutputEnvelope(WELCOME_TEXT))

        exit_watch = asyncio.create_task(self._watch_process(), name="tasksh-exit")
        inbound = asyncio.create_task(self._read_channel(), name="tasksh-inbound")
        try:
            await asyncio.wait({exit_watch, inbound}, return_when=asyncio.FIRST_COMPLETED)
        finally:
            if not self._terminated:
                # Transport closed first: no drain, no farewell.
                self._terminated = True
                logger.info("Session channel closed; terminating tasksh")
            for task in (exit_watch, inbound):
                if not task.done():
                    task.cancel()
            results = await asyncio.gather(exit_watch, inbound, return_exceptions=True)
            for task, result in zip((exit_watch, inbound), results):
                if isinstance(result, Exception):
                    logger.error("Session task %s failed", task.get_name(), exc_info=result)
            await self._process.terminate()

    # ---- process -> channel ----

    async def _watch_process(self) -> None:
        await asyncio.gather(
            self._pump(self._process.stdout_chunks(), OutputEnvelope),
            self._pump(self._process.stderr_chunks(), ErrorEnvelope),
        )
        code = await self._process.wait()
        if self._terminated:
            return
        logger.info("tasksh exited (code=%s); ending session", code)
        await self._send(OutputEnvelope(FAREWELL_TEXT))
        self._terminated = True
        with contextlib.suppress(ConnectionClosed):
            await self._channel.close()

    async def _pump(self, chunks: AsyncIterator[str], wrap: Callable[[str], Envelope]) -> None:
        async for chunk in chunks:
            if self._terminated:
                continue
            await self._send(wrap(chunk))

    # ---- channel -> process ----

    async def _read_channel(self) -> None:
        try:
            async for raw in self._channel:
                if self._terminated:
                    return
                try:
                    await self._handle_frame(raw)
                except ConnectionClosed:
                    raise
                except Exception:
                    # Only a process exit ends the session.
                    logger.exception("Failed to handle session frame")
                    await self._send(ErrorEnvelope("Failed to process command"))
        except ConnectionClosed as e:
            logger.info("Session channel dropped: %s", e)

    async def _handle_frame(self, raw: str | bytes) -> None:
        try:
            envelope = decode(raw)
        except ProtocolError as e:
            logger.warning("Malformed session frame: %s", e)
            await self._send(ErrorEnvelope(str(e)))
            return

        if isinstance(envelope, CommandEnvelope):
            await self._write_command(envelope.command)
        elif isinstance(envelope, ParseEnvelope):
            await self._suggest_command(envelope.text)
        else:
            await self._send(ErrorEnvelope(f"Unexpected frame from client: {type(envelope).__name__}"))

    async def _write_command(self, line: str) -> None:
        logger.debug("Sending command to tasksh: %r", line)
        try:
            for step in self._shaper.shape(line):
                if step.delay_seconds:
                    await self._sleep(step.delay_seconds)
                if self._terminated:
                    return
                await self._process.write_line(step.text)
        except ExecutionError:
            logger.exception("Failed to write to tasksh")
            await self._send(ErrorEnvelope("Failed to process command"))

    async def _suggest_command(self, text: str) -> None:
        if self._translator is None:
            await self._send(ErrorEnvelope("Command suggestions are not available"))
            return
        command = await asyncio.to_thread(self._translator.parse_command, text)
        await self._send(CommandEnvelope(command))

    async def _send(self, envelope: Envelope) -> None:
        if self._terminated:
            return
        try:
            await self._channel.send(encode(envelope))
        except ConnectionClosed:
            logger.debug("Dropped %s frame: channel already closed", type(envelope).__name__)
