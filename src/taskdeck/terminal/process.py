# src/taskdeck/terminal/process.py

from __future__ import annotations

import asyncio
import codecs
import contextlib
import logging
from collections.abc import AsyncIterator
from enum import StrEnum

from ..taskwarrior.errors import ExecutionError
from ..taskwarrior.rc import TaskwarriorConfig, ensure_taskrc

logger = logging.getLogger(__name__)

_READ_SIZE = 4096


class SessionState(StrEnum):
    STARTING = "starting"
    RUNNING = "running"
    TERMINATED = "terminated"


class SessionProcess:
    """
    One interactive `tasksh` subprocess.

    STARTING -> RUNNING -> TERMINATED; TERMINATED is final. The rc file is
    ensured before spawn, and the child sees only the explicit
    TaskwarriorConfig environment overrides.
    """

    def __init__(self, config: TaskwarriorConfig) -> None:
        self._config = config
        self._proc: asyncio.subprocess.Process | None = None
        self._state = SessionState.STARTING

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def pid(self) -> int | None:
        return self._proc.pid if self._proc is not None else None

    @property
    def returncode(self) -> int | None:
        return self._proc.returncode if self._proc is not None else None

    async def start(self) -> None:
        if self._state is not SessionState.STARTING:
            raise RuntimeError(f"Session process cannot start from state {self._state}")

        ensure_taskrc(self._config)
        try:
            self._proc = await asyncio.create_subprocess_exec(
                self._config.tasksh_bin,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=self._config.env(),
            )
        except FileNotFoundError as e:
            self._state = SessionState.TERMINATED
            raise ExecutionError(
                f"tasksh executable not found: {self._config.tasksh_bin}",
                command=self._config.tasksh_bin,
            ) from e
        except OSError as e:
            self._state = SessionState.TERMINATED
            raise ExecutionError(f"tasksh failed to start: {e}", command=self._config.tasksh_bin) from e

        self._state = SessionState.RUNNING
        logger.info("tasksh started (pid=%s)", self._proc.pid)

    async def write_line(self, text: str) -> None:
        if self._state is not SessionState.RUNNING or self._proc is None or self._proc.stdin is None:
            raise ExecutionError("tasksh is not running", command=text)
        try:
            self._proc.stdin.write((text + "\n").encode("utf-8"))
            await self._proc.stdin.drain()
        except (BrokenPipeError, ConnectionResetError) as e:
            raise ExecutionError("tasksh closed its input", command=text) from e

    def stdout_chunks(self) -> AsyncIterator[str]:
        return self._chunks(self._proc.stdout if self._proc else None)

    def stderr_chunks(self) -> AsyncIterator[str]:
        return self._chunks(self._proc.stderr if self._proc else None)

    async def _chunks(self, stream: asyncio.StreamReader | None) -> AsyncIterator[str]:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stream.read(_READ_SIZE)
            if not data:
                tail = decoder.decode(b"", final=True)
                if tail:
                    yield tail
                return
            text = decoder.decode(data)
            if text:
                yield text

    async def wait(self) -> int:
        if self._proc is None:
            self._state = SessionState.TERMINATED
            return -1
        code = await self._proc.wait()
        if self._state is not SessionState.TERMINATED:
            logger.info("tasksh exited with code %s", code)
        self._state = SessionState.TERMINATED
        return code

    async def terminate(self) -> None:
        """Kill the child if it is still alive. Safe to call more than once."""
        if self._proc is None:
            self._state = SessionState.TERMINATED
            return
        if self._proc.returncode is None:
            with contextlib.suppress(ProcessLookupError):
                self._proc.kill()
            logger.info("tasksh killed (pid=%s)", self._proc.pid)
        await self._proc.wait()
        self._state = SessionState.TERMINATED
