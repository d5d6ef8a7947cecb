# src/taskdeck/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The engine, the bridge and the chat assistant depend on Protocols instead of
concrete implementations. This keeps the subprocess, the transport and the
completion provider swappable and makes testing easier.
"""

from collections.abc import AsyncIterator, Iterable
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ..taskwarrior.models import CommandInvocation, CommandResult

ChatMessage = dict[str, str]
# OpenAI-style chat messages: {"role": "...", "content": "..."}.


class LLMClient(Protocol):
    """Streaming chat completion client (OpenAI-compatible)."""
    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]: ...


class CommandRunner(Protocol):
    """Runs one Taskwarrior invocation to completion (ProcessInvoker)."""
    def execute(self, invocation: CommandInvocation) -> CommandResult: ...


class CommandTranslator(Protocol):
    """Natural language -> Taskwarrior command text ("" when it cannot)."""
    def parse_command(self, text: str) -> str: ...


class Channel(Protocol):
    """
    Message-framed duplex transport as seen by the session bridge.

    Matches the surface of a websockets connection: iterating yields inbound
    text frames until the peer closes.
    """

    def __aiter__(self) -> AsyncIterator[str | bytes]: ...
    async def send(self, message: str) -> None: ...
    async def close(self, code: int = 1000, reason: str = "") -> None: ...


class InteractiveProcess(Protocol):
    """The persistent interactive subprocess behind one session."""

    @property
    def returncode(self) -> int | None: ...
    async def start(self) -> None: ...
    async def write_line(self, text: str) -> None: ...
    def stdout_chunks(self) -> AsyncIterator[str]: ...
    def stderr_chunks(self) -> AsyncIterator[str]: ...
    async def wait(self) -> int: ...
    async def terminate(self) -> None: ...
