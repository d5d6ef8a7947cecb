# src/taskdeck/cli/commands.py

from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Union, cast

from ..client.supervisor import TerminalClient

CommandEmitter = Callable[[str], None]
CommandResult = Union[str, None, Awaitable[Union[str, None]]]
CommandHandler2 = Callable[[TerminalClient, list[str]], CommandResult]
CommandHandler3 = Callable[[TerminalClient, list[str], Union[CommandEmitter, None]], CommandResult]
CommandHandler = Union[CommandHandler2, CommandHandler3]

logger = logging.getLogger(__name__)


class CommandRegistry:
    """Local slash commands of the terminal client (/help, /ask, ...); never sent to tasksh."""

    def __init__(self) -> None:
        self._handlers: dict[str, CommandHandler] = {}
        self._help: dict[str, str] = {}

    def register(
        self,
        name: str,
        handler: CommandHandler,
        help_text: str,
        aliases: list[str] | None = None,
    ) -> None:
        aliases = aliases or []
        key = name.lower()
        self._handlers[key] = handler
        self._help[key] = help_text
        for alias in aliases:
            self._handlers[alias.lower()] = handler

    async def handle(
        self,
        client: TerminalClient,
        line: str,
        emit: CommandEmitter | None = None,
    ) -> str | None:
        """
        Handle a string like "/command args".
        Returns a reply string, or None if `line` is not a command (or has no reply).
        """
        if not line.startswith("/"):
            return None

        parts = line[1:].split()
        if not parts:
            return "Empty command. Use /help to list available commands."

        name = parts[0].lower()
        args = parts[1:]

        handler = self._handlers.get(name)
        if not handler:
            return f"Unknown command: /{name}. Use /help to list available commands."

        nparams = len(inspect.signature(handler).parameters)
        if nparams >= 3:
            result = cast(CommandHandler3, handler)(client, args, emit)
        else:
            result = cast(CommandHandler2, handler)(client, args)

        if inspect.isawaitable(result):
            result = await result
        return result

    def build_help(self) -> str:
        lines = ["Local commands (everything else goes to tasksh):"]
        for name, help_text in self._help.items():
            lines.append(f"  /{name} - {help_text}")
        lines.append("  /exit - Close the terminal client.")
        return "\n".join(lines)


registry = CommandRegistry()


def cmd_help(client: TerminalClient, args: list[str]) -> str:
    return registry.build_help()


def cmd_status(client: TerminalClient, args: list[str]) -> str:
    conn = "connected" if client.connected else "disconnected"
    return (
        "Status:\n"
        f"  Session: {client.url} ({conn})\n"
        f"  Queued commands: {len(client.outbox)}\n"
        f"  Reconnect policy: {client.attempts} attempts, {client.delay_seconds:g}s apart"
    )


def cmd_history(client: TerminalClient, args: list[str]) -> str:
    history = client.editor.history
    if not history:
        return "History is empty."
    return "\n".join(f"{i:>4}  {cmd}" for i, cmd in enumerate(history, start=1))


async def cmd_ask(
    client: TerminalClient,
    args: list[str],
    emit: CommandEmitter | None = None,
) -> str | None:
    """
    /ask <request in plain words>
    The suggested command arrives later and pre-fills the input line.
    """
    text = " ".join(args).strip()
    if not text:
        return "Usage: /ask <what you want to do>"
    if emit:
        emit("Asking the assistant for a command...")
    logger.debug("Command suggestion requested: %r", text)
    if not await client.ask(text):
        return "Could not send the request; the session is not connected."
    return None


registry.register("help", cmd_help, help_text="Show local commands.", aliases=["h", "?"])
registry.register("status", cmd_status, help_text="Show connection state and queued commands.")
registry.register("history", cmd_history, help_text="List commands entered in this client.")
registry.register("ask", cmd_ask, help_text="Suggest a command from plain words: /ask <text>.")
