# src/taskdeck/chat/assistant.py

"""
Chat assistant on top of the completion service and the sync engine.

- reply(): chat answer with the current tasks as context; the first
  {EXECUTE_COMMAND: ...} directive in the answer is executed and replaced
  by the command and its output.
- parse_command(): natural language -> one Taskwarrior command, or "".

Both are synchronous (the LLM client streams with blocking I/O). Async
callers use asyncio.to_thread.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence

from ..core.ports import ChatMessage, LLMClient
from ..llm.client import LLMError, complete, friendly_llm_error_message
from ..taskwarrior.engine import TaskSyncEngine
from ..taskwarrior.errors import TaskwarriorError
from ..taskwarrior.models import Task
from .catalog import CHAT_ROLES, ChatEntry
from .prompts import PARSE_SYSTEM_PROMPT, get_chat_system_prompt

logger = logging.getLogger(__name__)

EXECUTE_RE = re.compile(r"\{EXECUTE_COMMAND:\s*(.*?)\}")
_FENCE_RE = re.compile(r"^```[a-z]*\s*|\s*```$")

CONTEXT_TASK_LIMIT = 10
FALLBACK_REPLY = "I'm sorry, I couldn't generate a response."


def _task_line(t: Task) -> str:
    due = f"Due: {t.due.date().isoformat()}" if t.due else "No due date"
    priority = t.priority.value if t.priority else "No priority"
    return f"- {t.description} ({t.status}, {t.project or 'No project'}, {priority}, {due})"


class ChatAssistant:
    def __init__(
        self,
        llm: LLMClient,
        engine: TaskSyncEngine,
        *,
        context_limit: int = CONTEXT_TASK_LIMIT,
    ) -> None:
        self.llm = llm
        self.engine = engine
        self.context_limit = context_limit

    def reply(self, message: str, history: Sequence[ChatEntry] = ()) -> str:
        messages: list[ChatMessage] = [
            {"role": e.role, "content": e.content} for e in history if e.role in CHAT_ROLES
        ]
        messages.append({"role": "user", "content": message})

        try:
            text = complete(self.llm, messages, get_chat_system_prompt(self._task_context())).strip()
        except LLMError as e:
            logger.info("Chat completion failed: %s", e)
            return f"I encountered an error: {friendly_llm_error_message(e)} Please try again later."

        if not text:
            return FALLBACK_REPLY

        m = EXECUTE_RE.search(text)
        if m is None:
            return text

        command = m.group(1).strip()
        result = self.execute(command)
        replacement = f"I executed the command: `{command}`\n\nResult:\n```\n{result}\n```"
        return text[: m.start()] + replacement + text[m.end() :]

    def execute(self, command: str) -> str:
        """Run an assistant-issued command; failures become text for the user."""
        logger.info("Executing assistant command: %s", command)
        try:
            return self.engine.execute_raw(command)
        except TaskwarriorError as e:
            logger.warning("Assistant command failed: %s", e)
            msg = str(e)
            if "Invalid date" in msg or "Invalid time" in msg:
                return (
                    "Error executing command: There was an issue with the date format. "
                    "Use YYYY-MM-DD or relative dates like 'today', 'tomorrow' or 'today+2d'."
                )
            return f"Error executing command: {msg}"
        except ValueError as e:
            return f"Error executing command: {e}"

    def parse_command(self, text: str) -> str:
        try:
            raw = complete(self.llm, [{"role": "user", "content": text}], PARSE_SYSTEM_PROMPT)
        except LLMError as e:
            logger.info("Command parsing failed: %s", e)
            return ""

        command = _FENCE_RE.sub("", raw.strip()).strip().strip("`").strip()
        command = command.splitlines()[0].strip() if command else ""
        if command == "task" or command.startswith("task "):
            command = command[4:].strip()
        return command

    def _task_context(self) -> str:
        try:
            tasks = self.engine.list_tasks()
        except TaskwarriorError as e:
            logger.warning("Task context unavailable: %s", e)
            return "Current tasks: unavailable."
        lines = [f"Current tasks ({len(tasks)} total):"]
        lines.extend(_task_line(t) for t in tasks[: self.context_limit])
        return "\n".join(lines)
