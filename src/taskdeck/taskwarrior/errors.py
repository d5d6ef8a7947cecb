# src/taskdeck/taskwarrior/errors.py

"""
Error taxonomy for the Taskwarrior integration.

Raised (operation failures):
- ExecutionError: the tool could not be spawned, timed out, or exited non-zero
- ParseError: tool output did not have the expected shape
- NotFound: read/update/delete target provably absent

Not raised:
- ReconciliationDegraded: a quality marker attached to an otherwise
  successful result whose state could not be confirmed by a read-back.
"""

from __future__ import annotations

from dataclasses import dataclass


class TaskwarriorError(RuntimeError):
    """Base class for failures surfaced to callers of the sync engine."""


class ExecutionError(TaskwarriorError):
    def __init__(
        self,
        message: str,
        *,
        command: str = "",
        exit_status: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.command = command
        self.exit_status = exit_status
        self.stderr = stderr


class ParseError(TaskwarriorError):
    pass


class NotFound(TaskwarriorError):
    def __init__(self, task_id: str) -> None:
        super().__init__(f"Task not found: {task_id}")
        self.task_id = task_id


@dataclass(frozen=True, slots=True)
class ReconciliationDegraded:
    """
    Why a returned Task could not be confirmed against the tool.

    `confirmed_id` is False when the record's `id` is the tool's transient
    working-set number (or empty) rather than its stable uuid.
    """

    reason: str
    attempts: int
    transient_id: int | None = None
    confirmed_id: bool = False
