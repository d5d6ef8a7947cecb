# src/taskdeck/taskwarrior/models.py

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import StrEnum
from typing import Any, Union

from .errors import ReconciliationDegraded

# Dates can arrive as date/datetime objects (API layer) or as free text
# (ISO strings, tool synonyms such as "tomorrow").
DateInput = Union[date, datetime, str]

DATE_FIELDS: tuple[str, ...] = ("due", "wait", "scheduled", "until")


class TaskStatus(StrEnum):
    """
    Statuses Taskwarrior is known to report.

    The tool may define more; those are carried as plain strings.
    """

    PENDING = "pending"
    COMPLETED = "completed"
    DELETED = "deleted"
    WAITING = "waiting"
    RECURRING = "recurring"

    @classmethod
    def from_tool(cls, raw: Any) -> str:
        if raw is None or str(raw).strip() == "":
            return cls.PENDING
        text = str(raw).strip()
        try:
            return cls(text)
        except ValueError:
            return text


class Priority(StrEnum):
    HIGH = "H"
    MEDIUM = "M"
    LOW = "L"

    @classmethod
    def parse(cls, raw: Any) -> Priority | None:
        """Accept H/M/L as well as high/medium/low (any case). Empty -> None."""
        if raw is None:
            return None
        if isinstance(raw, Priority):
            return raw
        text = str(raw).strip().lower()
        if not text:
            return None
        for member in cls:
            if text in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"Unknown priority: {raw!r}")


@dataclass(frozen=True, slots=True)
class Annotation:
    description: str
    entry: datetime | None = None


@dataclass(slots=True)
class Task:
    id: str
    description: str
    status: str = TaskStatus.PENDING
    priority: Priority | None = None
    project: str | None = None
    tags: list[str] = field(default_factory=list)

    due: datetime | None = None
    wait: datetime | None = None
    scheduled: datetime | None = None
    until: datetime | None = None

    # Newline-joined, in the order the tool reported them.
    annotations: str | None = None
    annotation_entries: list[Annotation] = field(default_factory=list)

    created: datetime | None = None
    modified: datetime | None = None
    completed: datetime | None = None

    # Produced by the tool, never computed here.
    urgency: str | None = None
    depends: list[str] = field(default_factory=list)

    # Working-set number; changes whenever the tool renumbers.
    number: int | None = None

    # Unknown export keys, kept so exports round-trip.
    extra: dict[str, Any] = field(default_factory=dict)

    degraded: ReconciliationDegraded | None = None


@dataclass(slots=True)
class NewTask:
    """Payload for creating a task."""

    description: str
    priority: Priority | None = None
    project: str | None = None
    tags: list[str] | None = None
    due: DateInput | None = None
    wait: DateInput | None = None
    scheduled: DateInput | None = None
    until: DateInput | None = None
    annotations: str | None = None
    depends: list[str] | None = None

    def __post_init__(self) -> None:
        if not self.description or not self.description.strip():
            raise ValueError("description is required")


@dataclass(slots=True)
class TaskChanges:
    """
    Partial update. None means "leave unchanged".

    `tags` is a replacement: an empty list clears every tag.
    """

    description: str | None = None
    status: str | None = None
    priority: Priority | None = None
    project: str | None = None
    tags: list[str] | None = None
    due: DateInput | None = None
    wait: DateInput | None = None
    scheduled: DateInput | None = None
    until: DateInput | None = None
    annotations: str | None = None
    depends: list[str] | None = None

    def __post_init__(self) -> None:
        if self.description is not None and not self.description.strip():
            raise ValueError("description cannot be empty")

    def is_empty(self) -> bool:
        return all(getattr(self, name) is None for name in self.__slots__)


@dataclass(slots=True)
class TaskFilter:
    status: str | None = None
    project: str | None = None
    tag: str | None = None
    priority: Priority | None = None
    search: str | None = None
    report: str | None = None


@dataclass(frozen=True, slots=True)
class CommandInvocation:
    """
    One call of the tool, as shell-safe components (base command excluded).

    Components may carry double quotes (`"Buy milk"`, `project:"Home"`);
    ProcessInvoker splits them with POSIX shell rules, never a shell.
    """

    components: tuple[str, ...]
    stdin: str | None = None

    def render(self) -> str:
        return " ".join(self.components)


@dataclass(frozen=True, slots=True)
class CommandResult:
    stdout: str
    stderr: str
    exit_status: int
