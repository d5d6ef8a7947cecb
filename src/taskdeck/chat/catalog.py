# src/taskdeck/chat/catalog.py

"""
In-memory collaborators served by the API: saved reports and the chat log.

Neither is persisted; both start fresh with the process.
"""

from __future__ import annotations

import itertools
import threading
from dataclasses import dataclass, field
from datetime import UTC, datetime


@dataclass(frozen=True, slots=True)
class Report:
    id: int
    name: str
    filter: str
    description: str | None = None


DEFAULT_REPORTS: tuple[tuple[str, str, str], ...] = (
    ("Pending", "status:pending", "Tasks that are pending completion"),
    ("Completed", "status:completed", "Tasks that have been completed"),
    ("Due Soon", "due:today or due:tomorrow", "Tasks due today or tomorrow"),
    ("All Tasks", "", "All tasks in the system"),
)


class ReportCatalog:
    def __init__(self, *, defaults: bool = True) -> None:
        self._reports: dict[int, Report] = {}
        self._ids = itertools.count(1)
        if defaults:
            for name, filt, description in DEFAULT_REPORTS:
                self.create(name, filt, description)

    def create(self, name: str, filter: str, description: str | None = None) -> Report:
        name = name.strip()
        if not name:
            raise ValueError("report name is required")
        if self.find(name) is not None:
            raise ValueError(f"report already exists: {name}")
        report = Report(id=next(self._ids), name=name, filter=filter.strip(), description=description)
        self._reports[report.id] = report
        return report

    def all(self) -> list[Report]:
        return list(self._reports.values())

    def find(self, key: str) -> Report | None:
        """By id ("3") or by name (case-insensitive)."""
        key = key.strip()
        if key.isdigit():
            return self._reports.get(int(key))
        wanted = key.lower()
        for report in self._reports.values():
            if report.name.lower() == wanted:
                return report
        return None

    def filter_for(self, key: str) -> str | None:
        report = self.find(key)
        return report.filter if report is not None else None


@dataclass(frozen=True, slots=True)
class ChatEntry:
    id: int
    content: str
    role: str
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))


CHAT_ROLES = frozenset({"user", "assistant"})


class ChatLog:
    """Append-only chat history; recent() returns the newest `limit`, oldest first."""

    def __init__(self) -> None:
        self._entries: list[ChatEntry] = []
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def add(self, content: str, role: str) -> ChatEntry:
        if role not in CHAT_ROLES:
            raise ValueError(f"role must be one of {sorted(CHAT_ROLES)}")
        if not content or not content.strip():
            raise ValueError("content is required")
        with self._lock:
            entry = ChatEntry(id=next(self._ids), content=content, role=role)
            self._entries.append(entry)
        return entry

    def recent(self, limit: int = 50) -> list[ChatEntry]:
        with self._lock:
            entries = sorted(self._entries, key=lambda e: (e.timestamp, e.id))
        if limit <= 0:
            return []
        return entries[-limit:]
