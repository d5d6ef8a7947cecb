# src/taskdeck/taskwarrior/mapper.py

"""
Tool output <-> Task.

The mapper preserves what the tool reports: annotation order, urgency and
any unknown export keys are carried through untouched. Display conventions
(newest-first notes) belong to the presentation layer.
"""

from __future__ import annotations

import json
import logging
import re
from datetime import UTC, datetime
from typing import Any

from .commands import CommandSynthesizer
from .errors import ParseError
from .models import (
    DATE_FIELDS,
    Annotation,
    CommandInvocation,
    NewTask,
    Priority,
    Task,
    TaskChanges,
    TaskStatus,
)

logger = logging.getLogger(__name__)

TW_DATE_FORMAT = "%Y%m%dT%H%M%SZ"

_CREATED_RE = re.compile(r"Created task (\d+)")

_KNOWN_KEYS = frozenset(
    {
        "uuid",
        "id",
        "description",
        "status",
        "priority",
        "project",
        "tags",
        "annotations",
        "entry",
        "modified",
        "end",
        "urgency",
        "depends",
        *DATE_FIELDS,
    }
)


def parse_tw_date(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    text = str(raw).strip()
    try:
        return datetime.strptime(text, TW_DATE_FORMAT).replace(tzinfo=UTC)
    except ValueError:
        pass
    try:
        dt = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError as e:
        raise ParseError(f"Unrecognized date in tool output: {text!r}") from e
    return dt if dt.tzinfo else dt.replace(tzinfo=UTC)


def format_tw_date(value: datetime) -> str:
    if value.tzinfo is not None:
        value = value.astimezone(UTC)
    return value.strftime(TW_DATE_FORMAT)


def _str_list(raw: Any) -> list[str]:
    if raw is None or raw == "":
        return []
    if isinstance(raw, str):
        # Older tool versions export depends as a comma-joined string.
        return [p.strip() for p in raw.split(",") if p.strip()]
    if isinstance(raw, list):
        return [str(x) for x in raw if str(x).strip()]
    raise ParseError(f"Expected a list in tool output, got {type(raw).__name__}")


class ResultMapper:
    def __init__(self, synthesizer: CommandSynthesizer | None = None) -> None:
        self._synth = synthesizer or CommandSynthesizer()

    # ---- tool -> Task ----

    def parse_export(self, stdout: str) -> list[Task]:
        text = (stdout or "").strip()
        if not text:
            return []
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Export is not valid JSON: {e}") from e
        if not isinstance(data, list):
            raise ParseError(f"Export must be a JSON array, got {type(data).__name__}")
        return [self.from_export(item) for item in data]

    def from_export(self, record: Any) -> Task:
        if not isinstance(record, dict):
            raise ParseError(f"Export entry must be an object, got {type(record).__name__}")

        uuid = str(record.get("uuid") or "").strip()
        description = str(record.get("description") or "").strip()
        if not uuid:
            raise ParseError("Export entry has no uuid")
        if not description:
            raise ParseError(f"Export entry {uuid} has no description")

        extra = {k: v for k, v in record.items() if k not in _KNOWN_KEYS}

        priority: Priority | None
        try:
            priority = Priority.parse(record.get("priority"))
        except ValueError:
            # UDA-defined priority values are kept verbatim.
            priority = None
            extra["priority"] = record.get("priority")

        raw_annotations = record.get("annotations") or []
        entries: list[Annotation] = []
        if isinstance(raw_annotations, list):
            for a in raw_annotations:
                if isinstance(a, dict):
                    entries.append(
                        Annotation(
                            description=str(a.get("description", "")),
                            entry=parse_tw_date(a.get("entry")),
                        )
                    )
                else:
                    entries.append(Annotation(description=str(a)))
        else:
            entries.append(Annotation(description=str(raw_annotations)))

        number = record.get("id")
        urgency = record.get("urgency")

        return Task(
            id=uuid,
            description=description,
            status=TaskStatus.from_tool(record.get("status")),
            priority=priority,
            project=(str(record["project"]) if record.get("project") else None),
            tags=_str_list(record.get("tags")),
            due=parse_tw_date(record.get("due")),
            wait=parse_tw_date(record.get("wait")),
            scheduled=parse_tw_date(record.get("scheduled")),
            until=parse_tw_date(record.get("until")),
            annotations="\n".join(e.description for e in entries) if entries else None,
            annotation_entries=entries,
            created=parse_tw_date(record.get("entry")),
            modified=parse_tw_date(record.get("modified")),
            completed=parse_tw_date(record.get("end")),
            urgency=None if urgency is None else str(urgency),
            depends=_str_list(record.get("depends")),
            number=int(number) if isinstance(number, int) and number > 0 else None,
            extra=extra,
        )

    @staticmethod
    def parse_lines(stdout: str) -> list[str]:
        """Line-oriented helper output (_projects, _tags)."""
        return [line.strip() for line in (stdout or "").splitlines() if line.strip()]

    @staticmethod
    def created_id(stdout: str) -> int | None:
        """Transient working-set id from 'Created task N.'"""
        m = _CREATED_RE.search(stdout or "")
        return int(m.group(1)) if m else None

    # ---- Task -> tool ----

    def to_export(self, task: Task) -> dict[str, Any]:
        """Inverse of from_export for tool-native fields."""
        out: dict[str, Any] = dict(task.extra)
        out["id"] = task.number or 0
        out["uuid"] = task.id
        out["description"] = task.description
        out["status"] = str(task.status)
        if task.priority is not None:
            out["priority"] = task.priority.value
        if task.project:
            out["project"] = task.project
        if task.tags:
            out["tags"] = list(task.tags)
        for name in DATE_FIELDS:
            value = getattr(task, name)
            if value is not None:
                out[name] = format_tw_date(value)
        if task.created is not None:
            out["entry"] = format_tw_date(task.created)
        if task.modified is not None:
            out["modified"] = format_tw_date(task.modified)
        if task.completed is not None:
            out["end"] = format_tw_date(task.completed)
        if task.annotation_entries:
            out["annotations"] = [
                {
                    **({"entry": format_tw_date(a.entry)} if a.entry else {}),
                    "description": a.description,
                }
                for a in task.annotation_entries
            ]
        if task.urgency is not None:
            try:
                out["urgency"] = float(task.urgency)
            except ValueError:
                out["urgency"] = task.urgency
        if task.depends:
            out["depends"] = list(task.depends)
        return out

    def to_invocation(self, new: NewTask) -> CommandInvocation:
        return self._synth.add(new)

    # ---- request -> best-effort Task ----

    @staticmethod
    def task_from_request(
        new: NewTask,
        *,
        task_id: str,
        number: int | None,
    ) -> Task:
        """In-memory stand-in for a created record that could not be read back."""
        return Task(
            id=task_id,
            description=new.description.strip(),
            status=TaskStatus.PENDING,
            priority=Priority.parse(new.priority),
            project=new.project,
            tags=[t.lstrip("+") for t in (new.tags or [])],
            due=_as_datetime(new.due),
            wait=_as_datetime(new.wait),
            scheduled=_as_datetime(new.scheduled),
            until=_as_datetime(new.until),
            annotations=new.annotations,
            annotation_entries=[
                Annotation(description=line.strip())
                for line in (new.annotations or "").splitlines()
                if line.strip()
            ],
            depends=list(new.depends or []),
            number=number,
        )

    @staticmethod
    def apply_changes(task: Task, changes: TaskChanges) -> Task:
        """Prior record with `changes` applied, for an update that could not be read back."""
        annotations = task.annotations
        if changes.annotations:
            annotations = "\n".join(p for p in (task.annotations, changes.annotations) if p)
        return Task(
            id=task.id,
            description=(changes.description or task.description).strip(),
            status=changes.status or task.status,
            priority=Priority.parse(changes.priority) if changes.priority else task.priority,
            project=changes.project or task.project,
            tags=[t.lstrip("+") for t in changes.tags] if changes.tags is not None else list(task.tags),
            due=_as_datetime(changes.due) or task.due,
            wait=_as_datetime(changes.wait) or task.wait,
            scheduled=_as_datetime(changes.scheduled) or task.scheduled,
            until=_as_datetime(changes.until) or task.until,
            annotations=annotations,
            annotation_entries=list(task.annotation_entries),
            created=task.created,
            modified=task.modified,
            completed=task.completed,
            urgency=task.urgency,
            depends=list(changes.depends) if changes.depends is not None else list(task.depends),
            number=task.number,
            extra=dict(task.extra),
        )


def _as_datetime(value: Any) -> datetime | None:
    """Best-effort date for reconstructed records; tool synonyms stay unknown."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    if hasattr(value, "isoformat") and hasattr(value, "year"):
        return datetime(value.year, value.month, value.day, tzinfo=UTC)
    text = str(value).strip()[:10]
    try:
        d = datetime.fromisoformat(text)
    except ValueError:
        return None
    return d.replace(tzinfo=UTC)
