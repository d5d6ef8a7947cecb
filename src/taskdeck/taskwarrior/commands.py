# src/taskdeck/taskwarrior/commands.py

"""
Command synthesis: structured task operations -> CommandInvocation.

Rules:
- descriptions are one double-quoted token;
- absent (None) fields are omitted, never emitted empty;
- tags are `+tag` tokens;
- dates are `attribute:YYYY-MM-DD` (the tool has no sub-day precision, so a
  time of day is stripped and logged as a corrected input);
- completion/deletion use the dedicated `done`/`delete` sub-commands;
- tag replacement is clear-all-tags followed by the new `+tag` set.
"""

from __future__ import annotations

import logging
import re
import shlex
from collections.abc import Iterable
from datetime import date, datetime

from .models import (
    DATE_FIELDS,
    CommandInvocation,
    DateInput,
    NewTask,
    Priority,
    TaskChanges,
    TaskFilter,
    TaskStatus,
)

logger = logging.getLogger(__name__)

CLEAR_TAGS = "tags:"
CONFIRMATION_OFF = "rc.confirmation=off"

# "14:30", "T14:30:00Z", " 9:05 pm", "T14:30:00.123+02:00"
_TIME_OF_DAY_RE = re.compile(
    r"(?:T|\s+)?\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?(?:\s*[ap]m)?(?:Z|[+-]\d{2}:?\d{2})?",
    re.IGNORECASE,
)

# attribute:value in a free-form command, optionally followed by a separate
# time token ("due:tomorrow 14:00").
_RAW_DATE_ATTR_RE = re.compile(
    r"\b(?P<attr>" + "|".join(DATE_FIELDS) + r"):(?P<value>\"[^\"]*\"|\S*)"
    r"(?P<trail>\s+\d{1,2}:\d{2}(?::\d{2})?(?:\s*[ap]m)?)?",
    re.IGNORECASE,
)

_UUID_RE = re.compile(r"^[0-9a-fA-F][0-9a-fA-F-]{7,35}$")


def quote(value: str) -> str:
    """Render `value` as one double-quoted shell token."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _shell_token(value: str) -> str:
    if value and not re.search(r"[\s\"'\\]", value):
        return value
    return quote(value)


def strip_time_of_day(text: str) -> tuple[str, bool]:
    """Remove any HH:MM component. Returns (fixed, changed)."""
    fixed = _TIME_OF_DAY_RE.sub("", text).strip()
    return fixed, fixed != text.strip()


def encode_date(attribute: str, value: DateInput | None) -> str | None:
    """`attribute:YYYY-MM-DD` for a date-bearing field; None when absent."""
    if value is None:
        return None

    if isinstance(value, datetime):
        if value.time() != datetime.min.time():
            logger.warning(
                "Corrected input: dropped time of day from %s=%s (dates only)",
                attribute,
                value.isoformat(),
            )
        return f"{attribute}:{value.date().isoformat()}"

    if isinstance(value, date):
        return f"{attribute}:{value.isoformat()}"

    raw = str(value).strip()
    fixed, changed = strip_time_of_day(raw)
    if changed:
        logger.warning("Corrected input: stripped time of day from %s=%r -> %r", attribute, raw, fixed)
    if not fixed:
        return None

    try:
        return f"{attribute}:{date.fromisoformat(fixed).isoformat()}"
    except ValueError:
        # Tool synonym (today, eom, monday, now+1w...)
        return f"{attribute}:{_shell_token(fixed)}"


def correct_raw_command(command: str) -> str:
    """
    Strip time-of-day values from date attributes in a free-form command.

    Used for commands that do not come from structured input (AI replies).
    An attribute whose whole value was a time is dropped.
    """
    changed = False

    def _fix(m: re.Match[str]) -> str:
        nonlocal changed
        attr = m.group("attr")
        value = m.group("value")
        quoted = value.startswith('"') and value.endswith('"') and len(value) >= 2
        inner = value[1:-1] if quoted else value
        fixed, value_changed = strip_time_of_day(inner)
        if value_changed or m.group("trail"):
            changed = True
        if not fixed:
            return ""
        return f"{attr}:{quote(fixed) if quoted else fixed}"

    out = _RAW_DATE_ATTR_RE.sub(_fix, command)
    out = " ".join(out.split())
    if changed:
        logger.warning("Corrected input: stripped time of day from command %r -> %r", command, out)
    return out


def _tag_tokens(tags: Iterable[str]) -> list[str]:
    tokens: list[str] = []
    for tag in tags:
        t = str(tag).strip().lstrip("+")
        if not t:
            continue
        if re.search(r"\s", t):
            raise ValueError(f"tag cannot contain whitespace: {tag!r}")
        tokens.append(f"+{t}")
    return tokens


class CommandSynthesizer:
    """Builds CommandInvocations; knows nothing about executing them."""

    @staticmethod
    def target(task_id: str) -> str:
        """Filter token addressing one record (uuid, or working-set number)."""
        key = str(task_id).strip()
        if key.isdigit():
            return key
        if not _UUID_RE.match(key):
            raise ValueError(f"not a task identifier: {task_id!r}")
        return f"uuid:{key}"

    def add(self, new: NewTask) -> CommandInvocation:
        components = ["add", quote(new.description.strip())]
        components.extend(
            self._attributes(
                project=new.project,
                priority=new.priority,
                dates={name: getattr(new, name) for name in DATE_FIELDS},
                depends=new.depends,
            )
        )
        if new.tags:
            components.extend(_tag_tokens(new.tags))
        return CommandInvocation(tuple(components))

    def annotate(self, target: str, annotations: str | None) -> list[CommandInvocation]:
        """One `annotate` per non-empty line."""
        if not annotations:
            return []
        return [
            CommandInvocation((target, "annotate", quote(line.strip())))
            for line in annotations.splitlines()
            if line.strip()
        ]

    def update(self, task_id: str, changes: TaskChanges) -> list[CommandInvocation]:
        """
        Ordered invocations applying `changes`.

        Annotations are not included; see annotate().
        """
        target = self.target(task_id)
        steps: list[CommandInvocation] = []

        if changes.tags is not None:
            # No atomic replace: clear first, apply the new set below.
            steps.append(CommandInvocation((target, "modify", CLEAR_TAGS)))

        mods: list[str] = []
        if changes.description is not None:
            mods.append(f"description:{quote(changes.description.strip())}")
        mods.extend(
            self._attributes(
                project=changes.project,
                priority=changes.priority,
                dates={name: getattr(changes, name) for name in DATE_FIELDS},
                depends=changes.depends,
            )
        )
        if changes.tags:
            mods.extend(_tag_tokens(changes.tags))

        status = changes.status
        if status == TaskStatus.COMPLETED:
            steps.append(CommandInvocation((target, "done", *mods)))
        elif status == TaskStatus.DELETED:
            steps.append(CommandInvocation((CONFIRMATION_OFF, target, "delete", *mods)))
        else:
            if status is not None:
                mods.append(f"status:{_shell_token(str(status))}")
            if mods:
                steps.append(CommandInvocation((target, "modify", *mods)))

        return steps

    def delete(self, task_id: str) -> CommandInvocation:
        return CommandInvocation((CONFIRMATION_OFF, self.target(task_id), "delete"))

    def export_one(self, task_id: str) -> CommandInvocation:
        return CommandInvocation((self.target(task_id), "export"))

    def export(self, filter_tokens: Iterable[str] = ()) -> CommandInvocation:
        return CommandInvocation((*filter_tokens, "export"))

    def projects(self) -> CommandInvocation:
        return CommandInvocation(("_projects",))

    def tags(self) -> CommandInvocation:
        return CommandInvocation(("_tags",))

    def filter_tokens(self, filt: TaskFilter | None, report_filter: str | None = None) -> list[str]:
        """
        Space-joined attribute:value query. Free-text search is not part of
        it: the tool cannot search annotations, the engine filters locally.
        """
        tokens: list[str] = []
        if report_filter and report_filter.strip():
            tokens.extend(["(", *self.raw(report_filter).components, ")"])
        if filt is None:
            return tokens
        if filt.status:
            tokens.append(f"status:{_shell_token(filt.status)}")
        if filt.project:
            tokens.append(f"project:{quote(filt.project)}")
        if filt.tag:
            tokens.extend(_tag_tokens([filt.tag]))
        if filt.priority:
            tokens.append(f"priority:{Priority.parse(filt.priority)}")
        return tokens

    def raw(self, command: str) -> CommandInvocation:
        """Free-form command text (no leading `task`), time-corrected."""
        text = command.strip()
        if text == "task" or text.startswith("task "):
            text = text[4:].strip()
        text = correct_raw_command(text)
        return CommandInvocation(tuple(_shell_token(tok) for tok in shlex.split(text)))

    @staticmethod
    def _attributes(
        *,
        project: str | None,
        priority: Priority | str | None,
        dates: dict[str, DateInput | None],
        depends: list[str] | None,
    ) -> list[str]:
        out: list[str] = []
        if project:
            out.append(f"project:{quote(project.strip())}")
        if priority:
            out.append(f"priority:{Priority.parse(priority)}")
        for name in DATE_FIELDS:
            token = encode_date(name, dates.get(name))
            if token:
                out.append(token)
        if depends:
            ids = [d.strip() for d in depends if d and d.strip()]
            if ids:
                out.append(f"depends:{','.join(ids)}")
        return out
