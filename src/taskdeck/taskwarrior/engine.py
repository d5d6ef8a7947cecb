# src/taskdeck/taskwarrior/engine.py

"""
TaskSyncEngine: the structured task operations.

Composition:
- CommandSynthesizer builds invocations,
- a CommandRunner (ProcessInvoker) executes them,
- ResultMapper parses output,
- ConsistencyRetrier turns every write into a confirmed (or explicitly
  degraded) record.

The engine is synchronous. Async callers run it in a worker thread so the
read-back sleeps block only the calling operation.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from ..core.ports import CommandRunner
from .commands import CommandSynthesizer
from .errors import NotFound
from .mapper import ResultMapper
from .models import CommandResult, NewTask, Priority, Task, TaskChanges, TaskFilter, TaskStatus
from .reconcile import ConsistencyRetrier

logger = logging.getLogger(__name__)

ReportLookup = Callable[[str], "str | None"]


class TaskSyncEngine:
    def __init__(
        self,
        runner: CommandRunner,
        *,
        synthesizer: CommandSynthesizer | None = None,
        mapper: ResultMapper | None = None,
        retrier: ConsistencyRetrier | None = None,
        report_lookup: ReportLookup | None = None,
    ) -> None:
        self._runner = runner
        self._synth = synthesizer or CommandSynthesizer()
        self._mapper = mapper or ResultMapper(self._synth)
        self._retrier = retrier or ConsistencyRetrier()
        self._report_lookup = report_lookup

    # ---- queries ----

    def list_tasks(self, filt: TaskFilter | None = None) -> list[Task]:
        report_filter = None
        if filt is not None and filt.report:
            report_filter = self._report_lookup(filt.report) if self._report_lookup else None
            if report_filter is None:
                raise ValueError(f"Unknown report: {filt.report}")

        tokens = self._synth.filter_tokens(filt, report_filter)
        result = self._runner.execute(self._synth.export(tokens))
        tasks = self._mapper.parse_export(result.stdout)

        if filt is not None and filt.search and filt.search.strip():
            needle = filt.search.strip().lower()
            tasks = [
                t
                for t in tasks
                if needle in t.description.lower() or needle in (t.annotations or "").lower()
            ]
        return tasks

    def get_task(self, task_id: str) -> Task:
        task = self._find(task_id)
        if task is None:
            raise NotFound(task_id)
        return task

    def list_projects(self) -> list[str]:
        result = self._runner.execute(self._synth.projects())
        return self._mapper.parse_lines(result.stdout)

    def list_tags(self) -> list[str]:
        result = self._runner.execute(self._synth.tags())
        return self._mapper.parse_lines(result.stdout)

    # ---- writes ----

    def create_task(self, new: NewTask) -> Task:
        invocation = self._mapper.to_invocation(new)
        # Listing fallback only accepts records that did not exist before the write.
        known = {t.id for t in self.list_tasks(TaskFilter(status=TaskStatus.PENDING))}
        started = datetime.now(UTC).replace(microsecond=0)
        annotated = False

        def write() -> CommandResult:
            nonlocal annotated
            result = self._runner.execute(invocation)
            number = self._mapper.created_id(result.stdout)
            if number is not None and new.annotations:
                self._run_all(self._synth.annotate(str(number), new.annotations))
                annotated = True
            return result

        rec = self._retrier.run(
            write,
            key_for=lambda result: self._mapper.created_id(result.stdout),
            read=lambda number: self._find(str(number)),
            locate=lambda: self._locate_created(new, known, started),
            reconstruct=lambda _result, number: self._mapper.task_from_request(
                new,
                task_id=str(number) if number is not None else "",
                number=number,
            ),
            what=f"created task {new.description.strip()!r}",
        )
        task = rec.task

        if new.annotations and not annotated and not rec.degraded:
            self._run_all(self._synth.annotate(self._synth.target(task.id), new.annotations))
            task = self._find(task.id) or task

        logger.info(
            "Created task id=%s (source=%s, retries=%d)",
            task.id or "?",
            rec.source,
            rec.retries,
        )
        return task

    def update_task(self, task_id: str, changes: TaskChanges) -> Task:
        current = self.get_task(task_id)
        if current.status == TaskStatus.DELETED and changes.status != TaskStatus.DELETED:
            logger.info("Updating a deleted task id=%s", current.id)

        target = self._synth.target(current.id)
        steps = self._synth.update(current.id, changes)
        steps.extend(self._synth.annotate(target, _new_annotation_lines(current, changes.annotations)))
        if not steps:
            return current

        rec = self._retrier.run(
            lambda: self._run_all(steps),
            key_for=lambda _result: current.id,
            read=lambda uuid: self._read_reflecting(uuid, changes),
            locate=lambda: self._locate_updated(current.id, changes),
            reconstruct=lambda _result, _key: self._mapper.apply_changes(current, changes),
            what=f"updated task {current.id}",
        )
        logger.info("Updated task id=%s (source=%s, retries=%d)", current.id, rec.source, rec.retries)
        return rec.task

    def delete_task(self, task_id: str) -> Task:
        current = self.get_task(task_id)
        if current.status == TaskStatus.DELETED:
            raise NotFound(task_id)
        self._runner.execute(self._synth.delete(current.id))
        logger.info("Deleted task id=%s", current.id)
        current.status = TaskStatus.DELETED
        return current

    def execute_raw(self, command: str) -> str:
        """Free-form command (no leading `task`), time-of-day corrected. Returns stdout."""
        result = self._runner.execute(self._synth.raw(command))
        return result.stdout.strip()

    # ---- helpers ----

    def _run_all(self, steps) -> CommandResult:
        result = CommandResult(stdout="", stderr="", exit_status=0)
        for invocation in steps:
            result = self._runner.execute(invocation)
        return result

    def _find(self, task_id: str) -> Task | None:
        try:
            invocation = self._synth.export_one(task_id)
        except ValueError:
            return None
        tasks = self._mapper.parse_export(self._runner.execute(invocation).stdout)
        key = str(task_id).strip()
        for t in tasks:
            if t.id == key or (t.number is not None and str(t.number) == key):
                return t
        return None

    def _read_reflecting(self, task_id: str, changes: TaskChanges) -> Task | None:
        task = self._find(task_id)
        if task is None or not _reflects(task, changes):
            return None
        return task

    def _locate_created(self, new: NewTask, known: set[str], started: datetime) -> Task | None:
        description = new.description.strip()
        matches = [
            t
            for t in self.list_tasks(TaskFilter(status=TaskStatus.PENDING))
            if t.id not in known
            and (t.created is None or t.created >= started)
            and t.description == description
            and (not new.project or t.project == new.project)
        ]
        if not matches:
            return None
        # Several identical descriptions: the newest one is ours.
        return max(matches, key=lambda t: (t.created is not None, t.created))

    def _locate_updated(self, task_id: str, changes: TaskChanges) -> Task | None:
        for t in self.list_tasks():
            if t.id == task_id and _reflects(t, changes):
                return t
        return None


def _new_annotation_lines(current: Task, annotations: str | None) -> str | None:
    if not annotations:
        return None
    existing = {line.strip() for line in (current.annotations or "").splitlines()}
    fresh = [line for line in annotations.splitlines() if line.strip() and line.strip() not in existing]
    return "\n".join(fresh) or None


def _reflects(task: Task, changes: TaskChanges) -> bool:
    """True when an exported record already shows the requested changes."""
    if changes.description is not None and task.description != changes.description.strip():
        return False
    if changes.project and task.project != changes.project.strip():
        return False
    if changes.priority and task.priority != Priority.parse(changes.priority):
        return False
    if changes.status and task.status != changes.status:
        return False
    if changes.tags is not None:
        wanted = {t.strip().lstrip("+") for t in changes.tags if t.strip()}
        if set(task.tags) != wanted:
            return False
    return True
