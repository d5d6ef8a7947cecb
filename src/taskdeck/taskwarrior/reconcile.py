# src/taskdeck/taskwarrior/reconcile.py

"""
Read-your-write reconciliation.

Taskwarrior reports success for add/modify without guaranteeing that a
follow-up export already sees the change. Every write therefore goes
through a bounded poll:

    write -> correlation key -> poll read-back (N attempts, fixed delay)
          -> listing match -> reconstruct from the request (degraded)

The bound, the delay and the sleep function are injectable so tests can run
the whole ladder deterministically.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

from .errors import ReconciliationDegraded
from .models import Task

logger = logging.getLogger(__name__)

W = TypeVar("W")
K = TypeVar("K", int, str)

SOURCE_READBACK = "readback"
SOURCE_LISTING = "listing"
SOURCE_REQUEST = "request"


@dataclass(frozen=True, slots=True)
class Reconciliation(Generic[W]):
    task: Task
    attempts: int
    source: str
    write_result: W | None = None

    @property
    def degraded(self) -> bool:
        return self.source == SOURCE_REQUEST

    @property
    def retries(self) -> int:
        """Read-backs beyond the first one."""
        return max(0, self.attempts - 1)


class ConsistencyRetrier:
    def __init__(
        self,
        *,
        attempts: int = 5,
        delay_seconds: float = 0.2,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.attempts = int(attempts)
        self.delay_seconds = max(0.0, float(delay_seconds))
        self._sleep = sleep

    def poll(self, read: Callable[[], Task | None]) -> tuple[Task | None, int]:
        """Call `read` until it returns a Task or the bound is hit. Returns (task, attempts used)."""
        for attempt in range(1, self.attempts + 1):
            if attempt > 1:
                self._sleep(self.delay_seconds)
            task = read()
            if task is not None:
                return task, attempt
            logger.debug("Read-back attempt %d/%d: not visible yet", attempt, self.attempts)
        return None, self.attempts

    def run(
        self,
        write: Callable[[], W],
        *,
        key_for: Callable[[W], K | None],
        read: Callable[[K], Task | None],
        locate: Callable[[], Task | None],
        reconstruct: Callable[[W, K | None], Task],
        what: str,
    ) -> Reconciliation[W]:
        """
        Execute `write` and return the record it produced.

        `key_for` extracts the most specific key known after the write: a
        transient numeric id (int) or a stable uuid (str). Without a key the
        poll is skipped and the listing match is tried directly.
        """
        result = write()
        key = key_for(result)

        attempts = 0
        if key is not None:
            task, attempts = self.poll(lambda: read(key))
            if task is not None:
                if attempts > 1:
                    logger.info("%s visible after %d read-backs (key=%s)", what, attempts, key)
                return Reconciliation(task=task, attempts=attempts, source=SOURCE_READBACK, write_result=result)

        task = locate()
        if task is not None:
            logger.info("%s located by listing match after %d read-backs (key=%s)", what, attempts, key)
            return Reconciliation(task=task, attempts=attempts, source=SOURCE_LISTING, write_result=result)

        task = reconstruct(result, key)
        task.degraded = ReconciliationDegraded(
            reason=f"{what} not visible after {attempts} read-backs and a full listing",
            attempts=attempts,
            transient_id=key if isinstance(key, int) else None,
            confirmed_id=isinstance(key, str),
        )
        logger.warning(
            "Reconciliation degraded: %s (key=%s); returning record built from request data",
            task.degraded.reason,
            key,
        )
        return Reconciliation(task=task, attempts=attempts, source=SOURCE_REQUEST, write_result=result)
