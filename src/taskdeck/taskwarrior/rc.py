# src/taskdeck/taskwarrior/rc.py

"""
Explicit Taskwarrior environment.

Both the one-shot engine and the interactive bridge point the tool at a
private data directory. That location travels as a TaskwarriorConfig value
into every invocation instead of living in os.environ.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

VERBOSE_FLAGS = "blank,label,new-id,edit,special,project,sync,unwait,recur"


@dataclass(frozen=True, slots=True)
class TaskwarriorConfig:
    data_dir: Path
    task_bin: str = "task"
    tasksh_bin: str = "tasksh"
    timeout_seconds: float = 30.0

    @property
    def taskrc_path(self) -> Path:
        return self.data_dir / ".taskrc"

    def base_args(self) -> list[str]:
        return [self.task_bin, f"rc:{self.taskrc_path}"]

    def env(self, base: dict[str, str] | None = None) -> dict[str, str]:
        """Environment for a child process: `base` (default os.environ) + tool overrides."""
        env = dict(os.environ if base is None else base)
        env["TASKRC"] = str(self.taskrc_path)
        env["TASKDATA"] = str(self.data_dir)
        return env

    @classmethod
    def from_settings(cls, settings) -> TaskwarriorConfig:
        return cls(
            data_dir=Path(settings.data_dir),
            task_bin=str(getattr(settings, "task_bin", "task")),
            tasksh_bin=str(getattr(settings, "tasksh_bin", "tasksh")),
            timeout_seconds=float(getattr(settings, "command_timeout_seconds", 30.0)),
        )


def ensure_taskrc(config: TaskwarriorConfig) -> Path:
    """
    Create the data dir and rc file with the three required directives.

    An existing rc file is never rewritten (the user may have tuned it).
    """
    config.data_dir.mkdir(parents=True, exist_ok=True)
    path = config.taskrc_path
    if path.exists():
        return path

    content = (
        f"data.location={config.data_dir}\n"
        "confirmation=no\n"
        f"verbose={VERBOSE_FLAGS}\n"
    )
    path.write_text(content, "utf-8")
    logger.info("Created Taskwarrior rc file at %s", path)
    return path
