# src/taskdeck/taskwarrior/invoker.py

from __future__ import annotations

import logging
import shlex
import subprocess

from .errors import ExecutionError
from .models import CommandInvocation, CommandResult
from .rc import TaskwarriorConfig

logger = logging.getLogger(__name__)


class ProcessInvoker:
    """
    Runs one Taskwarrior command to completion.

    Stateless apart from the explicit TaskwarriorConfig. The tool prints
    advisory text on stderr for successful operations, so stderr with exit
    status 0 is logged, not raised.
    """

    def __init__(self, config: TaskwarriorConfig) -> None:
        self._config = config

    @property
    def config(self) -> TaskwarriorConfig:
        return self._config

    def argv(self, invocation: CommandInvocation) -> list[str]:
        try:
            tail = shlex.split(invocation.render())
        except ValueError as e:
            raise ExecutionError(f"Malformed command: {e}", command=invocation.render()) from e
        return [*self._config.base_args(), *tail]

    def execute(self, invocation: CommandInvocation) -> CommandResult:
        argv = self.argv(invocation)
        rendered = invocation.render()
        logger.debug("Executing: %s", shlex.join(argv))

        try:
            proc = subprocess.run(  # noqa: S603
                argv,
                input=invocation.stdin,
                capture_output=True,
                text=True,
                env=self._config.env(),
                timeout=self._config.timeout_seconds,
                check=False,
            )
        except FileNotFoundError as e:
            raise ExecutionError(
                f"Taskwarrior executable not found: {self._config.task_bin}",
                command=rendered,
            ) from e
        except subprocess.TimeoutExpired as e:
            raise ExecutionError(
                f"Taskwarrior timed out after {self._config.timeout_seconds:.0f}s",
                command=rendered,
            ) from e
        except OSError as e:
            raise ExecutionError(f"Taskwarrior failed to start: {e}", command=rendered) from e

        stdout = proc.stdout or ""
        stderr = proc.stderr or ""

        if proc.returncode != 0:
            detail = stderr.strip() or stdout.strip() or "no output"
            logger.error("Taskwarrior exit=%s command=%r: %s", proc.returncode, rendered, detail)
            raise ExecutionError(
                f"Taskwarrior command failed (exit {proc.returncode}): {detail}",
                command=rendered,
                exit_status=proc.returncode,
                stderr=stderr,
            )

        if stderr.strip():
            logger.warning("Taskwarrior stderr for %r: %s", rendered, stderr.strip())

        return CommandResult(stdout=stdout, stderr=stderr, exit_status=proc.returncode)
