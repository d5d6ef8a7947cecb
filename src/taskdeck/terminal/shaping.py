# src/taskdeck/terminal/shaping.py

from __future__ import annotations

from dataclasses import dataclass

# Sub-commands that prompt interactively for their argument inside tasksh:
# "add Buy eggs" is written as "add", then "Buy eggs" after a short pause.
MULTI_STEP_SUBCOMMANDS: frozenset[str] = frozenset({"add"})


@dataclass(frozen=True, slots=True)
class InputStep:
    text: str
    delay_seconds: float = 0.0


class InputShaper:
    """Turns one client command line into the stdin lines the shell expects."""

    def __init__(
        self,
        *,
        multi_step: frozenset[str] | set[str] = MULTI_STEP_SUBCOMMANDS,
        followup_delay_seconds: float = 0.1,
    ) -> None:
        self._multi_step = frozenset(multi_step)
        self._delay = max(0.0, float(followup_delay_seconds))

    def shape(self, line: str) -> list[InputStep]:
        for name in self._multi_step:
            prefix = name + " "
            if line.startswith(prefix) and line[len(prefix):].strip():
                return [InputStep(name), InputStep(line[len(prefix):], self._delay)]
        return [InputStep(line)]
