# src/taskdeck/cli/bootstrap.py

"""
Composition root.

- loads settings once,
- ensures the Taskwarrior data dir and rc file exist,
- wires concrete implementations into AppState (invoker, engine, LLM,
  assistant, terminal server).
"""

from __future__ import annotations

import logging

from ..chat.assistant import ChatAssistant
from ..chat.catalog import ChatLog, ReportCatalog
from ..config import get_settings
from ..core.ports import CommandRunner, LLMClient
from ..core.state import AppState
from ..llm.client import LLMError, OpenAILLMClient
from ..llm.offline import OfflineLLMClient
from ..taskwarrior.engine import TaskSyncEngine
from ..taskwarrior.invoker import ProcessInvoker
from ..taskwarrior.rc import TaskwarriorConfig, ensure_taskrc
from ..taskwarrior.reconcile import ConsistencyRetrier
from ..terminal.server import TerminalServer
from ..terminal.shaping import InputShaper

logger = logging.getLogger(__name__)


def create_llm_client(settings) -> LLMClient:
    try:
        return OpenAILLMClient(settings)
    except LLMError as e:
        logger.warning("AI assistant runs offline: %s", e)
        return OfflineLLMClient()


def create_initial_state(
    *,
    settings=None,
    runner: CommandRunner | None = None,
    llm: LLMClient | None = None,
) -> AppState:
    """
    Build AppState from the provided settings.

    Settings, the command runner and the LLM client are injectable so tests
    can wire fakes; anything omitted gets its production implementation.
    """
    if settings is None:
        settings = get_settings()

    config = TaskwarriorConfig.from_settings(settings)
    ensure_taskrc(config)

    reports = ReportCatalog()
    engine = TaskSyncEngine(
        runner or ProcessInvoker(config),
        retrier=ConsistencyRetrier(
            attempts=int(getattr(settings, "readback_attempts", 5)),
            delay_seconds=float(getattr(settings, "readback_delay_seconds", 0.2)),
        ),
        report_lookup=reports.filter_for,
    )
    assistant = ChatAssistant(llm or create_llm_client(settings), engine)

    terminal = TerminalServer(
        config,
        path=str(getattr(settings, "ws_path", "/terminal")),
        shaper=InputShaper(
            followup_delay_seconds=float(getattr(settings, "add_followup_delay_seconds", 0.1)),
        ),
        translator=assistant,
    )

    return AppState(
        settings=settings,
        engine=engine,
        assistant=assistant,
        reports=reports,
        chat_log=ChatLog(),
        terminal=terminal,
    )
