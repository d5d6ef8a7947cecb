# src/taskdeck/core/state.py

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..chat.assistant import ChatAssistant
from ..chat.catalog import ChatLog, ReportCatalog
from ..taskwarrior.engine import TaskSyncEngine
from ..terminal.server import TerminalServer


@dataclass
class AppState:
    # Settings live on the state so handlers never read global config.
    settings: Any

    engine: TaskSyncEngine
    assistant: ChatAssistant
    reports: ReportCatalog
    chat_log: ChatLog
    terminal: TerminalServer
