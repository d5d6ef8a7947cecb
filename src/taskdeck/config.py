# src/taskdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app (server and terminal client).
- No secrets required at import time.
- Everything that points Taskwarrior at its data lives here and is threaded
  explicitly into every invocation (never mutated into os.environ).
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

ENV_PREFIX = "TASKDECK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


# Real environment wins over .env.
load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [p.strip() for p in raw.replace(",", " ").split() if p.strip()]


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str

    # ---- Taskwarrior ----
    data_dir: Path
    task_bin: str
    tasksh_bin: str
    command_timeout_seconds: float
    readback_attempts: int
    readback_delay_seconds: float

    # ---- Server ----
    host: str
    http_port: int
    ws_port: int
    ws_path: str
    add_followup_delay_seconds: float

    # ---- Terminal client ----
    terminal_url: str
    terminal_prompt: str
    reconnect_attempts: int
    reconnect_delay_seconds: float

    # ---- LLM (OpenAI-compatible) ----
    llm_api_key: Optional[str]
    llm_base_url: str
    llm_models: List[str]
    llm_connect_timeout_seconds: float
    llm_read_timeout_seconds: float
    llm_first_token_timeout_seconds: float

    @staticmethod
    def from_env() -> "Settings":
        app_name = _env(_k("APP_NAME"), "taskdeck")
        log_level = _env(_k("LOG_LEVEL"), "INFO")

        data_dir = _env_path(_k("DATA_DIR"), Path("data/taskwarrior")).resolve()
        task_bin = _env(_k("TASK_BIN"), "task")
        tasksh_bin = _env(_k("TASKSH_BIN"), "tasksh")
        command_timeout_seconds = _env_float(_k("COMMAND_TIMEOUT_SECONDS"), 30.0)
        readback_attempts = _env_int(_k("READBACK_ATTEMPTS"), 5)
        readback_delay_seconds = _env_float(_k("READBACK_DELAY_SECONDS"), 0.2)

        host = _env(_k("HOST"), "127.0.0.1")
        http_port = _env_int(_k("HTTP_PORT"), 5000)
        ws_port = _env_int(_k("WS_PORT"), 5001)
        ws_path = _env(_k("WS_PATH"), "/terminal")
        add_followup_delay_seconds = _env_float(_k("ADD_FOLLOWUP_DELAY_SECONDS"), 0.1)

        terminal_url = _env(_k("TERMINAL_URL"), f"ws://{host}:{ws_port}{ws_path}")
        terminal_prompt = _env(_k("TERMINAL_PROMPT"), "tasksh> ")
        reconnect_attempts = _env_int(_k("RECONNECT_ATTEMPTS"), 5)
        reconnect_delay_seconds = _env_float(_k("RECONNECT_DELAY_SECONDS"), 2.0)

        # Accept the conventional OPENAI_* names as a fallback.
        llm_api_key = _first_env(_k("LLM_API_KEY"), "OPENAI_API_KEY", default=None)
        llm_base_url = _first_env(_k("LLM_BASE_URL"), "OPENAI_BASE_URL", default="https://api.openai.com/v1") or ""
        llm_models = _env_list(_k("LLM_MODELS"), ["gpt-4o", "gpt-4o-mini"])
        llm_connect_timeout_seconds = _env_float(_k("LLM_CONNECT_TIMEOUT_SECONDS"), 5.0)
        llm_first_token_timeout_seconds = _env_float(_k("LLM_FIRST_TOKEN_TIMEOUT_SECONDS"), 20.0)
        # keep read >= first token as a sane baseline
        llm_read_timeout_seconds = max(
            _env_float(_k("LLM_READ_TIMEOUT_SECONDS"), 25.0),
            llm_first_token_timeout_seconds,
        )

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            task_bin=task_bin,
            tasksh_bin=tasksh_bin,
            command_timeout_seconds=command_timeout_seconds,
            readback_attempts=readback_attempts,
            readback_delay_seconds=readback_delay_seconds,
            host=host,
            http_port=http_port,
            ws_port=ws_port,
            ws_path=ws_path,
            add_followup_delay_seconds=add_followup_delay_seconds,
            terminal_url=terminal_url,
            terminal_prompt=terminal_prompt,
            reconnect_attempts=reconnect_attempts,
            reconnect_delay_seconds=reconnect_delay_seconds,
            llm_api_key=llm_api_key,
            llm_base_url=llm_base_url,
            llm_models=llm_models,
            llm_connect_timeout_seconds=llm_connect_timeout_seconds,
            llm_read_timeout_seconds=llm_read_timeout_seconds,
            llm_first_token_timeout_seconds=llm_first_token_timeout_seconds,
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide Settings, building them on first use."""
    global _SETTINGS
    if _SETTINGS is None:
        _SETTINGS = Settings.from_env()
    return _SETTINGS
