# tests/test_config.py

from __future__ import annotations

import os
from pathlib import Path

import pytest

from taskdeck.config import Settings
from taskdeck.taskwarrior.rc import TaskwarriorConfig


@pytest.fixture(autouse=True)
def clean_env(monkeypatch) -> None:
    for name in list(os.environ):
        if name.startswith("TASKDECK_") or name in ("OPENAI_API_KEY", "OPENAI_BASE_URL"):
            monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    s = Settings.from_env()

    assert s.task_bin == "task"
    assert s.readback_attempts == 5
    assert s.readback_delay_seconds == 0.2
    assert s.add_followup_delay_seconds == 0.1
    assert s.reconnect_attempts == 5
    assert s.reconnect_delay_seconds == 2.0
    assert s.terminal_url == "ws://127.0.0.1:5001/terminal"
    assert s.llm_api_key is None
    assert s.data_dir.is_absolute()


def test_overrides(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TASKDECK_DATA_DIR", str(tmp_path / "tw"))
    monkeypatch.setenv("TASKDECK_READBACK_ATTEMPTS", "8")
    monkeypatch.setenv("TASKDECK_READBACK_DELAY_SECONDS", "0.05")
    monkeypatch.setenv("TASKDECK_WS_PORT", "9001")
    monkeypatch.setenv("TASKDECK_LLM_MODELS", "model-a, model-b")
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

    s = Settings.from_env()

    assert s.data_dir == (tmp_path / "tw").resolve()
    assert s.readback_attempts == 8
    assert s.readback_delay_seconds == 0.05
    assert s.terminal_url == "ws://127.0.0.1:9001/terminal"
    assert s.llm_models == ["model-a", "model-b"]
    assert s.llm_api_key == "sk-test"


def test_bad_numbers_fall_back_to_defaults(monkeypatch) -> None:
    monkeypatch.setenv("TASKDECK_HTTP_PORT", "eighty")
    monkeypatch.setenv("TASKDECK_RECONNECT_DELAY_SECONDS", "soon")

    s = Settings.from_env()

    assert s.http_port == 5000
    assert s.reconnect_delay_seconds == 2.0


def test_read_timeout_never_below_first_token(monkeypatch) -> None:
    monkeypatch.setenv("TASKDECK_LLM_FIRST_TOKEN_TIMEOUT_SECONDS", "40")
    monkeypatch.setenv("TASKDECK_LLM_READ_TIMEOUT_SECONDS", "10")
    assert Settings.from_env().llm_read_timeout_seconds == 40.0


def test_taskwarrior_config_from_settings(monkeypatch, tmp_path) -> None:
    monkeypatch.setenv("TASKDECK_DATA_DIR", str(tmp_path))
    monkeypatch.setenv("TASKDECK_TASKSH_BIN", "/opt/bin/tasksh")

    config = TaskwarriorConfig.from_settings(Settings.from_env())

    assert config.data_dir == Path(tmp_path).resolve()
    assert config.tasksh_bin == "/opt/bin/tasksh"
    assert config.base_args()[1] == f"rc:{config.data_dir / '.taskrc'}"
