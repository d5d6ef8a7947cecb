# tests/conftest.py

from __future__ import annotations

from pathlib import Path
from types import SimpleNamespace

import pytest

from taskdeck.cli.bootstrap import create_initial_state
from taskdeck.core.state import AppState
from taskdeck.taskwarrior.engine import TaskSyncEngine
from taskdeck.taskwarrior.reconcile import ConsistencyRetrier

from .fakes import FakeLLMClient, FakeTaskwarrior


@pytest.fixture()
def settings(tmp_path: Path) -> SimpleNamespace:
    """
    Minimal settings object compatible with AppState and the bootstrap.

    A SimpleNamespace rather than the real config keeps unit tests isolated
    from the environment.
    """
    return SimpleNamespace(
        app_name="taskdeck-test",
        log_level="DEBUG",
        data_dir=tmp_path / "taskwarrior",
        task_bin="task",
        tasksh_bin="tasksh",
        command_timeout_seconds=5.0,
        readback_attempts=5,
        readback_delay_seconds=0.0,
        host="127.0.0.1",
        http_port=0,
        ws_port=0,
        ws_path="/terminal",
        add_followup_delay_seconds=0.0,
        terminal_url="ws://127.0.0.1:0/terminal",
        terminal_prompt="tasksh> ",
        reconnect_attempts=5,
        reconnect_delay_seconds=0.0,
        llm_api_key=None,
        llm_base_url="",
        llm_models=["test-model"],
    )


@pytest.fixture()
def tw() -> FakeTaskwarrior:
    return FakeTaskwarrior()


@pytest.fixture()
def sleeps() -> list[float]:
    return []


@pytest.fixture()
def engine(tw: FakeTaskwarrior, sleeps: list[float]) -> TaskSyncEngine:
    return TaskSyncEngine(tw, retrier=ConsistencyRetrier(attempts=5, delay_seconds=0.2, sleep=sleeps.append))


@pytest.fixture()
def llm() -> FakeLLMClient:
    return FakeLLMClient()


@pytest.fixture()
def state(settings: SimpleNamespace, tw: FakeTaskwarrior, llm: FakeLLMClient) -> AppState:
    """AppState wired with the fake Taskwarrior and LLM."""
    return create_initial_state(settings=settings, runner=tw, llm=llm)
