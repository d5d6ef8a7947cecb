# tests/test_session_process.py

from __future__ import annotations

import asyncio

import pytest

from taskdeck.taskwarrior.errors import ExecutionError
from taskdeck.taskwarrior.rc import TaskwarriorConfig
from taskdeck.terminal.process import SessionProcess, SessionState


@pytest.mark.asyncio
async def test_lines_round_trip_through_the_child(tmp_path) -> None:
    # `cat` stands in for tasksh: it echoes stdin to stdout.
    config = TaskwarriorConfig(data_dir=tmp_path / "tw", tasksh_bin="cat")
    process = SessionProcess(config)

    await process.start()
    assert process.state is SessionState.RUNNING
    assert config.taskrc_path.exists()

    chunks = process.stdout_chunks()
    await process.write_line("list +home")
    assert await asyncio.wait_for(anext(chunks), 2) == "list +home\n"

    await process.terminate()
    await process.terminate()
    assert process.state is SessionState.TERMINATED
    assert process.returncode is not None
    await chunks.aclose()


@pytest.mark.asyncio
async def test_missing_shell_fails_to_start(tmp_path) -> None:
    config = TaskwarriorConfig(data_dir=tmp_path / "tw", tasksh_bin=str(tmp_path / "no-tasksh"))
    process = SessionProcess(config)

    with pytest.raises(ExecutionError, match="not found"):
        await process.start()
    assert process.state is SessionState.TERMINATED

    with pytest.raises(RuntimeError):
        await process.start()


@pytest.mark.asyncio
async def test_write_before_start_is_rejected(tmp_path) -> None:
    process = SessionProcess(TaskwarriorConfig(data_dir=tmp_path / "tw"))
    with pytest.raises(ExecutionError):
        await process.write_line("list")
