# tests/test_bridge.py

from __future__ import annotations

import asyncio
import json

import pytest
from websockets.asyncio.client import connect
from websockets.exceptions import ConnectionClosed, InvalidStatus

from taskdeck.taskwarrior.errors import ExecutionError
from taskdeck.taskwarrior.rc import TaskwarriorConfig
from taskdeck.terminal.bridge import FAREWELL_TEXT, WELCOME_TEXT, TerminalSessionBridge
from taskdeck.terminal.server import TerminalServer

from .fakes import FakeChannel, FakeSessionProcess, FakeTranslator, until


class BrokenStdinProcess(FakeSessionProcess):
    async def write_line(self, text: str) -> None:
        raise ExecutionError("tasksh closed its input", command=text)


class UnstartableProcess(FakeSessionProcess):
    async def start(self) -> None:
        raise ExecutionError("tasksh executable not found: tasksh", command="tasksh")


class FailingTranslator(FakeTranslator):
    def parse_command(self, text: str) -> str:
        raise RuntimeError("model returned garbage")


async def _run(bridge: TerminalSessionBridge) -> asyncio.Task:
    task = asyncio.create_task(bridge.run())
    await asyncio.sleep(0)
    return task


@pytest.mark.asyncio
async def test_add_is_written_in_two_steps_with_a_pause() -> None:
    channel, process = FakeChannel(), FakeSessionProcess()
    delays: list[float] = []

    async def sleep(seconds: float) -> None:
        delays.append(seconds)

    task = await _run(TerminalSessionBridge(channel, process, sleep=sleep))
    channel.feed({"type": "command", "command": "add Buy eggs"})
    channel.feed({"type": "command", "command": "list"})
    await until(lambda: len(process.written) == 3)

    assert process.written == ["add", "Buy eggs", "list"]
    assert delays == [0.1]

    channel.disconnect()
    await asyncio.wait_for(task, 2)


@pytest.mark.asyncio
async def test_output_is_forwarded_and_farewell_is_last() -> None:
    channel, process = FakeChannel(), FakeSessionProcess()
    task = await _run(TerminalSessionBridge(channel, process))

    process.emit_stdout("ID Description\n 1 Buy milk\n")
    process.emit_stderr("Configuration override rc.confirmation:off\n")
    process.exit(0)
    await asyncio.wait_for(task, 2)

    envelopes = channel.envelopes
    assert envelopes[0] == {"type": "output", "output": WELCOME_TEXT}
    assert {"type": "output", "output": "ID Description\n 1 Buy milk\n"} in envelopes
    assert {"type": "error", "error": "Configuration override rc.confirmation:off\n"} in envelopes
    assert envelopes[-1] == {"type": "output", "output": FAREWELL_TEXT}
    assert channel.closed


@pytest.mark.asyncio
async def test_transport_close_kills_the_process_without_farewell() -> None:
    channel, process = FakeChannel(), FakeSessionProcess()
    task = await _run(TerminalSessionBridge(channel, process))

    channel.disconnect()
    await asyncio.wait_for(task, 2)

    assert process.terminated
    assert [e["output"] for e in channel.envelopes] == [WELCOME_TEXT]


@pytest.mark.asyncio
async def test_parse_frame_answers_with_suggested_command() -> None:
    channel, process = FakeChannel(), FakeSessionProcess()
    translator = FakeTranslator("list +work")
    task = await _run(TerminalSessionBridge(channel, process, translator=translator))

    channel.feed({"type": "parse", "text": "show my work tasks"})
    await until(lambda: len(channel.sent) == 2)

    assert channel.envelopes[-1] == {"type": "command", "command": "list +work"}
    assert translator.requests == ["show my work tasks"]
    assert process.written == []

    channel.disconnect()
    await asyncio.wait_for(task, 2)


@pytest.mark.asyncio
async def test_translator_failure_is_reported_and_session_continues(caplog) -> None:
    channel, process = FakeChannel(), FakeSessionProcess()
    task = await _run(TerminalSessionBridge(channel, process, translator=FailingTranslator()))

    channel.feed({"type": "parse", "text": "show my work tasks"})
    channel.feed({"type": "command", "command": "list"})
    await until(lambda: process.written == ["list"])

    assert channel.envelopes[1] == {"type": "error", "error": "Failed to process command"}
    assert not task.done()
    assert not process.terminated
    assert "Failed to handle session frame" in caplog.text

    channel.disconnect()
    await asyncio.wait_for(task, 2)


@pytest.mark.asyncio
async def test_parse_without_translator_is_an_error() -> None:
    channel, process = FakeChannel(), FakeSessionProcess()
    task = await _run(TerminalSessionBridge(channel, process))

    channel.feed({"type": "parse", "text": "anything"})
    await until(lambda: len(channel.sent) == 2)

    assert channel.envelopes[-1]["type"] == "error"

    channel.disconnect()
    await asyncio.wait_for(task, 2)


@pytest.mark.asyncio
async def test_malformed_frame_is_reported_and_session_continues() -> None:
    channel, process = FakeChannel(), FakeSessionProcess()
    task = await _run(TerminalSessionBridge(channel, process))

    channel.feed("list")
    channel.feed({"type": "command", "command": "next"})
    await until(lambda: process.written == ["next"])

    assert channel.envelopes[1]["type"] == "error"
    assert not task.done()

    channel.disconnect()
    await asyncio.wait_for(task, 2)


@pytest.mark.asyncio
async def test_write_failure_is_reported() -> None:
    channel, process = FakeChannel(), BrokenStdinProcess()
    task = await _run(TerminalSessionBridge(channel, process))

    channel.feed({"type": "command", "command": "list"})
    await until(lambda: len(channel.sent) == 2)

    assert channel.envelopes[-1] == {"type": "error", "error": "Failed to process command"}

    channel.disconnect()
    await asyncio.wait_for(task, 2)


# ---- over a real WebSocket ----


async def _serve(tmp_path, factory, path: str = "/terminal"):
    config = TaskwarriorConfig(data_dir=tmp_path / "tw")
    server = await TerminalServer(config, path=path, process_factory=factory).start("127.0.0.1", 0)
    port = next(iter(server.sockets)).getsockname()[1]
    return server, f"ws://127.0.0.1:{port}"


@pytest.mark.asyncio
async def test_websocket_session_round_trip(tmp_path) -> None:
    processes: list[FakeSessionProcess] = []

    def factory() -> FakeSessionProcess:
        processes.append(FakeSessionProcess())
        return processes[-1]

    server, base = await _serve(tmp_path, factory)
    try:
        async with connect(base + "/terminal") as ws:
            welcome = json.loads(await asyncio.wait_for(ws.recv(), 2))
            assert welcome == {"type": "output", "output": WELCOME_TEXT}

            await ws.send(json.dumps({"type": "command", "command": "list"}))
            await until(lambda: bool(processes) and processes[0].written == ["list"])

            processes[0].emit_stdout("No matches.\n")
            assert json.loads(await asyncio.wait_for(ws.recv(), 2)) == {"type": "output", "output": "No matches.\n"}

            processes[0].exit(0)
            assert json.loads(await asyncio.wait_for(ws.recv(), 2))["output"] == FAREWELL_TEXT
            with pytest.raises(ConnectionClosed):
                await asyncio.wait_for(ws.recv(), 2)
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_unknown_path_is_rejected(tmp_path) -> None:
    server, base = await _serve(tmp_path, FakeSessionProcess)
    try:
        with pytest.raises(InvalidStatus):
            async with connect(base + "/elsewhere"):
                pass
    finally:
        server.close()
        await server.wait_closed()


@pytest.mark.asyncio
async def test_start_failure_is_reported_then_closed(tmp_path) -> None:
    server, base = await _serve(tmp_path, UnstartableProcess)
    try:
        async with connect(base + "/terminal") as ws:
            error = json.loads(await asyncio.wait_for(ws.recv(), 2))
            farewell = json.loads(await asyncio.wait_for(ws.recv(), 2))
            assert error == {"type": "error", "error": "tasksh executable not found: tasksh"}
            assert farewell["output"] == FAREWELL_TEXT
    finally:
        server.close()
        await server.wait_closed()
