# tests/fakes.py

from __future__ import annotations

import asyncio
import itertools
import json
import shlex
import uuid as uuidlib
from collections.abc import Iterable
from datetime import UTC, datetime

from websockets.exceptions import ConnectionClosed

from taskdeck.core.ports import ChatMessage
from taskdeck.taskwarrior.errors import ExecutionError
from taskdeck.taskwarrior.mapper import TW_DATE_FORMAT
from taskdeck.taskwarrior.models import CommandInvocation, CommandResult

_ATTRS = ("project", "priority", "due", "wait", "scheduled", "until", "depends", "status", "description")
_FILTER_NOISE = {"(", ")", "or", "and"}


def _now() -> str:
    return datetime.now(UTC).strftime(TW_DATE_FORMAT)


class FakeTaskwarrior:
    """
    In-memory CommandRunner that understands the invocations the engine emits.

    `lag` models the tool's missing read-your-write guarantee: a write stays
    invisible to the next `lag` export calls, then shows up.
    """

    def __init__(self, *, lag: int = 0, created_message: bool = True) -> None:
        self.lag = lag
        self.created_message = created_message
        self.calls: list[list[str]] = []
        self.fail_next: str | None = None
        self.fail_verb: str | None = None
        self._actual: dict[str, dict] = {}
        self._visible: dict[str, dict] = {}
        self._pending: dict[str, int] = {}
        self._numbers = itertools.count(1)

    # ---- test helpers ----

    def seed(self, description: str, **fields) -> dict:
        record = {
            "uuid": str(uuidlib.uuid4()),
            "id": next(self._numbers),
            "description": description,
            "status": "pending",
            "entry": _now(),
            **fields,
        }
        self._actual[record["uuid"]] = record
        self._visible[record["uuid"]] = json.loads(json.dumps(record))
        return record

    def record(self, uuid: str) -> dict:
        return self._actual[uuid]

    def commands(self) -> list[str]:
        return [" ".join(argv) for argv in self.calls]

    # ---- CommandRunner ----

    def execute(self, invocation: CommandInvocation) -> CommandResult:
        argv = shlex.split(invocation.render())
        self.calls.append(argv)

        if self.fail_next is not None:
            message, self.fail_next = self.fail_next, None
            raise ExecutionError(message, command=invocation.render(), exit_status=1)

        if self.fail_verb is not None and self.fail_verb in argv:
            raise ExecutionError(f"Could not {self.fail_verb} task.", command=invocation.render(), exit_status=1)

        args = [a for a in argv if not a.startswith("rc.")]
        if not args:
            return self._ok("")

        if args[0] == "add":
            return self._add(args[1:])
        if args[0] == "_projects":
            projects = {r.get("project") for r in self._visible.values() if r.get("project")}
            return self._ok("\n".join(sorted(projects)) + "\n")
        if args[0] == "_tags":
            tags = {t for r in self._visible.values() for t in r.get("tags", [])}
            return self._ok("\n".join(sorted(tags)) + "\n")
        if args[-1] == "export":
            return self._export(args[:-1])

        for verb in ("modify", "done", "delete", "annotate"):
            if verb in args:
                i = args.index(verb)
                return self._write(verb, args[:i], args[i + 1 :])

        return self._ok(f"ran: {' '.join(args)}\n")

    # ---- internals ----

    def _ok(self, stdout: str) -> CommandResult:
        return CommandResult(stdout=stdout, stderr="", exit_status=0)

    def _touch(self, uuid: str) -> None:
        self._actual[uuid]["modified"] = _now()
        if self.lag <= 0:
            self._visible[uuid] = json.loads(json.dumps(self._actual[uuid]))
        else:
            self._pending[uuid] = self.lag

    def _add(self, args: list[str]) -> CommandResult:
        words: list[str] = []
        record = {
            "uuid": str(uuidlib.uuid4()),
            "id": next(self._numbers),
            "status": "pending",
            "entry": _now(),
        }
        self._apply(record, args, words)
        record["description"] = " ".join(words)
        self._actual[record["uuid"]] = record
        self._touch(record["uuid"])
        if self.created_message:
            return self._ok(f"Created task {record['id']}.\n")
        return self._ok("")

    def _apply(self, record: dict, args: list[str], words: list[str]) -> None:
        for arg in args:
            if arg == "tags:":
                record["tags"] = []
            elif arg.startswith("+"):
                tags = record.setdefault("tags", [])
                if arg[1:] not in tags:
                    tags.append(arg[1:])
            elif ":" in arg and arg.split(":", 1)[0] in _ATTRS:
                name, value = arg.split(":", 1)
                if name == "depends":
                    record[name] = value.split(",")
                elif name in ("due", "wait", "scheduled", "until") and len(value) == 10:
                    record[name] = value.replace("-", "") + "T000000Z"
                else:
                    record[name] = value
            else:
                words.append(arg)

    def _target(self, tokens: list[str]) -> list[dict]:
        out = []
        for token in tokens:
            if token.startswith("uuid:"):
                r = self._actual.get(token[5:])
                out.extend([r] if r else [])
            elif token.isdigit():
                out.extend(
                    r for r in self._actual.values() if r["id"] == int(token) and r["status"] == "pending"
                )
        return out

    def _write(self, verb: str, target: list[str], rest: list[str]) -> CommandResult:
        records = self._target(target)
        if not records:
            raise ExecutionError("No tasks specified.", command=" ".join(target + [verb]), exit_status=1)
        for record in records:
            if verb == "annotate":
                record.setdefault("annotations", []).append({"entry": _now(), "description": " ".join(rest)})
            else:
                self._apply(record, rest, [])
                if verb == "done":
                    record["status"] = "completed"
                    record["end"] = _now()
                elif verb == "delete":
                    record["status"] = "deleted"
                    record["end"] = _now()
            self._touch(record["uuid"])
        return self._ok(f"{verb.capitalize()} {len(records)} task.\n")

    def _export(self, tokens: list[str]) -> CommandResult:
        for uuid, remaining in list(self._pending.items()):
            if remaining <= 0:
                self._visible[uuid] = json.loads(json.dumps(self._actual[uuid]))
                del self._pending[uuid]
            else:
                self._pending[uuid] = remaining - 1

        selected = list(self._visible.values())
        for token in tokens:
            if token in _FILTER_NOISE:
                continue
            if token.startswith("uuid:"):
                selected = [r for r in selected if r["uuid"] == token[5:]]
            elif token.isdigit():
                selected = [r for r in selected if r["id"] == int(token) and r["status"] == "pending"]
            elif token.startswith("+"):
                selected = [r for r in selected if token[1:] in r.get("tags", [])]
            elif ":" in token:
                name, value = token.split(":", 1)
                if name in ("status", "project", "priority"):
                    selected = [r for r in selected if r.get(name) == value]

        out = []
        for r in selected:
            item = json.loads(json.dumps(r))
            item["id"] = r["id"] if r["status"] == "pending" else 0
            out.append(item)
        return self._ok(json.dumps(out))


class FakeLLMClient:
    """
    Deterministic LLM client for unit tests.

    - Captures calls for assertions
    - Yields a predefined text as a single chunk
    """

    def __init__(self, next_text: str = "ok") -> None:
        self.next_text = next_text
        self.calls: list[tuple[list[ChatMessage], str]] = []

    def stream_chat(self, messages: list[ChatMessage], system_prompt: str) -> Iterable[str]:
        self.calls.append((messages, system_prompt))
        yield self.next_text


class FakeTranslator:
    def __init__(self, command: str = "list") -> None:
        self.command = command
        self.requests: list[str] = []

    def parse_command(self, text: str) -> str:
        self.requests.append(text)
        return self.command


_CLOSE = object()


class FakeChannel:
    """Server side of a session channel, driven by the test."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self._inbox: asyncio.Queue = asyncio.Queue()

    def feed(self, frame: str | dict) -> None:
        self._inbox.put_nowait(json.dumps(frame) if isinstance(frame, dict) else frame)

    def disconnect(self) -> None:
        self._inbox.put_nowait(_CLOSE)

    @property
    def envelopes(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]

    def __aiter__(self) -> FakeChannel:
        return self

    async def __anext__(self) -> str:
        item = await self._inbox.get()
        if item is _CLOSE:
            raise StopAsyncIteration
        return item

    async def send(self, message: str) -> None:
        if self.closed:
            raise ConnectionClosed(None, None)
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self.closed = True
        self._inbox.put_nowait(_CLOSE)


class FakeSessionProcess:
    def __init__(self) -> None:
        self.written: list[str] = []
        self.started = False
        self.terminated = False
        self.returncode: int | None = None
        self._stdout: asyncio.Queue = asyncio.Queue()
        self._stderr: asyncio.Queue = asyncio.Queue()
        self._exited = asyncio.Event()

    def emit_stdout(self, text: str) -> None:
        self._stdout.put_nowait(text)

    def emit_stderr(self, text: str) -> None:
        self._stderr.put_nowait(text)

    def exit(self, code: int = 0) -> None:
        if self.returncode is not None:
            return
        self.returncode = code
        self._stdout.put_nowait(None)
        self._stderr.put_nowait(None)
        self._exited.set()

    async def start(self) -> None:
        self.started = True

    async def write_line(self, text: str) -> None:
        self.written.append(text)

    async def _chunks(self, queue: asyncio.Queue):
        while True:
            item = await queue.get()
            if item is None:
                return
            yield item

    def stdout_chunks(self):
        return self._chunks(self._stdout)

    def stderr_chunks(self):
        return self._chunks(self._stderr)

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    async def terminate(self) -> None:
        self.terminated = True
        self.exit(-9)


class FakeClientConnection:
    """Client side of a session channel: scripted inbound frames, recorded sends."""

    def __init__(self, frames: Iterable[str | dict] = (), *, stay_open: bool = False) -> None:
        self.frames = [json.dumps(f) if isinstance(f, dict) else f for f in frames]
        self.sent: list[str] = []
        self.stay_open = stay_open
        self._closed = asyncio.Event()

    @property
    def envelopes(self) -> list[dict]:
        return [json.loads(s) for s in self.sent]

    async def _iterate(self):
        for frame in self.frames:
            yield frame
        if self.stay_open:
            await self._closed.wait()
        self._closed.set()

    def __aiter__(self):
        return self._iterate()

    async def send(self, message: str) -> None:
        if self._closed.is_set():
            raise ConnectionClosed(None, None)
        self.sent.append(message)

    async def close(self, code: int = 1000, reason: str = "") -> None:
        self._closed.set()


class ScriptedConnector:
    """connect() replacement: returns (or raises) the scripted items in order."""

    def __init__(self, script: list) -> None:
        self.script = list(script)
        self.urls: list[str] = []

    async def __call__(self, url: str):
        self.urls.append(url)
        if not self.script:
            raise OSError("connection refused")
        item = self.script.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


class RecordingDisplay:
    def __init__(self) -> None:
        self.writes: list[str] = []

    def write(self, text: str) -> None:
        self.writes.append(text)

    @property
    def text(self) -> str:
        return "".join(self.writes)


async def until(predicate, *, timeout: float = 2.0) -> None:
    """Yield to the loop until `predicate()` holds."""
    async def _poll() -> None:
        while not predicate():
            await asyncio.sleep(0.005)

    await asyncio.wait_for(_poll(), timeout)
