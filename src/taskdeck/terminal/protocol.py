# src/taskdeck/terminal/protocol.py

"""
Session channel envelopes.

Every frame is one JSON object discriminated on "type":

    server -> client   {"type": "output",  "output": "..."}
                       {"type": "error",   "error": "..."}
                       {"type": "command", "command": "..."}   (suggested, never auto-sent)
    client -> server   {"type": "command", "command": "..."}
                       {"type": "parse",   "text": "..."}
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Union


class ProtocolError(ValueError):
    """A frame that is not a well-formed envelope."""


@dataclass(frozen=True, slots=True)
class OutputEnvelope:
    output: str


@dataclass(frozen=True, slots=True)
class ErrorEnvelope:
    error: str


@dataclass(frozen=True, slots=True)
class CommandEnvelope:
    command: str


@dataclass(frozen=True, slots=True)
class ParseEnvelope:
    text: str


Envelope = Union[OutputEnvelope, ErrorEnvelope, CommandEnvelope, ParseEnvelope]

# type tag -> (envelope class, payload key)
_KINDS: dict[str, tuple[type, str]] = {
    "output": (OutputEnvelope, "output"),
    "error": (ErrorEnvelope, "error"),
    "command": (CommandEnvelope, "command"),
    "parse": (ParseEnvelope, "text"),
}
_TAGS = {cls: (tag, key) for tag, (cls, key) in _KINDS.items()}


def encode(envelope: Envelope) -> str:
    tag, key = _TAGS[type(envelope)]
    return json.dumps({"type": tag, key: getattr(envelope, key)}, ensure_ascii=False)


def decode(raw: str | bytes) -> Envelope:
    if isinstance(raw, bytes):
        try:
            raw = raw.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ProtocolError("Frame is not valid UTF-8") from e

    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ProtocolError(f"Frame is not JSON: {e.msg}") from e

    if not isinstance(data, dict):
        raise ProtocolError("Frame must be a JSON object")

    tag = data.get("type")
    kind = _KINDS.get(tag) if isinstance(tag, str) else None
    if kind is None:
        raise ProtocolError(f"Unknown frame type: {tag!r}")

    cls, key = kind
    value = data.get(key)
    if not isinstance(value, str):
        raise ProtocolError(f"Frame of type {tag!r} needs a string {key!r} field")
    return cls(value)
