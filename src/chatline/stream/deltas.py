"""Interpretation of decoded event lines.

Each step returns an explicit result instead of raising so the three
outcomes of a line (ignored framing, malformed payload, usable record) can
be handled and tested separately.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Literal

from chatline.core.types import StreamEvent

EVENT_PREFIX = "data:"
TERMINAL_SENTINEL = "[DONE]"


@dataclass(frozen=True, slots=True)
class PayloadResult:
    status: Literal["parsed", "malformed"]
    record: dict[str, Any] | None = None

    @property
    def ok(self) -> bool:
        return self.status == "parsed"


def split_event_payload(line: str) -> str | None:
    stripped = line.strip()
    if not stripped.startswith(EVENT_PREFIX):
        return None
    return stripped[len(EVENT_PREFIX) :].strip()


def decode_payload(payload: str) -> PayloadResult:
    try:
        record = json.loads(payload)
    except (ValueError, RecursionError):
        return PayloadResult(status="malformed")
    if not isinstance(record, dict):
        return PayloadResult(status="malformed")
    return PayloadResult(status="parsed", record=record)


def extract_delta_text(record: dict[str, Any]) -> str | None:
    choices = record.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0]
    if not isinstance(first, dict):
        return None
    delta = first.get("delta")
    if isinstance(delta, dict):
        content = delta.get("content")
    else:
        content = first.get("text")
    if isinstance(content, str) and content:
        return content
    return None


def parse_event_line(line: str) -> StreamEvent | None:
    payload = split_event_payload(line)
    if payload is None:
        return None
    if payload == TERMINAL_SENTINEL:
        return StreamEvent.terminal()
    result = decode_payload(payload)
    if not result.ok or result.record is None:
        return StreamEvent.malformed()
    text = extract_delta_text(result.record)
    if text is None:
        return None
    return StreamEvent.delta(text)
