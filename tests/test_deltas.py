from __future__ import annotations

import sys

import pytest

from chatline.core.types import StreamEvent
from chatline.stream.deltas import (
    decode_payload,
    extract_delta_text,
    parse_event_line,
    split_event_payload,
)


def test_split_event_payload_ignores_other_lines() -> None:
    assert split_event_payload("") is None
    assert split_event_payload(": keep-alive") is None
    assert split_event_payload("event: ping") is None
    assert split_event_payload("data: {}") == "{}"
    assert split_event_payload("data:[DONE]") == "[DONE]"


def test_decode_payload_branches() -> None:
    parsed = decode_payload('{"choices": []}')
    assert parsed.ok
    assert parsed.record == {"choices": []}

    assert decode_payload('{"choices": [').status == "malformed"
    assert decode_payload("[1, 2]").status == "malformed"
    assert decode_payload('"text"').status == "malformed"


def test_extract_delta_text_branches() -> None:
    assert extract_delta_text({"choices": [{"delta": {"content": "Hi"}}]}) == "Hi"
    assert extract_delta_text({"choices": [{"delta": {"content": ""}}]}) is None
    assert extract_delta_text({"choices": [{"delta": {"role": "assistant"}}]}) is None
    assert extract_delta_text({"choices": [{"delta": {"content": None}}]}) is None
    assert extract_delta_text({"choices": []}) is None
    assert extract_delta_text({"usage": {"total_tokens": 3}}) is None
    assert extract_delta_text({"choices": ["oops"]}) is None
    assert extract_delta_text({"choices": [{"text": "legacy"}]}) == "legacy"


def test_parse_event_line_terminal() -> None:
    assert parse_event_line("data: [DONE]") == StreamEvent.terminal()
    assert parse_event_line("data: [DONE]  ") == StreamEvent.terminal()


def test_parse_event_line_delta() -> None:
    line = 'data: {"choices":[{"delta":{"content":"Hi"}}]}'

    assert parse_event_line(line) == StreamEvent.delta("Hi")


def test_parse_event_line_malformed_and_ignored() -> None:
    assert parse_event_line('data: {"choices":[{"delta":') == StreamEvent.malformed()
    assert parse_event_line("data: {}") is None
    assert parse_event_line("") is None
    assert parse_event_line("retry: 1000") is None


def test_deeply_nested_payload_is_malformed() -> None:
    payload = "[" * 100_000

    assert decode_payload(payload).status == "malformed"
    assert parse_event_line("data: " + payload) == StreamEvent.malformed()


@pytest.mark.skipif(
    not hasattr(sys, "get_int_max_str_digits"), reason="no integer string length limit"
)
def test_oversized_integer_payload_is_malformed() -> None:
    payload = '{"n": ' + "9" * 5000 + "}"

    assert decode_payload(payload).status == "malformed"
    assert parse_event_line("data: " + payload) == StreamEvent.malformed()
