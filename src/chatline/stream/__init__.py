"""Decoding of streamed chat completion responses."""

from .deltas import (
    EVENT_PREFIX,
    TERMINAL_SENTINEL,
    PayloadResult,
    decode_payload,
    extract_delta_text,
    parse_event_line,
    split_event_payload,
)
from .frames import FrameDecoder, iter_lines

__all__ = [
    "EVENT_PREFIX",
    "TERMINAL_SENTINEL",
    "FrameDecoder",
    "PayloadResult",
    "decode_payload",
    "extract_delta_text",
    "iter_lines",
    "parse_event_line",
    "split_event_payload",
]
