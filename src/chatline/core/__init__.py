"""Core data contracts and utilities."""

from .errors import ChatlineError, ConfigurationError, SessionBusyError, TransportError
from .tracing import TraceEvent, TraceWriter
from .types import ChatMessage, SessionState, StreamEvent, TranscriptSnapshot

__all__ = [
    "ChatMessage",
    "ChatlineError",
    "ConfigurationError",
    "SessionBusyError",
    "SessionState",
    "StreamEvent",
    "TraceEvent",
    "TraceWriter",
    "TranscriptSnapshot",
    "TransportError",
]
