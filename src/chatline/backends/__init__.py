"""Transport implementations."""

from .fake import FakeTransport, sse_delta_line
from .http import HttpTransport
from .registry import Transport, get_transport, list_transports, register_transport

__all__ = [
    "FakeTransport",
    "HttpTransport",
    "Transport",
    "get_transport",
    "list_transports",
    "register_transport",
    "sse_delta_line",
]
