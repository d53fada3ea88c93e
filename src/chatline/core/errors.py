from __future__ import annotations


class ChatlineError(Exception):
    """Base class for errors raised by chatline."""


class ConfigurationError(ChatlineError):
    """Raised before any I/O when the client is not usable (e.g. no token)."""


class TransportError(ChatlineError):
    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class SessionBusyError(ChatlineError):
    """Raised when a request is started while another one is in flight."""
