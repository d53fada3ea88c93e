from __future__ import annotations

import http.client
import logging
import threading
from collections.abc import Callable
from typing import Any, Iterable

from chatline.backends.registry import Transport
from chatline.core.errors import ConfigurationError, SessionBusyError, TransportError
from chatline.core.tracing import TraceWriter
from chatline.core.types import ChatMessage, SessionState
from chatline.runtime.credentials import CredentialProvider
from chatline.runtime.transcript import TranscriptStore
from chatline.stream.deltas import parse_event_line
from chatline.stream.frames import DEFAULT_ENCODING, iter_lines

logger = logging.getLogger(__name__)

RenderSink = Callable[[str, bool], None]

DEFAULT_MODEL = "gpt-4o"
ERROR_TEMPLATE = (
    "An error occurred: {detail}\n\n"
    "Failed to reach the chat completions API. "
    "Check that the token has the models:read scope."
)

# Raised by the transport or while decoding its bytes; these settle as FAILED.
_TRANSPORT_FAILURES = (
    TransportError,
    OSError,
    http.client.HTTPException,
    UnicodeDecodeError,
)


def format_failure(exc: BaseException) -> str:
    detail = str(exc).strip() or exc.__class__.__name__
    return ERROR_TEMPLATE.format(detail=detail)


class PendingAssistantText:
    def __init__(self) -> None:
        self._text = ""
        self.deltas = 0

    @property
    def text(self) -> str:
        return self._text

    def append(self, delta: str) -> str:
        self._text += delta
        self.deltas += 1
        return self._text


class ConversationSession:
    """Drives one request at a time from user input to a committed reply.

    Lifecycle: IDLE -> AWAITING -> STREAMING -> SETTLED | FAILED -> IDLE.
    ``start`` blocks until the request settles and returns the assistant
    message it committed. A second ``start`` while a request is in flight is
    rejected with ``SessionBusyError``. ``accept`` and ``stream_reply`` are the
    two halves of ``start`` for callers that must claim the session before
    streaming the reply on another thread.

    If anything other than a transport failure escapes the stream loop (for
    example the render sink raising, or ``KeyboardInterrupt``), the partial
    reply is discarded, a diagnostic assistant message is committed, and the
    exception is re-raised once the session is back to IDLE.
    """

    def __init__(
        self,
        store: TranscriptStore,
        transport: Transport,
        credentials: CredentialProvider,
        system_prompt: str = "",
        model: str = DEFAULT_MODEL,
        tracer: TraceWriter | None = None,
        encoding: str = DEFAULT_ENCODING,
    ) -> None:
        self.store = store
        self.transport = transport
        self.credentials = credentials
        self.system_prompt = system_prompt
        self.model = model
        self.tracer = tracer
        self.encoding = encoding
        self.last_outcome: SessionState | None = None
        self._state = SessionState.IDLE
        self._lock = threading.Lock()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def busy(self) -> bool:
        return self._state in (SessionState.AWAITING, SessionState.STREAMING)

    def build_request(self) -> dict[str, Any]:
        messages = [{"role": "system", "content": self.system_prompt}]
        messages.extend(message.to_dict() for message in self.store.messages())
        return {"model": self.model, "messages": messages, "stream": True}

    def start(self, user_text: str, render: RenderSink | None = None) -> ChatMessage:
        token = self.accept(user_text)
        return self.stream_reply(token, render)

    def accept(self, user_text: str) -> str:
        """Commit the user message and move to AWAITING; returns the bearer token.

        Raises before touching the transcript when the session is busy, the
        text is blank or no token is configured.
        """
        with self._lock:
            if self._state is not SessionState.IDLE:
                raise SessionBusyError(
                    f"session is {self._state.value}; wait for the current reply to settle"
                )
            text = user_text.strip() if isinstance(user_text, str) else ""
            if not text:
                raise ValueError("user message must be non-empty")
            token = self.credentials.get_token()
            if not token:
                raise ConfigurationError("no API token configured")
            self.store.append(ChatMessage(role="user", content=text))
            self._state = SessionState.AWAITING
        return token

    def stream_reply(self, token: str, render: RenderSink | None = None) -> ChatMessage:
        if self._state is not SessionState.AWAITING:
            raise RuntimeError("stream_reply needs a request accepted by accept()")
        body = self.build_request()
        self._trace("chat_req", model=self.model, messages=len(body["messages"]))
        pending = PendingAssistantText()
        try:
            self._consume(self.transport.send(body, token), pending, render)
        except _TRANSPORT_FAILURES as exc:
            logger.warning("Chat request failed after %d deltas: %s", pending.deltas, exc)
            return self._finish(
                ChatMessage(role="assistant", content=format_failure(exc)),
                SessionState.FAILED,
                render,
                error=str(exc),
            )
        except BaseException as exc:
            self._finish(
                ChatMessage(role="assistant", content=format_failure(exc)),
                SessionState.FAILED,
                None,
                error=repr(exc),
            )
            raise
        return self._finish(
            ChatMessage(role="assistant", content=pending.text),
            SessionState.SETTLED,
            render,
            deltas=pending.deltas,
        )

    def clear(self) -> None:
        with self._lock:
            if self.busy:
                raise SessionBusyError("cannot clear the transcript while a reply is streaming")
            self.store.clear()
        self._trace("transcript_cleared")

    def _consume(
        self,
        chunks: Iterable[bytes],
        pending: PendingAssistantText,
        render: RenderSink | None,
    ) -> None:
        lines = iter_lines(chunks, encoding=self.encoding)
        try:
            for line in lines:
                event = parse_event_line(line)
                if event is None:
                    continue
                if event.kind == "malformed":
                    logger.debug("Skipping malformed stream record: %.200s", line)
                    continue
                if event.kind == "terminal":
                    break
                if self._state is SessionState.AWAITING:
                    self._state = SessionState.STREAMING
                current = pending.append(event.text)
                if render is not None:
                    render(current, False)
        finally:
            lines.close()
            close = getattr(chunks, "close", None)
            if callable(close):
                close()

    def _finish(
        self,
        message: ChatMessage,
        outcome: SessionState,
        render: RenderSink | None,
        **trace_data: Any,
    ) -> ChatMessage:
        self.store.append(message)
        self._state = outcome
        self.last_outcome = outcome
        kind = "chat_settled" if outcome is SessionState.SETTLED else "chat_failed"
        try:
            if render is not None:
                render(message.content, True)
        finally:
            self.store.save()
            self._trace(kind, chars=len(message.content), **trace_data)
            self._state = SessionState.IDLE
        return message

    def _trace(self, kind: str, **data: Any) -> None:
        if self.tracer is not None:
            self.tracer.emit(kind, **data)
