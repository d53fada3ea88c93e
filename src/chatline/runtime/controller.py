from __future__ import annotations

from chatline.backends import get_transport
from chatline.backends.registry import Transport
from chatline.config import ChatConfig, load_config
from chatline.core.tracing import TraceWriter
from chatline.core.types import ChatMessage
from chatline.runtime.credentials import CredentialProvider, EnvCredentialProvider
from chatline.runtime.session import ConversationSession, RenderSink
from chatline.runtime.storage import JsonFileBackend
from chatline.runtime.transcript import TranscriptStore

DEFAULT_SESSION = "default"


def build_transport(config: ChatConfig, name: str | None = None) -> Transport:
    return get_transport(
        name or config.transport, base_url=config.base_url, timeout_s=config.timeout_s
    )


def open_store(config: ChatConfig, session_id: str = DEFAULT_SESSION) -> TranscriptStore:
    store = TranscriptStore(
        JsonFileBackend(config.transcript_dir),
        key=session_id,
        cap=config.history_cap,
    )
    store.load()
    return store


def build_session(
    config: ChatConfig | None = None,
    transport: Transport | None = None,
    credentials: CredentialProvider | None = None,
    session_id: str = DEFAULT_SESSION,
) -> ConversationSession:
    config = config or load_config()
    return ConversationSession(
        store=open_store(config, session_id),
        transport=transport or build_transport(config),
        credentials=credentials or EnvCredentialProvider(),
        system_prompt=config.system_prompt,
        model=config.model,
        tracer=TraceWriter(session_id, base_dir=config.trace_dir),
    )


def run_turn(
    user_text: str,
    transport: Transport | None = None,
    *,
    config: ChatConfig | None = None,
    credentials: CredentialProvider | None = None,
    session_id: str = DEFAULT_SESSION,
    render: RenderSink | None = None,
) -> ChatMessage:
    session = build_session(config, transport, credentials, session_id)
    return session.start(user_text, render)
