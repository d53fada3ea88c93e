"""Conversation state machine, transcript storage and wiring."""

from .credentials import CredentialProvider, EnvCredentialProvider, StaticCredentialProvider
from .session import ConversationSession, PendingAssistantText, RenderSink, format_failure
from .storage import JsonFileBackend, MemoryBackend, PersistenceBackend
from .transcript import TranscriptStore, parse_snapshot

__all__ = [
    "ConversationSession",
    "CredentialProvider",
    "EnvCredentialProvider",
    "JsonFileBackend",
    "MemoryBackend",
    "PendingAssistantText",
    "PersistenceBackend",
    "RenderSink",
    "StaticCredentialProvider",
    "TranscriptStore",
    "format_failure",
    "parse_snapshot",
]
