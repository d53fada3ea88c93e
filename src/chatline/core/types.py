from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, List, Literal

ROLES = ("system", "user", "assistant")
SNAPSHOT_VERSION = 1
DEFAULT_HISTORY_CAP = 60


@dataclass(frozen=True, slots=True)
class ChatMessage:
    role: str
    content: str

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"unknown message role '{self.role}'")
        if not isinstance(self.content, str):
            raise ValueError("message content must be str")

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


EventKind = Literal["delta", "terminal", "malformed"]


@dataclass(frozen=True, slots=True)
class StreamEvent:
    kind: EventKind
    text: str = ""

    @classmethod
    def delta(cls, text: str) -> "StreamEvent":
        return cls(kind="delta", text=text)

    @classmethod
    def terminal(cls) -> "StreamEvent":
        return cls(kind="terminal")

    @classmethod
    def malformed(cls) -> "StreamEvent":
        return cls(kind="malformed")


class SessionState(enum.Enum):
    IDLE = "idle"
    AWAITING = "awaiting"
    STREAMING = "streaming"
    SETTLED = "settled"
    FAILED = "failed"


@dataclass(slots=True)
class TranscriptSnapshot:
    version: int = SNAPSHOT_VERSION
    cap: int = DEFAULT_HISTORY_CAP
    messages: List[ChatMessage] = field(default_factory=list)

    def to_payload(self) -> dict[str, Any]:
        return {
            "version": self.version,
            "cap": self.cap,
            "messages": [message.to_dict() for message in self.messages],
        }
