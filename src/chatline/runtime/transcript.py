from __future__ import annotations

import json
import logging
from collections import deque
from typing import Any, Iterator

from chatline.core.types import (
    DEFAULT_HISTORY_CAP,
    SNAPSHOT_VERSION,
    ChatMessage,
    TranscriptSnapshot,
)
from chatline.runtime.storage import PersistenceBackend

logger = logging.getLogger(__name__)

DEFAULT_KEY = "messages"


def _coerce_message(item: Any) -> ChatMessage | None:
    if not isinstance(item, dict):
        return None
    role = item.get("role")
    content = item.get("content")
    if role not in ("user", "assistant") or not isinstance(content, str):
        return None
    return ChatMessage(role=role, content=content)


def parse_snapshot(raw: str | None, cap: int = DEFAULT_HISTORY_CAP) -> TranscriptSnapshot:
    """Decode persisted transcript data, treating anything unusable as empty.

    Accepts the versioned object form and the older bare list of messages.
    Snapshots written by a newer version are read for their ``messages`` list
    and any unknown fields are ignored.
    """
    if raw is None:
        return TranscriptSnapshot(cap=cap)
    try:
        payload = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Ignoring unreadable transcript snapshot")
        return TranscriptSnapshot(cap=cap)
    if isinstance(payload, list):
        items = payload
    elif isinstance(payload, dict) and isinstance(payload.get("messages"), list):
        version = payload.get("version")
        if not isinstance(version, int):
            logger.warning("Transcript snapshot has no version; reading messages only")
        elif version > SNAPSHOT_VERSION:
            logger.info("Reading transcript snapshot version %s as version %s", version, SNAPSHOT_VERSION)
        items = payload["messages"]
    else:
        logger.warning("Ignoring transcript snapshot with unexpected shape")
        return TranscriptSnapshot(cap=cap)
    messages: list[ChatMessage] = []
    skipped = 0
    for item in items:
        message = _coerce_message(item)
        if message is None:
            skipped += 1
            continue
        messages.append(message)
    if skipped:
        logger.warning("Skipped %d invalid transcript entries", skipped)
    return TranscriptSnapshot(cap=cap, messages=messages[-cap:])


class TranscriptStore:
    """Ordered, capped message log mirrored to a persistence backend.

    The in-memory deque is authoritative. ``save`` and ``clear`` report backend
    failures through logging and never raise them.
    """

    def __init__(
        self,
        backend: PersistenceBackend | None = None,
        key: str = DEFAULT_KEY,
        cap: int = DEFAULT_HISTORY_CAP,
    ) -> None:
        if cap <= 0:
            raise ValueError("transcript cap must be positive")
        self.backend = backend
        self.key = key
        self.cap = cap
        self._messages: deque[ChatMessage] = deque(maxlen=cap)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))

    def messages(self) -> list[ChatMessage]:
        return list(self._messages)

    def append(self, message: ChatMessage) -> None:
        if message.role == "system":
            raise ValueError("system messages are not stored in the transcript")
        self._messages.append(message)

    def snapshot(self) -> TranscriptSnapshot:
        return TranscriptSnapshot(version=SNAPSHOT_VERSION, cap=self.cap, messages=self.messages())

    def load(self) -> int:
        raw = None
        if self.backend is not None:
            try:
                raw = self.backend.get(self.key)
            except (OSError, ValueError) as exc:
                logger.warning("Failed to load transcript '%s': %s", self.key, exc)
        snapshot = parse_snapshot(raw, self.cap)
        self._messages = deque(snapshot.messages, maxlen=self.cap)
        return len(self._messages)

    def save(self) -> bool:
        if self.backend is None:
            return False
        payload = json.dumps(self.snapshot().to_payload(), ensure_ascii=False)
        try:
            self.backend.set(self.key, payload)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to save transcript '%s': %s", self.key, exc)
            return False
        return True

    def clear(self) -> None:
        self._messages.clear()
        if self.backend is None:
            return
        try:
            self.backend.delete(self.key)
        except (OSError, ValueError) as exc:
            logger.warning("Failed to erase transcript '%s': %s", self.key, exc)
