from __future__ import annotations

import json
import logging
import time
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class TraceEvent:
    ts: float
    kind: str
    data: dict[str, Any] = field(default_factory=dict)


class TraceWriter:
    """Appends session lifecycle events to ``<base_dir>/<session_id>.jsonl``.

    Tracing never interrupts a chat turn: failed writes are logged and dropped.
    """

    def __init__(self, session_id: str, base_dir: Path | None = None) -> None:
        self.session_id = session_id
        self.base_dir = base_dir or Path("data") / "traces"

    @property
    def path(self) -> Path:
        return self.base_dir / f"{self.session_id}.jsonl"

    def write(self, event: TraceEvent) -> Path | None:
        payload = json.dumps(asdict(event), ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(payload + "\n")
        except OSError as exc:
            logger.warning("Failed to write trace event %s: %s", event.kind, exc)
            return None
        return self.path

    def emit(self, kind: str, **data: Any) -> Path | None:
        return self.write(TraceEvent(ts=time.time(), kind=kind, data=data))
