from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, Iterator, List

from chatline.backends.registry import register_transport


@dataclass(slots=True)
class FakeTransport:
    """Replays scripted byte chunks; optionally raises after the script ends."""

    chunks: List[bytes] = field(default_factory=list)
    error: BaseException | None = None
    calls: List[dict[str, Any]] = field(default_factory=list)

    def send(self, body: dict[str, Any], token: str) -> Iterator[bytes]:
        self.calls.append({"body": body, "token": token})
        chunks = list(self.chunks)
        error = self.error
        return self._replay(chunks, error)

    @staticmethod
    def _replay(chunks: list[bytes], error: BaseException | None) -> Iterator[bytes]:
        yield from chunks
        if error is not None:
            raise error

    def set_chunks(self, chunks: Iterable[bytes]) -> None:
        self.chunks = list(chunks)

    def set_lines(self, lines: Iterable[str]) -> None:
        self.chunks = [f"{line}\n".encode("utf-8") for line in lines]

    def set_deltas(self, deltas: Iterable[str], done: bool = True) -> None:
        lines = [sse_delta_line(delta) for delta in deltas]
        if done:
            lines.append("data: [DONE]")
        self.set_lines(lines)


def sse_delta_line(text: str) -> str:
    record = {"choices": [{"index": 0, "delta": {"content": text}}]}
    return "data: " + json.dumps(record, ensure_ascii=False)


def _load_env_json_list(env_value: str) -> list[str]:
    data = json.loads(env_value)
    if not isinstance(data, list) or not all(isinstance(item, str) for item in data):
        raise ValueError("fake deltas must be a JSON list of strings")
    return data


def _factory() -> FakeTransport:
    transport = FakeTransport()
    deltas_json = os.getenv("CHATLINE_FAKE_DELTAS")
    if deltas_json:
        transport.set_deltas(_load_env_json_list(deltas_json))
    return transport


register_transport("fake", _factory)
