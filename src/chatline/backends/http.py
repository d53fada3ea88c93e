from __future__ import annotations

import http.client
import json
import logging
import os
import urllib.error
import urllib.request
from dataclasses import dataclass
from typing import Any, Iterator

from chatline.backends.registry import register_transport
from chatline.core.errors import TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://models.inference.ai.azure.com"
DEFAULT_PATH = "/chat/completions"
_ENV_LOG_PAYLOAD = "CHATLINE_LOG_PAYLOAD"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _error_detail(raw: bytes, status: int) -> str:
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        return f"HTTP {status}"
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
        if isinstance(payload.get("message"), str):
            return payload["message"]
    return f"HTTP {status}"


@dataclass(slots=True)
class HttpTransport:
    """POSTs a chat completions request and yields the raw response body.

    ``timeout_s`` is handed to ``urlopen`` and so bounds both the wait for the
    response head and every subsequent read from the socket.
    """

    base_url: str = os.getenv("CHATLINE_BASE_URL", DEFAULT_BASE_URL)
    path: str = DEFAULT_PATH
    timeout_s: float = _env_float("CHATLINE_TIMEOUT_S", 60.0)
    chunk_size: int = 4096

    @property
    def url(self) -> str:
        return f"{self.base_url.rstrip('/')}{self.path}"

    def _headers(self, token: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
            "Authorization": f"Bearer {token}",
        }

    def send(self, body: dict[str, Any], token: str) -> Iterator[bytes]:
        if os.getenv(_ENV_LOG_PAYLOAD) == "1":
            logger.info("POST %s\n%s", self.url, json.dumps(body, indent=2, ensure_ascii=False))
        data = json.dumps(body).encode("utf-8")
        request = urllib.request.Request(
            self.url, data=data, headers=self._headers(token), method="POST"
        )
        try:
            response = urllib.request.urlopen(request, timeout=self.timeout_s)
        except urllib.error.HTTPError as exc:
            raw = exc.read() or b""
            raise TransportError(_error_detail(raw, exc.code), status=exc.code) from exc
        except urllib.error.URLError as exc:
            raise TransportError(f"connection failed: {exc.reason}") from exc
        with response:
            status = getattr(response, "status", 200)
            if status < 200 or status >= 300:
                raise TransportError(_error_detail(response.read(), status), status=status)
            read = getattr(response, "read1", None) or response.read
            while True:
                try:
                    chunk = read(self.chunk_size)
                except (http.client.HTTPException, OSError) as exc:
                    raise TransportError(f"connection lost: {exc!r}") from exc
                if not chunk:
                    break
                yield chunk


register_transport(
    "http", HttpTransport, options=("base_url", "path", "timeout_s", "chunk_size")
)
