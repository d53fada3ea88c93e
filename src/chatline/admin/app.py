from __future__ import annotations

import json
import os
import queue
import threading
from pathlib import Path
from typing import Any, Iterator

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from chatline.backends.registry import Transport
from chatline.config import ChatSettings, load_config, load_settings, save_settings
from chatline.core.errors import ConfigurationError, SessionBusyError
from chatline.core.types import ChatMessage
from chatline.runtime import controller
from chatline.runtime.credentials import CredentialProvider
from chatline.runtime.session import ConversationSession

_STREAM_END = object()


class ChatRequest(BaseModel):
    text: str


class SettingsRequest(BaseModel):
    system_prompt: str | None = None
    model: str | None = None


def _message_payload(message: ChatMessage) -> dict[str, str]:
    return message.to_dict()


def _sse(payload: dict[str, Any]) -> str:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n"


def create_app(
    data_root: Path | None = None,
    transport: Transport | None = None,
    credentials: CredentialProvider | None = None,
) -> FastAPI:
    config = load_config(data_root)
    session = controller.build_session(config, transport=transport, credentials=credentials)

    app = FastAPI()
    app.state.config = config
    app.state.session = session

    def require_token(request: Request) -> None:
        token = os.getenv("CHATLINE_ADMIN_TOKEN")
        if not token:
            return
        if request.headers.get("X-Admin-Token") != token:
            raise HTTPException(status_code=401, detail="Invalid admin token")

    def _chat_session() -> ConversationSession:
        return app.state.session

    def _accept(current: ConversationSession, text: str) -> str:
        try:
            return current.accept(text)
        except SessionBusyError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except ConfigurationError as exc:
            raise HTTPException(status_code=401, detail=str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    @app.get("/api/health", dependencies=[Depends(require_token)])
    def api_health() -> dict[str, Any]:
        return {"ok": True}

    @app.get("/api/transcript", dependencies=[Depends(require_token)])
    def api_transcript() -> dict[str, Any]:
        current = _chat_session()
        return {
            "messages": [_message_payload(message) for message in current.store.messages()],
            "cap": current.store.cap,
            "state": current.state.value,
        }

    @app.delete("/api/transcript", dependencies=[Depends(require_token)])
    def api_clear_transcript() -> dict[str, Any]:
        try:
            _chat_session().clear()
        except SessionBusyError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        return {"cleared": True}

    @app.get("/api/settings", dependencies=[Depends(require_token)])
    def api_get_settings() -> dict[str, Any]:
        current = _chat_session()
        return {"system_prompt": current.system_prompt, "model": current.model}

    @app.put("/api/settings", dependencies=[Depends(require_token)])
    def api_put_settings(payload: SettingsRequest) -> dict[str, Any]:
        current = _chat_session()
        stored = load_settings(config.data_root)
        updated = ChatSettings(
            system_prompt=(
                payload.system_prompt if payload.system_prompt is not None else stored.system_prompt
            ),
            model=payload.model or stored.model,
        )
        save_settings(config.data_root, updated)
        if updated.system_prompt is not None:
            current.system_prompt = updated.system_prompt
        if updated.model:
            current.model = updated.model
        return {"system_prompt": current.system_prompt, "model": current.model}

    @app.post("/api/chat", dependencies=[Depends(require_token)])
    def api_chat(payload: ChatRequest) -> dict[str, Any]:
        current = _chat_session()
        token = _accept(current, payload.text)
        message = current.stream_reply(token)
        outcome = current.last_outcome.value if current.last_outcome else None
        return {"state": outcome, "message": _message_payload(message)}

    @app.post("/api/chat/stream", dependencies=[Depends(require_token)])
    def api_chat_stream(payload: ChatRequest) -> StreamingResponse:
        current = _chat_session()
        token = _accept(current, payload.text)
        events: queue.Queue[Any] = queue.Queue()

        def _render(text: str, final: bool) -> None:
            events.put({"text": text, "final": final})

        def _worker() -> None:
            try:
                current.stream_reply(token, _render)
            except Exception as exc:  # noqa: BLE001
                events.put({"error": str(exc), "final": True})
            finally:
                events.put(_STREAM_END)

        threading.Thread(target=_worker, daemon=True).start()

        def _iter_events() -> Iterator[str]:
            while True:
                item = events.get()
                if item is _STREAM_END:
                    break
                yield _sse(item)
            yield "data: [DONE]\n\n"

        return StreamingResponse(_iter_events(), media_type="text/event-stream")

    return app
