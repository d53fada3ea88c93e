from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path

from chatline.backends.http import DEFAULT_BASE_URL
from chatline.core.types import DEFAULT_HISTORY_CAP
from chatline.prompts import default_system_prompt
from chatline.runtime.session import DEFAULT_MODEL

logger = logging.getLogger(__name__)

SETTINGS_FILE = "settings.json"


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        return default
    return value if value > 0 else default


@dataclass(frozen=True, slots=True)
class ChatConfig:
    data_root: Path
    base_url: str
    model: str
    timeout_s: float
    history_cap: int
    system_prompt: str
    transport: str

    @property
    def transcript_dir(self) -> Path:
        return self.data_root / "transcripts"

    @property
    def trace_dir(self) -> Path:
        return self.data_root / "traces"


@dataclass(frozen=True, slots=True)
class ChatSettings:
    system_prompt: str | None = None
    model: str | None = None


def load_config(data_root: Path | None = None) -> ChatConfig:
    root = data_root or Path(os.getenv("CHATLINE_DATA_ROOT", "data"))
    config = ChatConfig(
        data_root=root,
        base_url=os.getenv("CHATLINE_BASE_URL", DEFAULT_BASE_URL),
        model=os.getenv("CHATLINE_MODEL", DEFAULT_MODEL),
        timeout_s=_env_float("CHATLINE_TIMEOUT_S", 60.0),
        history_cap=_env_int("CHATLINE_HISTORY_CAP", DEFAULT_HISTORY_CAP),
        system_prompt=os.getenv("CHATLINE_SYSTEM_PROMPT") or default_system_prompt(),
        transport=os.getenv("CHATLINE_TRANSPORT", "http"),
    )
    settings = load_settings(root)
    if settings.system_prompt is not None:
        config = replace(config, system_prompt=settings.system_prompt)
    if settings.model is not None:
        config = replace(config, model=settings.model)
    return config


def load_settings(data_root: Path) -> ChatSettings:
    path = data_root / SETTINGS_FILE
    if not path.exists():
        return ChatSettings()
    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning("Ignoring unreadable settings file %s: %s", path, exc)
        return ChatSettings()
    if not isinstance(payload, dict):
        return ChatSettings()
    system_prompt = payload.get("system_prompt")
    model = payload.get("model")
    return ChatSettings(
        system_prompt=system_prompt if isinstance(system_prompt, str) else None,
        model=model if isinstance(model, str) and model else None,
    )


def save_settings(data_root: Path, settings: ChatSettings) -> Path:
    path = data_root / SETTINGS_FILE
    path.parent.mkdir(parents=True, exist_ok=True)
    payload = {"system_prompt": settings.system_prompt, "model": settings.model}
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return path
