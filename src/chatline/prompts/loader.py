from __future__ import annotations

from importlib import resources

_PROMPT_CACHE: dict[str, str] = {}

DEFAULT_SYSTEM_PROMPT = "system/default.txt"


def load_prompt(rel_path: str) -> str:
    if rel_path in _PROMPT_CACHE:
        return _PROMPT_CACHE[rel_path]
    content = resources.files(__package__).joinpath(rel_path).read_text(encoding="utf-8")
    _PROMPT_CACHE[rel_path] = content.strip()
    return _PROMPT_CACHE[rel_path]


def default_system_prompt() -> str:
    return load_prompt(DEFAULT_SYSTEM_PROMPT)
