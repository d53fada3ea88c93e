from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Protocol, Sequence

DEFAULT_TOKEN_ENV = ("CHATLINE_API_TOKEN", "GITHUB_TOKEN")


class CredentialProvider(Protocol):
    def get_token(self) -> str | None:
        ...


def _clean(token: str | None) -> str | None:
    if token is None:
        return None
    token = token.strip()
    return token or None


@dataclass(frozen=True, slots=True)
class StaticCredentialProvider:
    token: str | None = None

    def get_token(self) -> str | None:
        return _clean(self.token)


@dataclass(frozen=True, slots=True)
class EnvCredentialProvider:
    env_names: Sequence[str] = DEFAULT_TOKEN_ENV

    def get_token(self) -> str | None:
        for name in self.env_names:
            token = _clean(os.getenv(name))
            if token:
                return token
        return None
