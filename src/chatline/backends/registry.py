from __future__ import annotations

from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass
from typing import Any, Protocol


class Transport(Protocol):
    def send(self, body: dict[str, Any], token: str) -> Iterator[bytes]:
        ...


@dataclass(frozen=True, slots=True)
class TransportEntry:
    factory: Callable[..., Transport]
    options: frozenset[str]


_TRANSPORTS: dict[str, TransportEntry] = {}


def register_transport(
    name: str,
    factory: Callable[..., Transport],
    options: Iterable[str] = (),
) -> None:
    """Register ``factory`` under ``name``.

    ``options`` names the connection settings the factory accepts; any other
    setting handed to ``get_transport`` is not passed on, so callers can offer
    the full connection config to whichever transport is selected.
    """
    key = name.lower()
    if key in _TRANSPORTS:
        raise ValueError(f"Transport '{name}' is already registered")
    _TRANSPORTS[key] = TransportEntry(factory=factory, options=frozenset(options))


def get_transport(name: str, **settings: Any) -> Transport:
    key = name.lower()
    entry = _TRANSPORTS.get(key)
    if entry is None:
        available = ", ".join(list_transports())
        raise ValueError(f"Unknown transport '{name}'. Available transports: {available}")
    accepted = {option: value for option, value in settings.items() if option in entry.options}
    return entry.factory(**accepted)


def list_transports() -> list[str]:
    return sorted(_TRANSPORTS)
