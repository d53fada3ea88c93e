from __future__ import annotations

import json

import pytest

from chatline.backends import FakeTransport, HttpTransport, get_transport, list_transports
from chatline.backends.registry import register_transport
from chatline.prompts import default_system_prompt, load_prompt


def test_builtin_transports_registered() -> None:
    assert list_transports() == ["fake", "http"]
    transport = get_transport("HTTP", base_url="http://example.com", timeout_s=3.0)
    assert isinstance(transport, HttpTransport)
    assert transport.url == "http://example.com/chat/completions"


def test_settings_a_transport_does_not_take_are_not_passed() -> None:
    transport = get_transport("fake", base_url="http://example.com", timeout_s=3.0)

    assert isinstance(transport, FakeTransport)


def test_registered_options_limit_settings(monkeypatch) -> None:
    received: list[dict[str, object]] = []
    monkeypatch.setattr("chatline.backends.registry._TRANSPORTS", {})

    def factory(**settings):
        received.append(settings)
        return FakeTransport()

    register_transport("Pipe", factory, options=("timeout_s",))
    get_transport("pipe", base_url="http://example.com", timeout_s=2.0)

    assert received == [{"timeout_s": 2.0}]


def test_unknown_transport_lists_available() -> None:
    with pytest.raises(ValueError, match="Available transports: fake, http"):
        get_transport("smoke-signal")


def test_duplicate_registration_rejected() -> None:
    with pytest.raises(ValueError, match="already registered"):
        register_transport("fake", FakeTransport)


def test_fake_transport_reads_env_deltas(monkeypatch) -> None:
    monkeypatch.setenv("CHATLINE_FAKE_DELTAS", json.dumps(["a", "b"]))

    transport = get_transport("fake")
    chunks = list(transport.send({"messages": []}, "token"))

    assert chunks[-1] == b"data: [DONE]\n"
    assert b'"content": "a"' in chunks[0]


def test_fake_transport_rejects_bad_env(monkeypatch) -> None:
    monkeypatch.setenv("CHATLINE_FAKE_DELTAS", json.dumps({"a": 1}))

    with pytest.raises(ValueError, match="JSON list of strings"):
        get_transport("fake")


def test_default_system_prompt_is_packaged() -> None:
    prompt = default_system_prompt()

    assert prompt
    assert prompt == load_prompt("system/default.txt")
    assert "code" in prompt
