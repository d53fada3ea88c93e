from __future__ import annotations

import json
import os
from pathlib import Path

import pytest

from chatline import cli


def _fake_env(monkeypatch, deltas: list[str]) -> None:
    monkeypatch.setenv("CHATLINE_TRANSPORT", "fake")
    monkeypatch.setenv("CHATLINE_FAKE_DELTAS", json.dumps(deltas))
    monkeypatch.setenv("CHATLINE_API_TOKEN", "token")
    monkeypatch.delenv("CHATLINE_SYSTEM_PROMPT", raising=False)


def test_cli_run_streams_reply(monkeypatch, capsys, tmp_path: Path) -> None:
    _fake_env(monkeypatch, ["Hi", " there"])

    exit_code = cli.main(["run", "--data-root", str(tmp_path), "--text", "hello"])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert captured.out == "Hi there\n"
    payload = json.loads((tmp_path / "transcripts" / "default.json").read_text(encoding="utf-8"))
    assert [item["content"] for item in payload["messages"]] == ["hello", "Hi there"]


def test_cli_run_without_token_exits(monkeypatch, tmp_path: Path) -> None:
    _fake_env(monkeypatch, ["x"])
    monkeypatch.delenv("CHATLINE_API_TOKEN", raising=False)
    monkeypatch.delenv("GITHUB_TOKEN", raising=False)

    with pytest.raises(SystemExit, match="no API token configured"):
        cli.main(["run", "--data-root", str(tmp_path), "--text", "hello"])

    assert not (tmp_path / "transcripts" / "default.json").exists()


def test_cli_run_failure_returns_nonzero(monkeypatch, capsys, tmp_path: Path) -> None:
    monkeypatch.setenv("CHATLINE_API_TOKEN", "token")

    def fake_urlopen(request, timeout=0):
        raise OSError("network is unreachable")

    monkeypatch.setattr("chatline.backends.http.urllib.request.urlopen", fake_urlopen)

    exit_code = cli.main(
        ["run", "--data-root", str(tmp_path), "--transport", "http", "--text", "hello"]
    )

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "network is unreachable" in captured.out


def test_cli_history_and_clear(monkeypatch, capsys, tmp_path: Path) -> None:
    _fake_env(monkeypatch, ["reply"])
    cli.main(["run", "--data-root", str(tmp_path), "--session", "s1", "--text", "hello"])
    capsys.readouterr()

    cli.main(["history", "--data-root", str(tmp_path), "--session", "s1", "--json"])
    history = json.loads(capsys.readouterr().out)
    assert history["messages"] == [
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "reply"},
    ]

    cli.main(["clear", "--data-root", str(tmp_path), "--session", "s1"])
    assert "Cleared 2 messages" in capsys.readouterr().out

    cli.main(["history", "--data-root", str(tmp_path), "--session", "s1"])
    assert capsys.readouterr().out == ""


def test_cli_settings_saves_and_shows(monkeypatch, capsys, tmp_path: Path) -> None:
    monkeypatch.delenv("CHATLINE_SYSTEM_PROMPT", raising=False)
    monkeypatch.delenv("CHATLINE_MODEL", raising=False)

    cli.main(["settings", "--data-root", str(tmp_path), "--system-prompt", "Be terse.", "--model", "m1"])
    capsys.readouterr()
    cli.main(["settings", "--data-root", str(tmp_path)])

    shown = json.loads(capsys.readouterr().out)
    assert shown == {"system_prompt": "Be terse.", "model": "m1"}


def test_cli_repl_exit(monkeypatch, capsys, tmp_path: Path) -> None:
    _fake_env(monkeypatch, ["pong"])
    inputs = iter(["", "ping", "/clear", "/exit"])
    monkeypatch.setattr("builtins.input", lambda _prompt="": next(inputs))

    exit_code = cli.main(["repl", "--data-root", str(tmp_path)])

    captured = capsys.readouterr()
    assert exit_code == 0
    assert "pong\n" in captured.out
    assert "Conversation cleared." in captured.out


def test_cli_unknown_transport(monkeypatch, capsys) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["run", "--transport", "carrier-pigeon", "--text", "Hello"])
    captured = capsys.readouterr()
    assert excinfo.value.code == 2
    assert "invalid choice" in captured.err


def test_stream_printer_writes_increments(capsys) -> None:
    printer = cli.StreamPrinter()

    printer("Hi", False)
    printer("Hi there", False)
    printer("An error occurred: boom", True)

    assert capsys.readouterr().out == "Hi there\nAn error occurred: boom\n"


def test_cli_serve_runs_admin_app_factory(monkeypatch, tmp_path: Path) -> None:
    calls: list[tuple[tuple, dict]] = []
    monkeypatch.setenv("CHATLINE_DATA_ROOT", "unused")
    monkeypatch.setattr("uvicorn.run", lambda *args, **kwargs: calls.append((args, kwargs)))

    exit_code = cli.main(["serve", "--port", "9001", "--data-root", str(tmp_path)])

    assert exit_code == 0
    assert calls == [
        (
            ("chatline.admin.app:create_app",),
            {"host": "127.0.0.1", "port": 9001, "factory": True},
        )
    ]
    assert os.environ["CHATLINE_DATA_ROOT"] == str(tmp_path)
