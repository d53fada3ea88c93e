from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import TextIO

from chatline.backends import list_transports
from chatline.config import ChatConfig, ChatSettings, load_config, load_settings, save_settings
from chatline.core.errors import ConfigurationError
from chatline.core.types import SessionState
from chatline.runtime import controller
from chatline.runtime.session import ConversationSession


class StreamPrinter:
    """Render sink that writes only the newly arrived part of the reply."""

    def __init__(self, out: TextIO | None = None) -> None:
        self.out = out or sys.stdout
        self._shown = ""

    def __call__(self, text: str, final: bool) -> None:
        if text.startswith(self._shown):
            self.out.write(text[len(self._shown) :])
        else:
            self.out.write(("\n" if self._shown else "") + text)
        self._shown = "" if final else text
        if final:
            self.out.write("\n")
        self.out.flush()


def _resolve_config(args: argparse.Namespace) -> ChatConfig:
    data_root = Path(args.data_root) if getattr(args, "data_root", None) else None
    config = load_config(data_root)
    if getattr(args, "model", None):
        config = replace(config, model=args.model)
    if getattr(args, "base_url", None):
        config = replace(config, base_url=args.base_url)
    if getattr(args, "transport", None):
        config = replace(config, transport=args.transport)
    return config


def _build_session(args: argparse.Namespace) -> ConversationSession:
    config = _resolve_config(args)
    return controller.build_session(config, session_id=args.session)


def _send(session: ConversationSession, text: str) -> int:
    try:
        session.start(text, StreamPrinter())
    except ConfigurationError as exc:
        raise SystemExit(f"chatline: {exc} (set CHATLINE_API_TOKEN)") from exc
    return 0 if session.last_outcome is SessionState.SETTLED else 1


def _run_command(args: argparse.Namespace) -> int:
    session = _build_session(args)
    return _send(session, args.text)


def _repl_command(args: argparse.Namespace) -> int:
    session = _build_session(args)
    while True:
        try:
            line = input("> ")
        except EOFError:
            break
        command = line.strip()
        if command == "/exit":
            break
        if command == "/clear":
            session.clear()
            print("Conversation cleared.")
            continue
        if not command:
            continue
        try:
            _send(session, line)
        except KeyboardInterrupt:
            print("\n[interrupted]")
    return 0


def _history_command(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    store = controller.open_store(config, args.session)
    if args.json:
        print(json.dumps(store.snapshot().to_payload(), indent=2, ensure_ascii=False))
        return 0
    for index, message in enumerate(store.messages()):
        print(f"[{index}] {message.role}:\n{message.content}\n")
    return 0


def _clear_command(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    store = controller.open_store(config, args.session)
    count = len(store)
    store.clear()
    print(f"Cleared {count} messages from session '{args.session}'.")
    return 0


def _settings_command(args: argparse.Namespace) -> int:
    config = _resolve_config(args)
    current = load_settings(config.data_root)
    if args.system_prompt is None and args.settings_model is None:
        print(
            json.dumps(
                {"system_prompt": config.system_prompt, "model": config.model},
                indent=2,
                ensure_ascii=False,
            )
        )
        return 0
    updated = ChatSettings(
        system_prompt=args.system_prompt if args.system_prompt is not None else current.system_prompt,
        model=args.settings_model or current.model,
    )
    path = save_settings(config.data_root, updated)
    print(f"Settings saved: {path}")
    return 0


def _serve_command(args: argparse.Namespace) -> int:
    try:
        import uvicorn
    except ImportError as exc:
        raise SystemExit("uvicorn is required to run the admin service") from exc
    if args.data_root:
        os.environ["CHATLINE_DATA_ROOT"] = args.data_root
    uvicorn.run("chatline.admin.app:create_app", host=args.host, port=args.port, factory=True)
    return 0


def _add_common(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--session", default=controller.DEFAULT_SESSION)
    parser.add_argument("--data-root")


def _add_connection(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--transport", choices=list_transports())
    parser.add_argument("--model")
    parser.add_argument("--base-url")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="chatline")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Send one message and stream the reply")
    _add_common(run_parser)
    _add_connection(run_parser)
    run_parser.add_argument("--text", required=True)
    run_parser.set_defaults(func=_run_command)

    repl_parser = subparsers.add_parser("repl", help="Chat interactively")
    _add_common(repl_parser)
    _add_connection(repl_parser)
    repl_parser.set_defaults(func=_repl_command)

    history_parser = subparsers.add_parser("history", help="Print the stored transcript")
    _add_common(history_parser)
    history_parser.add_argument("--json", action="store_true")
    history_parser.set_defaults(func=_history_command)

    clear_parser = subparsers.add_parser("clear", help="Erase the stored transcript")
    _add_common(clear_parser)
    clear_parser.set_defaults(func=_clear_command)

    settings_parser = subparsers.add_parser("settings", help="Show or save system prompt and model")
    settings_parser.add_argument("--data-root")
    settings_parser.add_argument("--system-prompt")
    settings_parser.add_argument("--model", dest="settings_model")
    settings_parser.set_defaults(func=_settings_command)

    serve_parser = subparsers.add_parser("serve", help="Run the admin HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8765)
    serve_parser.add_argument("--data-root")
    serve_parser.set_defaults(func=_serve_command)

    return parser


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(level=os.getenv("CHATLINE_LOG_LEVEL", "WARNING").upper())
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
