from __future__ import annotations

import argparse
import sys
from typing import Any, TextIO

from app.config import CONFIG_PATH_ENV, DEFAULT_CONFIG_PATH, load_config, resolve_config_path
from app.logging_setup import configure_logging
from clinic.phone import format_phone_number
from clinic.repository_factory import create_clinic_repository
from clinic.seed import load_seed_file, seed_repository
from conversation.dispatcher import create_dispatcher
from whatsapp.send_client import ConsoleSender

QUIT_COMMANDS = {"/quit", "/exit"}
APP_FACTORY = "app.whatsapp_webhook:create_app_from_env"
CONFIG_HELP = f"Path to config.yaml or config.json (default: ${CONFIG_PATH_ENV} or {DEFAULT_CONFIG_PATH})"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Clinic reservation WhatsApp bot")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the WhatsApp webhook server",
        description=(
            "Run the WhatsApp webhook server. Under an external server use "
            f"`uvicorn --factory {APP_FACTORY}` with ${CONFIG_PATH_ENV} set."
        ),
    )
    serve_parser.add_argument("--config", default=None, help=CONFIG_HELP)
    serve_parser.add_argument("--host", default="0.0.0.0")
    serve_parser.add_argument("--port", type=int, default=8000)

    chat_parser = subparsers.add_parser("chat", help="Talk to the bot from the terminal")
    chat_parser.add_argument("--config", default=None, help=CONFIG_HELP)
    chat_parser.add_argument("--phone", default="6281200000000", help="Sender phone number to simulate")
    chat_parser.add_argument("--data", default=None, help="Seed YAML loaded before the session when the gateway has no doctors yet")

    seed_parser = subparsers.add_parser("seed", help="Load departments and doctors from YAML")
    seed_parser.add_argument("--config", default=None, help=CONFIG_HELP)
    seed_parser.add_argument("--data", required=True, help="Seed YAML with departments/doctors lists")

    return parser


def cmd_serve(args: argparse.Namespace, config: dict[str, Any]) -> int:
    import uvicorn

    from app.whatsapp_webhook import create_app

    uvicorn.run(create_app(config), host=args.host, port=int(args.port))
    return 0


def cmd_chat(
    args: argparse.Namespace,
    config: dict[str, Any],
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
) -> int:
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    repository = create_clinic_repository(config)
    if args.data:
        if repository.list_doctors():
            print("seed-skipped: gateway already has doctors", file=stdout)
        else:
            seed_repository(repository, load_seed_file(args.data))

    phone = format_phone_number(args.phone)
    dispatcher = create_dispatcher(config, repository, ConsoleSender(stream=stdout))
    print(f"chat-session phone={phone} (ketik /quit untuk keluar)", file=stdout)
    for line in stdin:
        text = line.strip()
        if text.lower() in QUIT_COMMANDS:
            break
        if not text:
            continue
        dispatcher.on_message(phone, text)
    return 0


def cmd_seed(args: argparse.Namespace, config: dict[str, Any]) -> int:
    repository = create_clinic_repository(config)
    counts = seed_repository(repository, load_seed_file(args.data))
    print(f"seeded: departments={counts['departments']} doctors={counts['doctors']}")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    config = load_config(resolve_config_path(args.config))
    configure_logging(config)

    if args.command == "serve":
        return cmd_serve(args, config)
    if args.command == "chat":
        return cmd_chat(args, config)
    if args.command == "seed":
        return cmd_seed(args, config)

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
