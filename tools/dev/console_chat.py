#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - Dev console chat
--------------------------------------
Interactive console for talking to the relay core without Matrix.

- Simple REPL: you type, the local Ollama model answers.
- Lines go through the same CommandRouter the bot uses, so /clear,
  /setprompt, /viewprompt, /viewconversation and /help all work.
- Uses the normal settings (config.toml / .env / RELAY_* environment);
  only the [llm] part matters here.

Run from the project root:

    python tools/dev/console_chat.py --identity @me:example.org
"""

from __future__ import annotations

import argparse
import sys

from relay.core.config import Settings, get_settings
from relay.main import build_components
from relay.utils import setup_logging

DEFAULT_IDENTITY = "@console:localhost"


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Matrix Ollama Relay - dev console chat",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a TOML config file (default: ./config.toml).",
    )
    parser.add_argument(
        "--identity",
        type=str,
        default=DEFAULT_IDENTITY,
        help=f"User identity the session is stored under (default: {DEFAULT_IDENTITY}).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging.",
    )
    return parser.parse_args()


def main() -> int:
    args = parse_args()
    settings = Settings.load(args.config) if args.config else get_settings()
    setup_logging(debug=args.debug)

    _, client, router = build_components(settings)

    print(f"Talking to {settings.llm.model} at {settings.llm.url}")
    print("Type /help for commands, Ctrl-D or 'exit' to quit.\n")

    try:
        while True:
            try:
                line = input("you> ")
            except EOFError:
                print()
                break

            if line.strip() in ("exit", "quit"):
                break
            if not line:
                continue

            print(f"bot> {router.handle(args.identity, line)}\n")
    except KeyboardInterrupt:
        print()
    finally:
        client.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
