# relay/main.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - process entrypoint
----------------------------------------
This file wires everything together:

- Loads settings (config.toml / .env / RELAY_* environment).
- Sets up central logging.
- Builds the session store, the Ollama client and the command router.
- Runs the Matrix gateway and, when enabled, the local status API
  (uvicorn) in the same event loop.

Typical run command:

    matrix-ollama-relay --config config.toml

or, during development:

    python -m relay.main --debug
"""

from __future__ import annotations

import argparse
import asyncio
from typing import List, Optional, Sequence, Tuple

import uvicorn

from relay.core.commands import CommandRouter
from relay.core.config import Settings, get_settings
from relay.core.types import SamplingOptions
from relay.gateway.matrix import MatrixGateway
from relay.providers.ollama import OllamaClient
from relay.routers.status import create_status_app
from relay.runtime_state import SessionStore
from relay.utils import get_logger, setup_logging

logger = get_logger(__name__)


def build_components(settings: Settings) -> Tuple[SessionStore, OllamaClient, CommandRouter]:
    """Session store, Ollama client and router configured from `settings`."""
    store = SessionStore(
        default_prompt=settings.llm.default_prompt,
        max_history_turns=settings.max_history_turns,
    )
    client = OllamaClient.from_settings(settings.llm)
    router = CommandRouter(
        store=store,
        client=client,
        sampling=SamplingOptions.from_settings(settings.llm),
        strict_commands=settings.strict_commands,
    )
    return store, client, router


async def serve(settings: Settings) -> None:
    """Run the relay until the sync loop ends or the process is interrupted."""
    store, client, router = build_components(settings)
    gateway = MatrixGateway.from_settings(settings, router)

    tasks = [gateway.run()]
    if settings.status_api_enabled:
        server = uvicorn.Server(
            uvicorn.Config(
                create_status_app(store, settings),
                host=settings.status_api_host,
                port=settings.status_api_port,
                log_level="info",
            )
        )
        tasks.append(server.serve())
        logger.info(
            "Status API on http://%s:%d",
            settings.status_api_host,
            settings.status_api_port,
        )

    try:
        await asyncio.gather(*tasks)
    finally:
        await gateway.close()
        client.close()


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Relay Matrix direct messages to a local Ollama model.",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to a TOML config file (default: ./config.toml).",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Verbose logging (also logs message bodies).",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = Settings.load(args.config) if args.config else get_settings()

    setup_logging(debug=args.debug or settings.debug)

    missing = settings.missing_bot_fields()
    if missing:
        logger.error("Missing [bot] configuration: %s", ", ".join(missing))
        return 2

    logger.info(
        "Matrix Ollama relay starting (homeserver=%s, model=%s, allowed_user=%s)",
        settings.bot.homeserver,
        settings.llm.model,
        settings.bot.allowed_user_id,
    )

    try:
        asyncio.run(serve(settings))
    except KeyboardInterrupt:
        logger.info("Interrupted, shutting down.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
