# relay/utils/logging.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - logging setup
-----------------------------------
One root handler for the relay process. `--debug` (or `debug = true` in the
config file) switches it to DEBUG. mautrix sync chatter and HTTP client
access logs are held at RELAY_NOISY_LOG_LEVEL (WARNING by default).
"""

from __future__ import annotations

import logging
import os

NOISY_LOGGERS = ("mautrix", "aiohttp.access", "urllib3", "uvicorn.access")


def setup_logging(*, debug: bool = False) -> None:
    """
    Configure root logging for the relay or the console chat tool.

    Calling it again only adjusts the level of the existing handlers.
    """
    base_level = logging.DEBUG if debug else logging.INFO

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(base_level)
        for h in root.handlers:
            h.setLevel(base_level)
        return

    logging.basicConfig(
        level=base_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    noisy_level = os.getenv("RELAY_NOISY_LOG_LEVEL", "WARNING")
    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(noisy_level)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
