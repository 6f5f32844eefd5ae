# relay/utils/__init__.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - Utility toolbox
-------------------------------------
Shared helpers used across the relay:

- logging : root handler setup, noisy mautrix/HTTP loggers held back
- timers  : Stopwatch around each Ollama query

    from relay.utils import setup_logging, get_logger, Stopwatch
"""

from __future__ import annotations

from .logging import (  # noqa: F401
    setup_logging,
    get_logger,
)

from .timers import (  # noqa: F401
    Stopwatch,
)
