# relay/utils/timers.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - Ollama round-trip timing
"""

from __future__ import annotations

import logging
import time


class Stopwatch:
    """
    Logs "<label> took N.NNN s" when the block exits, raised or not.

    CommandRouter wraps every Ollama query in one; `elapsed` stays
    readable afterwards.
    """

    def __init__(self, label: str, logger: logging.Logger, level: int = logging.INFO) -> None:
        self.label = label
        self.logger = logger
        self.level = level
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Stopwatch":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.elapsed = time.perf_counter() - self._start
        self.logger.log(self.level, "%s took %.3f s", self.label, self.elapsed)
