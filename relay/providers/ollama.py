# relay/providers/ollama.py
# -*- coding: utf-8 -*-
"""

Matrix Ollama Relay - Ollama chat provider

"""

from __future__ import annotations

import logging
import random
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

import requests
from pydantic import BaseModel, ValidationError

from relay.core.config import DEFAULT_OLLAMA_URL, SEED_RANGE, LLMSettings
from relay.core.types import SamplingOptions, Turn

logger = logging.getLogger(__name__)


class InferenceError(Exception):
    """Raised when a single /api/chat call fails (transport, status or body)."""


# ---------------------------------------------------------------------------
# Wire models
# ---------------------------------------------------------------------------


class ReplyMessage(BaseModel):
    role: str
    content: str


class ChatReply(BaseModel):
    """
    Non-streaming /api/chat response. Extra keys (model, created_at,
    eval_count, ...) are ignored.
    """

    message: ReplyMessage
    done: bool = True


# ---------------------------------------------------------------------------
# Request assembly
# ---------------------------------------------------------------------------


def build_messages(history: Sequence[Turn], system_prompt: str) -> List[Dict[str, str]]:
    """
    Synthetic system turn first, then the stored history in order.

    The system turn only exists in the request; callers never store it.
    """
    messages: List[Dict[str, str]] = [{"role": "system", "content": system_prompt}]
    messages.extend(turn.as_message() for turn in history)
    return messages


def build_payload(
    model: str,
    messages: List[Dict[str, str]],
    options: Optional[SamplingOptions] = None,
) -> Dict[str, Any]:
    # stream=false so Ollama answers with a single JSON object.
    payload: Dict[str, Any] = {
        "model": model,
        "messages": messages,
        "stream": False,
    }
    ollama_options = options.to_ollama() if options else {}
    if ollama_options:
        payload["options"] = ollama_options
    return payload


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


class OllamaClient:
    """
    Blocking client for a local Ollama ``/api/chat`` endpoint.

    One `query()` is exactly one HTTP POST: no retry, no streaming. Any
    failure surfaces as InferenceError so the caller can degrade.
    """

    def __init__(
        self,
        model: str,
        url: str = DEFAULT_OLLAMA_URL,
        timeout_s: float = 120.0,
        seed_range: int = SEED_RANGE,
        http: Optional[requests.Session] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.model = model
        self.url = url
        self.timeout_s = timeout_s
        self.seed_range = seed_range
        self.http = http or requests.Session()
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, llm: LLMSettings) -> "OllamaClient":
        return cls(
            model=llm.model,
            url=llm.url,
            timeout_s=llm.timeout_s,
            seed_range=llm.seed_range,
        )

    def draw_seed(self) -> int:
        return self._rng.randrange(self.seed_range)

    def query(
        self,
        history: Sequence[Turn],
        system_prompt: str,
        options: Optional[SamplingOptions] = None,
    ) -> str:
        """
        Send the conversation to Ollama and return the assistant's content.

        Parameters
        ----------
        history:
            Stored user/assistant turns, oldest first.
        system_prompt:
            Injected as the first message of the request only.
        options:
            Sampling parameters. A fresh seed is drawn whenever
            ``options.seed`` is None.

        Raises
        ------
        InferenceError
            If the endpoint is unreachable or times out, answers with a
            non-200 status, or returns a body we cannot parse.
        """
        options = options or SamplingOptions()
        if options.seed is None:
            options = replace(options, seed=self.draw_seed())

        payload = build_payload(self.model, build_messages(history, system_prompt), options)
        logger.debug(
            "POST %s model=%s messages=%d options=%s",
            self.url,
            self.model,
            len(payload["messages"]),
            payload.get("options"),
        )

        try:
            resp = self.http.post(self.url, json=payload, timeout=self.timeout_s)
        except requests.RequestException as exc:
            raise InferenceError(f"Ollama HTTP error: {exc}") from exc

        if resp.status_code != 200:
            text_preview = resp.text[:200].replace("\n", " ")
            raise InferenceError(f"Ollama HTTP {resp.status_code}: {text_preview}")

        try:
            data = resp.json()
        except ValueError as exc:
            raise InferenceError("Ollama returned non-JSON response.") from exc

        try:
            reply = ChatReply.model_validate(data)
        except ValidationError as exc:
            raise InferenceError(f"Unexpected Ollama response shape: {exc}") from exc

        return reply.message.content

    def close(self) -> None:
        self.http.close()
