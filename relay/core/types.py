# relay/core/types.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - Shared type helpers
-----------------------------------------
Small value types shared by the session store, the command router and
the Ollama client:

- Role            : "system" | "user" | "assistant"
- Turn            : one immutable message of a conversation
- SamplingOptions : Ollama sampling parameters for one request
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict

if TYPE_CHECKING:
    from relay.core.config import LLMSettings

Role = Literal["system", "user", "assistant"]


class Turn(BaseModel):
    """One message in a conversation, tagged with its speaker role."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str

    def as_message(self) -> Dict[str, str]:
        """Ollama / OpenAI style {"role", "content"} dict."""
        return {"role": self.role, "content": self.content}


@dataclass(frozen=True)
class SamplingOptions:
    """
    Sampling parameters for a single /api/chat call.

    Attributes
    ----------
    temperature, top_k, top_p:
        Passed through to Ollama's ``options`` object when not None.
    seed:
        Explicit seed. Leave as None to have the client draw a fresh one
        for every request.
    """

    temperature: Optional[float] = None
    top_k: Optional[int] = None
    top_p: Optional[float] = None
    seed: Optional[int] = None

    @classmethod
    def from_settings(cls, llm: "LLMSettings") -> "SamplingOptions":
        return cls(temperature=llm.temperature, top_k=llm.top_k, top_p=llm.top_p)

    def to_ollama(self) -> Dict[str, Any]:
        """Only the fields that are set, keyed the way Ollama expects."""
        return {key: value for key, value in asdict(self).items() if value is not None}
