from typing import Any, Dict, List, Optional, Sequence

import pytest

from relay.core.commands import CommandRouter
from relay.core.types import SamplingOptions, Turn
from relay.providers.ollama import InferenceError
from relay.runtime_state import SessionStore

DEFAULT_PROMPT = "You are a helpful assistant."


class FakeOllama:
    """Stands in for OllamaClient: records every query and replays scripted replies."""

    def __init__(self, replies: Optional[List[Any]] = None) -> None:
        self.replies = list(replies or [])
        self.calls: List[Dict[str, Any]] = []

    def query(
        self,
        history: Sequence[Turn],
        system_prompt: str,
        options: Optional[SamplingOptions] = None,
    ) -> str:
        self.calls.append(
            {"history": list(history), "system_prompt": system_prompt, "options": options}
        )
        reply = self.replies.pop(0) if self.replies else "ok"
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeResponse:
    def __init__(self, status_code: int = 200, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("Expecting value: line 1 column 1 (char 0)")
        return self._payload


class FakeHTTP:
    """Minimal requests.Session replacement for OllamaClient."""

    def __init__(self, response: Any) -> None:
        self.response = response
        self.posts: List[Dict[str, Any]] = []
        self.closed = False

    def post(self, url: str, json: Dict[str, Any], timeout: float) -> FakeResponse:
        self.posts.append({"url": url, "json": json, "timeout": timeout})
        if isinstance(self.response, Exception):
            raise self.response
        return self.response

    def close(self) -> None:
        self.closed = True


def ollama_reply(content: str) -> Dict[str, Any]:
    return {
        "model": "llama3.2:latest",
        "created_at": "2024-09-01T12:00:00Z",
        "message": {"role": "assistant", "content": content},
        "done": True,
    }


@pytest.fixture
def store() -> SessionStore:
    return SessionStore(default_prompt=DEFAULT_PROMPT)


@pytest.fixture
def llm() -> FakeOllama:
    return FakeOllama()


@pytest.fixture
def router(store: SessionStore, llm: FakeOllama) -> CommandRouter:
    return CommandRouter(store=store, client=llm)


@pytest.fixture
def failing_llm() -> FakeOllama:
    return FakeOllama(replies=[InferenceError("connection refused")])
