# relay/runtime_state/sessions.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - Runtime Session State
-------------------------------------------

In-memory conversation state, one session per Matrix user.

Purpose
~~~~~~~
- Track per-user conversation history and system prompt so several users
  never share context.
- Serialize every exchange of the same user: a user turn and the assistant
  turn answering it are always adjacent in history.

Design notes
~~~~~~~~~~~~
- Sessions live for the lifetime of the process. Nothing is written to disk
  and nothing is evicted.
- One store-wide lock guards the identity -> session map.
- Each identity additionally owns an exchange lock. `SessionStore.locked()`
  holds it for the whole read -> query -> append sequence, so exchanges of
  one user are totally ordered while different users run in parallel.
- The raw map is never handed out.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from pydantic import BaseModel, Field

from relay.core.types import Role, Turn
from relay.utils import get_logger

logger = get_logger("relay.runtime_state")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Pydantic models
# ---------------------------------------------------------------------------


class ConversationSession(BaseModel):
    """
    Per-identity state.

    Attributes
    ----------
    identity:
        Matrix user ID owning this session.
    system_prompt:
        Standing instruction sent ahead of the history on every request.
        Never stored as a turn.
    history:
        Chronological user/assistant turns.
    created_at / last_seen:
        Bookkeeping for logs and the status API.
    """

    identity: str
    system_prompt: str
    history: List[Turn] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=_utcnow)
    last_seen: datetime = Field(default_factory=_utcnow)

    def add_turn(self, role: Role, content: str, max_turns: int = 0) -> Turn:
        """
        Append a turn; with max_turns > 0 drop the oldest beyond that.

        Trimming never leaves an assistant turn at the head of the history,
        so an odd cap keeps one turn fewer rather than an orphaned answer.
        """
        turn = Turn(role=role, content=content)
        self.history.append(turn)
        if max_turns > 0 and len(self.history) > max_turns:
            kept = self.history[-max_turns:]
            while kept and kept[0].role == "assistant":
                kept.pop(0)
            self.history = kept
        return turn

    def clear_history(self) -> None:
        self.history = []


# ---------------------------------------------------------------------------
# Session store implementation
# ---------------------------------------------------------------------------


class SessionStore:
    """
    Process-wide identity -> ConversationSession map.

    Parameters
    ----------
    default_prompt:
        System prompt given to every newly created session.
    max_history_turns:
        0 keeps every turn. A positive value is applied by callers through
        `ConversationSession.add_turn(max_turns=...)`.
    """

    def __init__(self, default_prompt: str, max_history_turns: int = 0) -> None:
        self.default_prompt = default_prompt
        self.max_history_turns = max_history_turns

        self._lock = threading.Lock()
        self._sessions: Dict[str, ConversationSession] = {}
        self._exchange_locks: Dict[str, threading.Lock] = {}

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_or_create(self, identity: str) -> ConversationSession:
        """
        Return the session for `identity`, creating it on first contact.

        Creation happens under the store lock, so concurrent first messages
        from the same user still produce exactly one session.
        """
        with self._lock:
            session = self._sessions.get(identity)
            if session is None:
                logger.info("[SessionStore] Creating new session for %s", identity)
                session = ConversationSession(
                    identity=identity,
                    system_prompt=self.default_prompt,
                )
                self._sessions[identity] = session
                self._exchange_locks[identity] = threading.Lock()
            return session

    def get(self, identity: str) -> Optional[ConversationSession]:
        """Return the session for `identity`, or None if that user never wrote."""
        with self._lock:
            return self._sessions.get(identity)

    @contextmanager
    def locked(self, identity: str) -> Iterator[ConversationSession]:
        """
        Hold `identity`'s exchange lock and yield its session.

        Every read-modify-write of a session (commands and chat exchanges
        alike) must run inside this block.
        """
        session = self.get_or_create(identity)
        with self._lock:
            exchange_lock = self._exchange_locks[identity]

        with exchange_lock:
            session.last_seen = _utcnow()
            yield session

    def identities(self) -> List[str]:
        with self._lock:
            return list(self._sessions)

    def snapshot(self) -> Dict[str, Any]:
        """
        Plain-dict view of the store for the status API.

        Reports per-session bookkeeping only: message contents and system
        prompts are never included.
        """
        with self._lock:
            sessions = list(self._sessions.values())
        return {
            "sessions": [
                {
                    "identity": s.identity,
                    "created_at": s.created_at.isoformat(),
                    "last_seen": s.last_seen.isoformat(),
                    "turns": len(s.history),
                }
                for s in sessions
            ]
        }

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def __contains__(self, identity: object) -> bool:
        with self._lock:
            return identity in self._sessions
