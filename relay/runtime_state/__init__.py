"""
Runtime state package for the Matrix Ollama relay.

This package tracks per-user conversation state so the bot can hold
multi-turn conversations without mixing users.

Typical usage (e.g. in core/commands.py):

    from relay.runtime_state import SessionStore

    store = SessionStore(default_prompt=settings.llm.default_prompt)

    with store.locked(user_id) as session:
        session.add_turn("user", body)
        ...
"""

from .sessions import (
    ConversationSession,
    SessionStore,
)

__all__ = [
    "ConversationSession",
    "SessionStore",
]
