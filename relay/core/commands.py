# relay/core/commands.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - Command router
------------------------------------
Decides what to do with one inbound message body:

    "/clear"             -> wipe the conversation history
    "/setprompt <text>"  -> replace the system prompt (empty allowed)
    "/viewprompt"        -> show the current system prompt
    "/viewconversation"  -> dump the history as "[role] content" lines
    "/help"              -> list the commands
    anything else        -> chat turn sent to Ollama

Rules are checked top to bottom and the first match wins. Matching is
case-sensitive on literal prefixes, so "/clearfoo" still clears. With
strict matching enabled a command must be followed by whitespace or the
end of the body.

Everything for one message runs while holding that user's session lock,
including the Ollama call.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from relay.core.types import SamplingOptions, Turn
from relay.providers.ollama import InferenceError, OllamaClient
from relay.runtime_state import ConversationSession, SessionStore
from relay.utils import Stopwatch

logger = logging.getLogger(__name__)

# -------------------------------------------------------------------------
# Fixed replies
# -------------------------------------------------------------------------

CLEARED_REPLY = "Conversation cleared."
PROMPT_SET_REPLY = "System prompt set."
FAILURE_REPLY = "Sorry, something went wrong."
CONVERSATION_HEADER = "Conversation:"

HELP_TEXT = (
    "Commands:\n"
    "/clear - Clear the conversation history\n"
    "/setprompt <prompt> - Set a new system prompt\n"
    "/viewprompt - View the current system prompt\n"
    "/viewconversation - View the conversation history\n"
    "/help - Display this help message"
)

CHAT = "chat"

Predicate = Callable[[str], bool]
Handler = Callable[[ConversationSession, str], str]


@dataclass(frozen=True)
class CommandRule:
    name: str
    predicate: Predicate
    handler: Handler


def prefix_matcher(prefix: str, strict: bool = False) -> Predicate:
    """Build the predicate for one command prefix."""

    def literal(body: str) -> bool:
        return body.startswith(prefix)

    def whole_token(body: str) -> bool:
        if not body.startswith(prefix):
            return False
        rest = body[len(prefix):]
        return not rest or rest[0].isspace()

    return whole_token if strict else literal


def format_conversation(history: Sequence[Turn]) -> str:
    """Header line, then one "[role] content" line per stored turn."""
    lines = [CONVERSATION_HEADER]
    lines.extend(f"[{turn.role}] {turn.content}" for turn in history)
    return "\n".join(lines)


class CommandRouter:
    """
    Ordered (predicate, handler) dispatch over a user's session.

    Parameters
    ----------
    store:
        Session store owning per-user state and locks.
    client:
        Anything with OllamaClient's `query(history, system_prompt, options)`.
    sampling:
        Sampling defaults sent with each chat turn (seed left to the client).
    strict_commands:
        Require whole-token command matches instead of literal prefixes.
    """

    def __init__(
        self,
        store: SessionStore,
        client: OllamaClient,
        sampling: Optional[SamplingOptions] = None,
        strict_commands: bool = False,
    ) -> None:
        self.store = store
        self.client = client
        self.sampling = sampling or SamplingOptions()
        self.strict_commands = strict_commands

        self.rules: List[CommandRule] = [
            self._rule("clear", "/clear", self._clear),
            self._rule("setprompt", "/setprompt", self._set_prompt),
            self._rule("viewprompt", "/viewprompt", self._view_prompt),
            self._rule("viewconversation", "/viewconversation", self._view_conversation),
            self._rule("help", "/help", self._help),
        ]

    def _rule(self, name: str, prefix: str, handler: Handler) -> CommandRule:
        return CommandRule(name, prefix_matcher(prefix, self.strict_commands), handler)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def match(self, body: str) -> Optional[CommandRule]:
        for rule in self.rules:
            if rule.predicate(body):
                return rule
        return None

    def classify(self, body: str) -> str:
        """Command name for `body`, or "chat" when no rule matches."""
        rule = self.match(body)
        return rule.name if rule else CHAT

    def handle(self, identity: str, body: str) -> str:
        """
        Process one message from `identity` and return the reply text.

        Never raises for inference problems: a failed chat turn answers
        with FAILURE_REPLY and keeps the unanswered user turn.
        """
        rule = self.match(body)
        with self.store.locked(identity) as session:
            if rule is not None:
                logger.info("Command /%s from %s", rule.name, identity)
                return rule.handler(session, body)
            return self._chat(session, body)

    # ------------------------------------------------------------------
    # Handlers
    # ------------------------------------------------------------------

    def _clear(self, session: ConversationSession, body: str) -> str:
        session.clear_history()
        return CLEARED_REPLY

    def _set_prompt(self, session: ConversationSession, body: str) -> str:
        session.system_prompt = body[len("/setprompt"):].strip()
        logger.debug("System prompt for %s is now %r", session.identity, session.system_prompt)
        return PROMPT_SET_REPLY

    def _view_prompt(self, session: ConversationSession, body: str) -> str:
        return session.system_prompt

    def _view_conversation(self, session: ConversationSession, body: str) -> str:
        return format_conversation(session.history)

    def _help(self, session: ConversationSession, body: str) -> str:
        return HELP_TEXT

    def _chat(self, session: ConversationSession, body: str) -> str:
        max_turns = self.store.max_history_turns
        session.add_turn("user", body, max_turns)
        logger.debug("Chat turn from %s: %r", session.identity, body)

        try:
            with Stopwatch(f"Ollama query for {session.identity}", logger):
                reply = self.client.query(
                    list(session.history),
                    session.system_prompt,
                    self.sampling,
                )
        except InferenceError as exc:
            logger.error("Ollama query failed for %s: %s", session.identity, exc)
            return FAILURE_REPLY

        session.add_turn("assistant", reply, max_turns)
        return reply
