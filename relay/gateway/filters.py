# relay/gateway/filters.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - inbound event filter
------------------------------------------
Only one kind of event may reach the command router: a non-empty text
message, sent by the configured allowed user, in a room with exactly two
joined members (the user and the bot).

Each check raises a subclass of EventRejected. The gateway logs the
rejection and drops the event without answering.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

DIRECT_ROOM_SIZE = 2


class EventRejected(Exception):
    """Base class for inbound events that are dropped silently."""


class AuthorizationMismatch(EventRejected):
    """Sender is not the allowed user, or the room is not a direct chat."""


class EmptyBody(EventRejected):
    """Message carries no text."""


class InboundEvent(BaseModel):
    """What the gateway hands over once a Matrix message passed the filter."""

    sender: str
    room_id: str
    participant_count: int = Field(..., ge=0)
    body: str


def check_sender(sender: str, allowed_user_id: str) -> None:
    if sender != allowed_user_id:
        raise AuthorizationMismatch(f"sender {sender} is not the allowed user")


def check_body(body: str) -> None:
    if not body:
        raise EmptyBody("empty message body")


def check_direct(participant_count: int) -> None:
    if participant_count != DIRECT_ROOM_SIZE:
        raise AuthorizationMismatch(
            f"room has {participant_count} members, expected {DIRECT_ROOM_SIZE}"
        )


def check_event(event: InboundEvent, allowed_user_id: str) -> InboundEvent:
    """Run every check in order (sender, body, room size) and return the event."""
    check_sender(event.sender, allowed_user_id)
    check_body(event.body)
    check_direct(event.participant_count)
    return event
