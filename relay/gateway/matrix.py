# relay/gateway/matrix.py
# -*- coding: utf-8 -*-
"""
Matrix Ollama Relay - Matrix gateway
------------------------------------
Thin mautrix-python adapter between a Matrix homeserver and the command
router.

Flow for each m.room.message:
    own / non-text message          -> ignored
    sender != allowed user          -> dropped (logged)
    empty body                      -> dropped (logged)
    room with != 2 joined members   -> dropped (logged)
    otherwise                       -> CommandRouter.handle() in a worker
                                       thread, reply sent as plain text

Invites from the allowed user are accepted automatically so the user can
open a direct chat with the bot. Encryption is not set up: the bot only
works in unencrypted rooms.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from mautrix.client import Client, InternalEventType
from mautrix.client.dispatcher import MembershipEventDispatcher
from mautrix.client.state_store.memory import MemoryStateStore
from mautrix.errors import MatrixError
from mautrix.types import EventType, MessageType, RoomID

from relay.core.commands import CommandRouter
from relay.core.config import Settings
from relay.gateway.filters import (
    EventRejected,
    InboundEvent,
    check_body,
    check_event,
    check_sender,
)

logger = logging.getLogger(__name__)


class MatrixGateway:
    """
    Runs the Matrix sync loop and routes direct messages to the router.

    After construction call ``await login()`` then ``await run()``; the
    latter blocks until ``stop()``.
    """

    def __init__(
        self,
        client: Client,
        router: CommandRouter,
        allowed_user_id: str,
        username: str = "",
        password: str = "",
        device_name: str = "matrix-ollama-relay",
    ) -> None:
        self.client = client
        self.router = router
        self.allowed_user_id = allowed_user_id
        self._username = username
        self._password = password
        self._device_name = device_name

    @classmethod
    def from_settings(cls, settings: Settings, router: CommandRouter) -> "MatrixGateway":
        client = Client(base_url=settings.bot.homeserver, state_store=MemoryStateStore())
        return cls(
            client=client,
            router=router,
            allowed_user_id=settings.bot.allowed_user_id,
            username=settings.bot.username,
            password=settings.bot.password,
            device_name=settings.bot.device_name,
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def login(self) -> None:
        """Password login; stores the access token on the client."""
        resp = await self.client.login(
            identifier=self._username,
            password=self._password,
            device_name=self._device_name,
        )
        logger.info("Logged in as %s (device_id=%s)", resp.user_id, resp.device_id)

    def register_handlers(self) -> None:
        # Turns m.room.member events into InternalEventType.INVITE etc.
        self.client.add_dispatcher(MembershipEventDispatcher)
        self.client.add_event_handler(EventType.ROOM_MESSAGE, self.on_message)
        self.client.add_event_handler(InternalEventType.INVITE, self.on_invite)

    async def run(self) -> None:
        """Log in, register handlers and sync until stopped."""
        await self.login()
        self.register_handlers()

        # Old messages from before startup must not be answered.
        self.client.ignore_initial_sync = True
        logger.info("Matrix sync starting; answering %s only.", self.allowed_user_id)
        await self.client.start(filter_data=None)

    def stop(self) -> None:
        self.client.stop()

    async def close(self) -> None:
        self.stop()
        await self.client.api.session.close()

    # ------------------------------------------------------------------
    # Event handlers
    # ------------------------------------------------------------------

    async def on_message(self, evt) -> None:
        """Handle m.room.message events."""
        if evt.sender == self.client.mxid:
            return
        if getattr(evt.content, "msgtype", None) != MessageType.TEXT:
            return

        sender = str(evt.sender)
        room_id = str(evt.room_id)
        body = evt.content.body or ""
        logger.info("Received message event from %s in room %s", sender, room_id)

        event = await self._accept(sender, room_id, body)
        if event is None:
            return

        reply = await asyncio.to_thread(self.router.handle, event.sender, event.body)
        await self.send_text(event.room_id, reply)

    async def _accept(self, sender: str, room_id: str, body: str) -> Optional[InboundEvent]:
        try:
            # Cheap checks first: no members request for strangers.
            check_sender(sender, self.allowed_user_id)
            check_body(body)
            members = await self.client.get_joined_members(RoomID(room_id))
            return check_event(
                InboundEvent(
                    sender=sender,
                    room_id=room_id,
                    participant_count=len(members),
                    body=body,
                ),
                self.allowed_user_id,
            )
        except EventRejected as exc:
            logger.info("Ignoring message from %s in %s: %s", sender, room_id, exc)
        except MatrixError as exc:
            logger.error("Failed to get members of %s: %s", room_id, exc)
        return None

    async def on_invite(self, evt) -> None:
        """Auto-join rooms when invited by the allowed user."""
        sender = str(evt.sender)
        room_id = str(evt.room_id)

        if sender != self.allowed_user_id:
            logger.warning("Rejecting invite from non-allowed user %s to %s", sender, room_id)
            return

        try:
            await self.client.join_room_by_id(RoomID(room_id))
            logger.info("Joined room %s after invite", room_id)
        except MatrixError as exc:
            logger.error("Failed to join room %s: %s", room_id, exc)

    # ------------------------------------------------------------------
    # Outbound
    # ------------------------------------------------------------------

    async def send_text(self, room_id: str, text: str) -> None:
        """Send a plain-text reply to a room; failures are logged."""
        try:
            await self.client.send_text(RoomID(room_id), text)
        except MatrixError as exc:
            logger.error("Failed to send message to %s: %s", room_id, exc)
