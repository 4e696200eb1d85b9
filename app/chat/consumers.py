"""
WebSocket consumers for the chat application.

Consumers:
    ChatConsumer: Delivers real-time chat events to members of one chat

Authentication:
    Users are authenticated via JWT token passed as query parameter or
    subprotocol. JWTAuthMiddleware attaches a TokenUser to self.scope["user"].

Channel Groups:
    Each chat has a channel group named "chat_{chat_id}".
    Connected members join the group and receive broadcast events.

Message Types (to client):
    - chat_read: {"type": "chat_read", "chat_id": int, "reader_id": str}

The socket is receive-only: client frames after the handshake are ignored.
Membership is checked again before each event is delivered; a user who
was detached, or whose chat was deleted, is closed with 4003.

Close Codes:
    4001: Not authenticated
    4003: Not a member of the chat
    4004: Chat does not exist
"""

from __future__ import annotations

import logging

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from chat.authorization import MembershipValidator
from chat.notifications import chat_group_name
from chat.store import ChatStore

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for chat events.

    Attributes:
        chat_id: Id of the connected chat
        user_id: Id of the connected user
        group_name: Channel layer group name for the chat
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.chat_id: int | None = None
        self.group_name: str | None = None
        self.user_id: str | None = None

    async def connect(self):
        """
        Validates:
            1. User is authenticated
            2. Chat exists
            3. User is a member of the chat

        On success, joins the channel group and accepts the connection.
        """
        self.chat_id = int(self.scope["url_route"]["kwargs"]["chat_id"])
        user = self.scope.get("user")

        if not user or not user.is_authenticated:
            logger.warning(f"Rejected unauthenticated connection to chat {self.chat_id}")
            await self.close(code=4001)
            return

        if not await self._chat_exists():
            logger.warning(f"User {user.id} tried to connect to missing chat {self.chat_id}")
            await self.close(code=4004)
            return

        self.user_id = str(user.id)
        if not await self._is_member(self.user_id):
            logger.warning(f"User {user.id} is not a member of chat {self.chat_id}")
            await self.close(code=4003)
            return

        self.group_name = chat_group_name(self.chat_id)
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        logger.info(f"User {user.id} connected to chat {self.chat_id}")

    async def disconnect(self, close_code):
        if self.group_name:
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            logger.info(f"Socket left chat {self.chat_id} (code {close_code})")

    async def receive_json(self, content, **kwargs):
        logger.debug(f"Ignoring client frame on chat {self.chat_id}")

    async def chat_read(self, event):
        """Handle chat.read events from the channel layer."""
        if not await self._is_member(self.user_id):
            logger.info(f"User {self.user_id} no longer in chat {self.chat_id}, closing")
            await self.channel_layer.group_discard(self.group_name, self.channel_name)
            self.group_name = None
            await self.close(code=4003)
            return
        await self.send_json(
            {
                "type": "chat_read",
                "chat_id": event["chat_id"],
                "reader_id": event["reader_id"],
            }
        )

    @database_sync_to_async
    def _chat_exists(self) -> bool:
        return ChatStore.exists(self.chat_id)

    @database_sync_to_async
    def _is_member(self, user_id: str) -> bool:
        return MembershipValidator.can_access(self.chat_id, user_id)
