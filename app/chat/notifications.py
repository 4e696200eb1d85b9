"""
Real-time notifications for chat state changes.

ChatEventEmitter hands events to the Channels layer after the local
transaction commits. Delivery is at-most-once and best-effort: a send
failure is logged and dropped, and a rolled-back scope never emits.

Channel Groups:
    Each chat has a group named "chat_{chat_id}" (see CHAT_CONFIG.GROUP_PREFIX).
    ChatConsumer instances for members of the chat join it.

Events (group_send payloads):
    chat.read: {"type": "chat.read", "chat_id": int, "reader_id": str}
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from chat.constants import CHAT_CONFIG

if TYPE_CHECKING:
    from chat.types import ChatReadEvent
    from core.services import TransactionScope

logger = logging.getLogger(__name__)


def chat_group_name(chat_id: int) -> str:
    return f"{CHAT_CONFIG.GROUP_PREFIX}{chat_id}"


class ChatEventEmitter:
    """Fire-and-forget publisher for chat events."""

    @classmethod
    def emit_chat_read(cls, scope: TransactionScope, event: ChatReadEvent) -> None:
        """Schedule a chat.read broadcast for when the scope commits."""
        scope.on_commit(lambda: cls.send_chat_read(event))

    @classmethod
    def send_chat_read(cls, event: ChatReadEvent) -> bool:
        """
        Broadcast a chat.read event now.

        Returns:
            True if the channel layer accepted the message, False otherwise
        """
        channel_layer = get_channel_layer()
        if channel_layer is None:
            logger.warning("No channel layer configured, chat.read dropped")
            return False

        try:
            async_to_sync(channel_layer.group_send)(
                chat_group_name(event.chat_id),
                {
                    "type": "chat.read",
                    "chat_id": event.chat_id,
                    "reader_id": event.reader_id,
                },
            )
        except Exception:
            logger.exception(
                "Failed to emit chat.read",
                extra={"chat_id": event.chat_id, "reader_id": event.reader_id},
            )
            return False
        return True
