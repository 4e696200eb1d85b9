"""
Chat system models.

Models:
    ChatUser: Local cache of a user from the remote user directory
    Chat: A conversation bound to an external room
    ChatMembership: Join record between a Chat and a ChatUser

Design Decisions:
    - Chat titles are unique across all chats; the application checks
      first for a friendly error and the unique constraint is the real guard
    - A user appears at most once per chat (unique (chat, user))
    - Deleting a Chat cascades to its memberships in the same transaction
    - ChatUser rows are owned by the user-sync flow, never by a chat;
      memberships reference them with PROTECT
"""

from __future__ import annotations

from django.db import models

from chat.constants import CHAT_CONFIG
from core.models import BaseModel


class ChatStatus(models.TextChoices):
    """
    Lifecycle status of a chat.

    ACTIVE: Default on creation
    ARCHIVED: Set through update; the chat stays readable by members
    """

    ACTIVE = "active", "Active"
    ARCHIVED = "archived", "Archived"


class ChatUser(BaseModel):
    """
    Denormalized projection of a remote user directory record.

    Created lazily the first time the user is attached to any chat and
    eventually consistent with the directory afterwards.

    Fields:
        user_id: Identity issued by the user directory (primary key)
        name: Display name at sync time
        avatar: Avatar URL at sync time (may be empty)
    """

    user_id = models.CharField(
        max_length=CHAT_CONFIG.USER_ID_MAX_LENGTH,
        primary_key=True,
        help_text="User identity from the remote user directory",
    )

    name = models.CharField(
        max_length=CHAT_CONFIG.USER_NAME_MAX_LENGTH,
        blank=True,
        default="",
        help_text="Display name cached from the user directory",
    )

    avatar = models.URLField(
        max_length=CHAT_CONFIG.AVATAR_MAX_LENGTH,
        blank=True,
        null=True,
        help_text="Avatar URL cached from the user directory",
    )

    class Meta:
        db_table = "chat_user"
        ordering = ["user_id"]

    def __str__(self) -> str:
        return f"ChatUser({self.user_id})"


class Chat(BaseModel):
    """
    A conversation inside an external room.

    Fields:
        title: Globally unique title
        room_id: Reference to a room in the room registry (verified at creation)
        status: Lifecycle status (see ChatStatus)

    Relationships:
        memberships: ChatMembership rows owned by this chat
    """

    title = models.CharField(
        max_length=CHAT_CONFIG.TITLE_MAX_LENGTH,
        unique=True,
        help_text="Chat title, unique across all chats",
    )

    room_id = models.PositiveBigIntegerField(
        db_index=True,
        help_text="Identifier of the room in the room registry",
    )

    status = models.CharField(
        max_length=16,
        choices=ChatStatus.choices,
        default=ChatStatus.ACTIVE,
        db_index=True,
        help_text="Lifecycle status",
    )

    class Meta:
        db_table = "chat_chat"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["room_id", "status"], name="chat_room_status_idx"),
        ]

    def __str__(self) -> str:
        return f"Chat({self.pk}): {self.title}"

    @property
    def is_archived(self) -> bool:
        return self.status == ChatStatus.ARCHIVED


class ChatMembership(models.Model):
    """
    Membership of a user in a chat.

    Fields:
        chat: Owning chat (deleted with it)
        user: Cached user (non-owning, PROTECT)
        joined_at: When the membership was created

    Constraints:
        - UniqueConstraint(chat, user): a user appears at most once per chat
    """

    chat = models.ForeignKey(
        Chat,
        on_delete=models.CASCADE,
        related_name="memberships",
        help_text="Chat this membership belongs to",
    )

    user = models.ForeignKey(
        ChatUser,
        on_delete=models.PROTECT,
        related_name="memberships",
        help_text="Member user",
    )

    joined_at = models.DateTimeField(
        auto_now_add=True,
        help_text="When the user joined this chat",
    )

    class Meta:
        db_table = "chat_membership"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user"],
                name="unique_chat_membership",
            ),
        ]
        indexes = [
            models.Index(fields=["user", "chat"], name="chat_member_user_idx"),
        ]

    def __str__(self) -> str:
        return f"ChatMembership: {self.user_id} in {self.chat_id}"
