"""
Chat store adapter.

Owns every query against Chat and ChatMembership: filter construction,
membership scoping and the translation of unique-constraint violations
into chat error kinds.

Transaction rules:
    - Mutating operations take a TransactionScope as their first
      argument and refuse to run when it is not active.
    - Read-only operations may run with or without a scope.
    - Inserts run inside a savepoint so a constraint violation leaves
      the caller's transaction usable until it decides to roll back.

Usage:
    from chat.store import ChatStore

    with ChatService.atomic() as scope:
        chat = ChatStore.create(scope, ChatCreateSpec(title="Support", room_id=7))
        ChatStore.add_member(scope, chat.pk, "u-1")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import Prefetch

from chat.exceptions import (
    ChatAlreadyExistsError,
    ChatNotFoundError,
    MembershipAlreadyExistsError,
)
from chat.models import Chat, ChatMembership, ChatStatus
from core.helpers import page_offset

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from chat.types import ChatCreateSpec, ChatFilter, ChatPatch
    from core.services import TransactionScope

logger = logging.getLogger(__name__)


class ChatStore:
    """
    Stateless data access for chats and memberships.

    Methods:
        list: One page of chats the requester is a member of
        count_total: Row count for the same filters without membership scoping
        get / get_for_update: Fetch a chat or raise ChatNotFoundError
        exists / title_exists: Cheap existence checks
        create / update / delete: Chat mutations
        is_member / find_membership / member_count: Membership reads
        find_chat_between: Chat shared by an unordered pair of users
        add_member / remove_member: Membership mutations
    """

    @staticmethod
    def _with_members(queryset: QuerySet[Chat]) -> QuerySet[Chat]:
        return queryset.prefetch_related(
            Prefetch(
                "memberships",
                queryset=ChatMembership.objects.select_related("user").order_by(
                    "joined_at", "id"
                ),
            )
        )

    # Reads

    @classmethod
    def list(cls, chat_filter: ChatFilter, requester_id: str) -> list[Chat]:
        """
        Return one page of chats where requester_id is a member.

        Ordered newest first; ``page`` is 1-based.
        """
        offset = page_offset(chat_filter.page, chat_filter.limit)
        queryset = (
            Chat.objects.filter(**chat_filter.predicates())
            .filter(memberships__user_id=requester_id)
            .order_by("-created_at", "-id")
            .distinct()
        )
        return list(cls._with_members(queryset)[offset : offset + chat_filter.limit])

    @classmethod
    def count_total(cls, chat_filter: ChatFilter) -> int:
        """Count chats matching the filters, ignoring membership."""
        return Chat.objects.filter(**chat_filter.predicates()).count()

    @classmethod
    def get(cls, chat_id: int) -> Chat:
        """
        Fetch a chat with its members.

        Raises:
            ChatNotFoundError: If no chat has this id
        """
        try:
            return cls._with_members(Chat.objects.all()).get(pk=chat_id)
        except Chat.DoesNotExist:
            raise ChatNotFoundError(details={"chat_id": chat_id}) from None

    @classmethod
    def get_for_update(cls, scope: TransactionScope, chat_id: int) -> Chat:
        """
        Fetch and row-lock a chat for the rest of the scope.

        Raises:
            ChatNotFoundError: If the chat was deleted meanwhile
        """
        scope.require_active()
        try:
            return Chat.objects.using(scope.using).select_for_update().get(pk=chat_id)
        except Chat.DoesNotExist:
            raise ChatNotFoundError(details={"chat_id": chat_id}) from None

    @classmethod
    def exists(cls, chat_id: int) -> bool:
        return Chat.objects.filter(pk=chat_id).exists()

    @classmethod
    def title_exists(cls, title: str) -> bool:
        return Chat.objects.filter(title=title).exists()

    @classmethod
    def is_member(cls, chat_id: int, user_id: str) -> bool:
        return ChatMembership.objects.filter(chat_id=chat_id, user_id=user_id).exists()

    @classmethod
    def find_membership(cls, chat_id: int, user_id: str) -> ChatMembership | None:
        return ChatMembership.objects.filter(chat_id=chat_id, user_id=user_id).first()

    @classmethod
    def member_count(cls, chat_id: int) -> int:
        return ChatMembership.objects.filter(chat_id=chat_id).count()

    @classmethod
    def find_chat_between(cls, user_a: str, user_b: str) -> int | None:
        """
        Id of the newest chat both users are members of.

        The pair is unordered: (a, b) and (b, a) give the same answer.
        A user paired with itself has no pair chat.
        """
        if user_a == user_b:
            return None
        return (
            Chat.objects.filter(memberships__user_id=user_a)
            .filter(memberships__user_id=user_b)
            .order_by("-created_at", "-id")
            .values_list("pk", flat=True)
            .first()
        )

    # Mutations

    @classmethod
    def create(cls, scope: TransactionScope, spec: ChatCreateSpec) -> Chat:
        """
        Insert a chat.

        Raises:
            ChatAlreadyExistsError: If the title unique constraint fires
        """
        scope.require_active()
        try:
            with transaction.atomic(using=scope.using):
                chat = Chat.objects.using(scope.using).create(
                    title=spec.title,
                    room_id=spec.room_id,
                    status=spec.status or ChatStatus.ACTIVE,
                )
        except IntegrityError:
            logger.warning(
                "Chat title race lost to a concurrent insert",
                extra={"title": spec.title},
            )
            raise ChatAlreadyExistsError(details={"title": spec.title}) from None
        return chat

    @classmethod
    def update(cls, scope: TransactionScope, chat_id: int, patch: ChatPatch) -> int:
        """
        Apply a partial update. Returns the number of rows changed.

        Raises:
            ChatAlreadyExistsError: If the new title is taken
        """
        scope.require_active()
        changes = patch.changes()
        if not changes:
            return 0

        chat = Chat.objects.using(scope.using).get(pk=chat_id)
        for name, value in changes.items():
            setattr(chat, name, value)
        try:
            with transaction.atomic(using=scope.using):
                chat.save(update_fields=[*changes, "updated_at"])
        except IntegrityError:
            logger.warning(
                "Chat rename collided with an existing title",
                extra={"chat_id": chat_id, "title": patch.title},
            )
            raise ChatAlreadyExistsError(details={"title": patch.title}) from None
        return 1

    @classmethod
    def delete(cls, scope: TransactionScope, chat_id: int) -> int:
        """
        Delete a chat and, by cascade, all of its memberships.

        Returns the number of memberships removed.
        """
        scope.require_active()
        _, per_model = Chat.objects.using(scope.using).filter(pk=chat_id).delete()
        return per_model.get(ChatMembership._meta.label, 0)

    @classmethod
    def add_member(
        cls, scope: TransactionScope, chat_id: int, user_id: str
    ) -> ChatMembership:
        """
        Insert a membership row.

        Raises:
            MembershipAlreadyExistsError: If the (chat, user) constraint fires
        """
        scope.require_active()
        try:
            with transaction.atomic(using=scope.using):
                return ChatMembership.objects.using(scope.using).create(
                    chat_id=chat_id, user_id=user_id
                )
        except IntegrityError:
            logger.warning(
                "Membership race lost to a concurrent attach",
                extra={"chat_id": chat_id, "user_id": user_id},
            )
            raise MembershipAlreadyExistsError(
                details={"chat_id": chat_id, "user_id": user_id}
            ) from None

    @classmethod
    def remove_member(cls, scope: TransactionScope, chat_id: int, user_id: str) -> int:
        scope.require_active()
        deleted, _ = (
            ChatMembership.objects.using(scope.using)
            .filter(chat_id=chat_id, user_id=user_id)
            .delete()
        )
        return deleted
