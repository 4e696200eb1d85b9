"""
Chat lifecycle service layer.

This module composes the chat store, the membership validator, the user
synchronizer, the remote collaborators and the notification emitter
into the public chat operations.

Services:
    ChatService: list, get, create, update, mark read, delete, attach, detach
    PairTeardownService: Ensure no chat exists between two users

Design Principles:
    - Services are stateless (use class methods)
    - Failures raise chat error kinds (chat.exceptions); raising inside
      ``cls.atomic()`` rolls back every local write of the operation
    - One transaction scope per public operation
    - Remote calls never run while a scope is open: preconditions (room
      check, directory lookup, message store) run before the scope,
      compensations (partner tie detach) and real-time events run after
      commit through ``scope.on_commit``
    - Unique constraints are the real guard for titles and memberships;
      the checks done here only produce the friendly error early

Eventual consistency:
    delete_chat commits the local deletion first, then detaches the
    partner tie in the relationship-graph service. If that call fails the
    chat stays deleted and the detach is retried by the Celery task
    chat.tasks.detach_partner_tie.

Usage:
    from chat.services import ChatService, PairTeardownService

    result = ChatService.create_chat(ChatCreateSpec(title="Support", room_id=7))
    chat_view = result.data

    ChatService.attach_user(MembershipRef(chat_id=chat_view.id, user_id="u-1"), "u-1")
    ChatService.mark_read(chat_id=chat_view.id, requester_id="u-1")
    PairTeardownService.delete_between_pair("u-1", "u-2")
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from chat.authorization import MembershipValidator, require_chat_member
from chat.clients import get_message_store_client, get_room_client, get_ties_client
from chat.constants import CHAT_CONFIG
from chat.exceptions import (
    AccessDeniedError,
    ChatAlreadyExistsError,
    ChatNotFoundError,
    CollaboratorUnavailableError,
    MembershipAlreadyExistsError,
    MembershipMissingError,
)
from chat.models import ChatStatus
from chat.notifications import ChatEventEmitter
from chat.store import ChatStore
from chat.types import ChatPage, ChatReadEvent, PublicChatView, SelfChatView
from chat.user_sync import UserCacheService, UserSyncService
from core.exceptions import ValidationError
from core.helpers import build_page_meta
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from chat.types import ChatCreateSpec, ChatFilter, ChatPatch, MembershipRef

logger = logging.getLogger(__name__)


def _validate_status(status: str | None) -> None:
    if status is not None and status not in ChatStatus.values:
        raise ValidationError(
            f"Unknown chat status '{status}'",
            details={"status": [f"Must be one of {', '.join(ChatStatus.values)}"]},
        )


def _validate_title(title: str | None) -> None:
    if title is None:
        return
    if not title.strip():
        raise ValidationError("Title cannot be blank", details={"title": ["Required"]})
    if len(title) > CHAT_CONFIG.TITLE_MAX_LENGTH:
        raise ValidationError(
            "Title is too long",
            details={"title": [f"At most {CHAT_CONFIG.TITLE_MAX_LENGTH} characters"]},
        )


class ChatService(BaseService):
    """
    Service for the chat lifecycle.

    Methods:
        list_chats: Page of the requester's chats
        get_chat: Public or requester-perspective view of a chat
        create_chat: Create a chat in an existing room
        update_chat: Patch title / status
        mark_read: Mark every message read and notify the chat group
        delete_chat: Delete a chat, then detach the partner tie
        attach_user: Add a member (synchronizing the user cache)
        detach_user: Remove a member
    """

    @classmethod
    def list_chats(
        cls,
        chat_filter: ChatFilter,
        requester_id: str | None,
        path: str = "",
    ) -> ServiceResult[ChatPage]:
        """
        List chats the requester is a member of.

        An empty page is an error, not an empty list. The ``total`` in
        the page metadata counts chats matching the filters regardless of
        membership.

        Raises:
            AccessDeniedError: No requester
            ValidationError: page < 1 or limit outside 1..MAX_LIMIT
            ChatNotFoundError: The requested page holds no chats
        """
        requester_id = MembershipValidator.require_requester(requester_id)
        if chat_filter.page < 1:
            raise ValidationError("Page must be 1 or greater", details={"page": ["Min 1"]})
        if not 1 <= chat_filter.limit <= CHAT_CONFIG.MAX_LIMIT:
            raise ValidationError(
                "Limit out of range",
                details={"limit": [f"Between 1 and {CHAT_CONFIG.MAX_LIMIT}"]},
            )

        with cls.atomic():
            chats = ChatStore.list(chat_filter, requester_id)
            if not chats:
                raise ChatNotFoundError(
                    "No chats found",
                    details={"page": chat_filter.page},
                )
            total = ChatStore.count_total(chat_filter)

        page = ChatPage(
            items=tuple(SelfChatView.from_chat(chat, requester_id) for chat in chats),
            meta=build_page_meta(total, chat_filter.page, chat_filter.limit, path),
        )
        return ServiceResult.success(page)

    @classmethod
    def get_chat(
        cls,
        chat_id: int,
        requester_id: str | None = None,
    ) -> ServiceResult[PublicChatView | SelfChatView]:
        """
        Fetch a chat.

        Without a requester (trusted internal callers) only existence is
        checked and the public view is returned. With a requester the
        caller must be a member and gets the self view.

        Raises:
            ChatNotFoundError: Chat does not exist
            MembershipMissingError: Requester is not a member
        """
        if not requester_id:
            return ServiceResult.success(PublicChatView.from_chat(ChatStore.get(chat_id)))

        with cls.atomic():
            chat = MembershipValidator.require_access(chat_id, requester_id)
        return ServiceResult.success(SelfChatView.from_chat(chat, requester_id))

    @classmethod
    def create_chat(cls, spec: ChatCreateSpec) -> ServiceResult[PublicChatView]:
        """
        Create a chat with zero members.

        Implementation:
            1. Fast-path title check (friendly error)
            2. Verify the room exists in the room registry (before the scope)
            3. Insert; a lost title race surfaces as ChatAlreadyExistsError

        Raises:
            ValidationError: Blank/long title or unknown status
            ChatAlreadyExistsError: Title already taken
            RoomNotFoundError: Room registry has no such room
            CollaboratorUnavailableError: Room registry unreachable
        """
        _validate_title(spec.title)
        _validate_status(spec.status)

        if ChatStore.title_exists(spec.title):
            raise ChatAlreadyExistsError(details={"title": spec.title})

        get_room_client().get_room(spec.room_id)

        with cls.atomic() as scope:
            chat = ChatStore.create(scope, spec)

        cls.get_logger().info(
            f"Created chat {chat.pk} in room {chat.room_id}",
            extra={"chat_id": chat.pk, "room_id": chat.room_id},
        )
        return ServiceResult.success(PublicChatView.from_chat(chat))

    @classmethod
    @require_chat_member()
    def update_chat(
        cls,
        chat_id: int,
        patch: ChatPatch,
        requester_id: str | None,
    ) -> ServiceResult[None]:
        """
        Apply a partial update to a chat's title and/or status.

        Returns an acknowledgment, not the updated chat.

        Raises:
            AccessDeniedError / ChatNotFoundError / MembershipMissingError
            ValidationError: Blank/long title or unknown status
            ChatAlreadyExistsError: New title already taken
        """
        _validate_title(patch.title)
        _validate_status(patch.status)

        with cls.atomic() as scope:
            chat = ChatStore.get_for_update(scope, chat_id)
            if (
                patch.title is not None
                and patch.title != chat.title
                and ChatStore.title_exists(patch.title)
            ):
                raise ChatAlreadyExistsError(details={"title": patch.title})
            ChatStore.update(scope, chat_id, patch)

        if not patch.is_empty():
            cls.get_logger().info(
                f"Updated chat {chat_id}: {', '.join(patch.changes())}",
                extra={"chat_id": chat_id, "user_id": requester_id},
            )
        return ServiceResult.success(None)

    @classmethod
    @require_chat_member()
    def mark_read(cls, chat_id: int, requester_id: str | None) -> ServiceResult[None]:
        """
        Mark every message in the chat read for the requester.

        The message store is called before the scope opens. The chat.read
        event is emitted only after the scope commits and its failure
        never fails this operation.

        Raises:
            AccessDeniedError / ChatNotFoundError / MembershipMissingError
            CollaboratorUnavailableError: Message store unreachable
        """
        get_message_store_client().read_messages(chat_id, requester_id)

        with cls.atomic() as scope:
            # The chat may have been deleted during the remote call
            ChatStore.get_for_update(scope, chat_id)
            ChatEventEmitter.emit_chat_read(
                scope, ChatReadEvent(chat_id=chat_id, reader_id=requester_id)
            )

        cls.get_logger().info(
            f"User {requester_id} read chat {chat_id}",
            extra={"chat_id": chat_id, "user_id": requester_id},
        )
        return ServiceResult.success(None)

    @classmethod
    def delete_chat(
        cls,
        chat_id: int,
        requester_id: str | None,
        auth_token: str | None = None,
    ) -> ServiceResult[None]:
        """
        Delete a chat and all of its memberships.

        After the deletion commits, the tie between the requester and the
        chat's partner is detached in the relationship-graph service with
        the requester's token. That step is best-effort: failure is logged
        and handed to a retrying Celery task, the deletion stands.

        Raises:
            AccessDeniedError / ChatNotFoundError / MembershipMissingError
        """
        chat = MembershipValidator.require_access(chat_id, requester_id)
        partner = SelfChatView.from_chat(chat, requester_id).partner

        with cls.atomic() as scope:
            ChatStore.get_for_update(scope, chat_id)
            removed = ChatStore.delete(scope, chat_id)
            if partner is not None:
                partner_id = partner.user_id
                scope.on_commit(
                    lambda: cls.detach_partner_tie(auth_token, partner_id, chat_id)
                )

        cls.get_logger().info(
            f"Deleted chat {chat_id} with {removed} memberships",
            extra={"chat_id": chat_id, "user_id": requester_id},
        )
        return ServiceResult.success(None)

    @classmethod
    def detach_partner_tie(
        cls,
        auth_token: str | None,
        partner_id: str,
        chat_id: int | None = None,
    ) -> bool:
        """
        Best-effort partner tie detach after a chat deletion.

        A rejected token is final: it is logged and the tie left in place,
        since no retry can make the same token acceptable.

        Returns:
            True if the ties service confirmed the detach, False if it was
            skipped or handed to the retry task
        """
        from chat.tasks import detach_partner_tie

        if not auth_token:
            cls.get_logger().warning(
                f"No caller token, partner tie to {partner_id} left in place",
                extra={"chat_id": chat_id, "partner_id": partner_id},
            )
            return False

        try:
            get_ties_client().detach_partner(auth_token, partner_id)
            return True
        except AccessDeniedError:
            cls.get_logger().warning(
                f"Ties service rejected the token, partner tie to {partner_id} left in place",
                extra={"chat_id": chat_id, "partner_id": partner_id},
            )
            return False
        except CollaboratorUnavailableError:
            cls.get_logger().warning(
                f"Partner tie detach failed after deleting chat {chat_id}, scheduling retry",
                extra={"chat_id": chat_id, "partner_id": partner_id},
            )

        try:
            detach_partner_tie.delay(auth_token, partner_id, chat_id)
        except Exception:
            cls.get_logger().exception(
                "Could not enqueue partner tie detach",
                extra={"chat_id": chat_id, "partner_id": partner_id},
            )
        return False

    @classmethod
    def attach_user(
        cls,
        membership: MembershipRef,
        requester_id: str | None,
    ) -> ServiceResult[None]:
        """
        Add membership.user_id to membership.chat_id.

        Implementation:
            a. Reject an existing (chat, user) row
            b. Chat must exist and the requester must be allowed to attach
               (a member, or anyone while the chat has no members)
            c. Resolve the user against the local cache, then the remote
               directory (before the scope)
            d. Inside the scope, lock the chat, cache the user and re-check
               the membership for the target user
            e. Insert; a lost race surfaces as MembershipAlreadyExistsError

        Raises:
            AccessDeniedError: No requester
            MembershipAlreadyExistsError: Target user already a member
            ChatNotFoundError: Chat does not exist
            MembershipMissingError: Requester may not attach to this chat
            UserNotFoundError: Directory has no such user
            CollaboratorUnavailableError: Directory unreachable
        """
        requester_id = MembershipValidator.require_requester(requester_id)
        chat_id, user_id = membership.chat_id, membership.user_id

        if ChatStore.find_membership(chat_id, user_id) is not None:
            raise MembershipAlreadyExistsError(
                details={"chat_id": chat_id, "user_id": user_id}
            )

        MembershipValidator.require_attach_access(chat_id, requester_id)

        record = UserSyncService.resolve(user_id)

        with cls.atomic() as scope:
            ChatStore.get_for_update(scope, chat_id)
            if not MembershipValidator.can_attach(chat_id, requester_id):
                raise MembershipMissingError(
                    details={"chat_id": chat_id, "user_id": requester_id}
                )
            UserSyncService.store(scope, user_id, record)
            if ChatStore.is_member(chat_id, user_id):
                raise MembershipAlreadyExistsError(
                    details={"chat_id": chat_id, "user_id": user_id}
                )
            ChatStore.add_member(scope, chat_id, user_id)

        cls.get_logger().info(
            f"Attached user {user_id} to chat {chat_id}",
            extra={"chat_id": chat_id, "user_id": user_id, "requester_id": requester_id},
        )
        return ServiceResult.success(None)

    @classmethod
    def detach_user(
        cls,
        membership: MembershipRef,
        requester_id: str | None,
    ) -> ServiceResult[None]:
        """
        Remove membership.user_id from membership.chat_id.

        Raises:
            AccessDeniedError: No requester
            MembershipMissingError: No such membership, or requester not a member
            ChatNotFoundError: Chat does not exist
            UserNotFoundError: Target user is not in the local cache
        """
        requester_id = MembershipValidator.require_requester(requester_id)
        chat_id, user_id = membership.chat_id, membership.user_id

        if ChatStore.find_membership(chat_id, user_id) is None:
            raise MembershipMissingError(details={"chat_id": chat_id, "user_id": user_id})

        MembershipValidator.require_access(chat_id, requester_id)
        UserCacheService.get_user(user_id)

        with cls.atomic() as scope:
            ChatStore.get_for_update(scope, chat_id)
            if not ChatStore.is_member(chat_id, user_id):
                raise MembershipMissingError(
                    details={"chat_id": chat_id, "user_id": user_id}
                )
            ChatStore.remove_member(scope, chat_id, user_id)

        cls.get_logger().info(
            f"Detached user {user_id} from chat {chat_id}",
            extra={"chat_id": chat_id, "user_id": user_id, "requester_id": requester_id},
        )
        return ServiceResult.success(None)


class PairTeardownService(BaseService):
    """
    Removes the chat shared by two users when their relationship ends.

    Unlike every other deletion path this never raises ChatNotFoundError:
    the caller wants "no chat between these users", so a missing chat and
    a deleted chat are the same outcome. Calling it twice is a no-op.
    """

    @classmethod
    def delete_between_pair(cls, user_a: str | None, user_b: str) -> ServiceResult[None]:
        """
        A user paired with itself has no pair chat, so nothing is deleted.

        Raises:
            AccessDeniedError: No requesting user
        """
        user_a = MembershipValidator.require_requester(user_a)
        if user_a == user_b:
            cls.get_logger().debug(f"Pair teardown for {user_a} with itself ignored")
            return ServiceResult.success(None)

        with cls.atomic() as scope:
            chat_id = ChatStore.find_chat_between(user_a, user_b)
            if chat_id is None:
                cls.get_logger().debug(f"No chat between {user_a} and {user_b}")
                return ServiceResult.success(None)
            ChatStore.delete(scope, chat_id)

        cls.get_logger().info(
            f"Deleted chat {chat_id} between {user_a} and {user_b}",
            extra={"chat_id": chat_id},
        )
        return ServiceResult.success(None)
