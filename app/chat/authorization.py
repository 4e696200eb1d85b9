"""
Membership-based authorization for chat operations.

Access to an existing chat means "a ChatMembership for (chat, user)
exists". Callers must be able to tell "the chat does not exist"
(ChatNotFoundError, 404) apart from "it exists but you are not in it"
(MembershipMissingError, 403), so the checks always run in that order.

Key Components:
    MembershipValidator: Stateless checks, raising chat error kinds
    require_chat_member: Decorator running the full check before a
        service method

Error Codes:
    ACCESS_DENIED: No requester identity was supplied
    CHAT_NOT_FOUND: The chat does not exist
    MEMBERSHIP_MISSING: The requester is not a member

Usage:
    MembershipValidator.require_access(chat_id, requester_id)

    class ChatService(BaseService):
        @classmethod
        @require_chat_member()
        def mark_read(cls, chat_id, requester_id):
            ...
"""

from __future__ import annotations

import inspect
from functools import wraps
from typing import TYPE_CHECKING, Callable, TypeVar

from chat.exceptions import AccessDeniedError, MembershipMissingError
from chat.store import ChatStore

if TYPE_CHECKING:
    from chat.models import Chat


T = TypeVar("T")


class MembershipValidator:
    """
    Stateless authorization checks over the chat store.

    Methods:
        can_access: Pure predicate, membership exists
        can_attach: Membership exists, or the chat has no members yet
        require_requester: Reject calls without a requester identity
        require_chat: Fetch the chat or raise ChatNotFoundError
        require_access: Requester, existence and membership in one call
        require_attach_access: Same as require_access with the empty-chat
            bootstrap allowance
    """

    @classmethod
    def can_access(cls, chat_id: int, user_id: str | None) -> bool:
        """True if user_id is a member of the chat."""
        if not user_id:
            return False
        return ChatStore.is_member(chat_id, user_id)

    @classmethod
    def can_attach(cls, chat_id: int, user_id: str | None) -> bool:
        """
        True if user_id may add members to the chat.

        A chat with no members accepts its first member from any
        authenticated requester; after that only members may attach.
        """
        if not user_id:
            return False
        return cls.can_access(chat_id, user_id) or ChatStore.member_count(chat_id) == 0

    @classmethod
    def require_requester(cls, requester_id: str | None) -> str:
        if not requester_id:
            raise AccessDeniedError("A requester identity is required")
        return requester_id

    @classmethod
    def require_chat(cls, chat_id: int) -> Chat:
        """Raises ChatNotFoundError if the chat does not exist."""
        return ChatStore.get(chat_id)

    @classmethod
    def require_access(cls, chat_id: int, requester_id: str | None) -> Chat:
        """
        Run the access checks for an existing chat and return it.

        Raises:
            AccessDeniedError: requester_id is empty
            ChatNotFoundError: chat does not exist
            MembershipMissingError: requester is not a member
        """
        requester_id = cls.require_requester(requester_id)
        chat = cls.require_chat(chat_id)
        if not cls.can_access(chat_id, requester_id):
            raise MembershipMissingError(
                details={"chat_id": chat_id, "user_id": requester_id}
            )
        return chat

    @classmethod
    def require_attach_access(cls, chat_id: int, requester_id: str | None) -> Chat:
        requester_id = cls.require_requester(requester_id)
        chat = cls.require_chat(chat_id)
        if not cls.can_attach(chat_id, requester_id):
            raise MembershipMissingError(
                details={"chat_id": chat_id, "user_id": requester_id}
            )
        return chat


def require_chat_member(
    chat_id_param: str = "chat_id",
    requester_param: str = "requester_id",
) -> Callable:
    """
    Decorator that runs MembershipValidator.require_access first.

    Arguments are resolved by name from the decorated signature, so they
    may be passed positionally or as keywords. The wrapped method runs
    only if every check passes; otherwise the chat error propagates.

    Args:
        chat_id_param: Name of the argument holding the chat id
        requester_param: Name of the argument holding the requester id

    Example:
        class ChatService(BaseService):
            @classmethod
            @require_chat_member()
            def update_chat(cls, chat_id, patch, requester_id):
                # Only called for members of an existing chat
                ...
    """

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        signature = inspect.signature(func)

        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            bound = signature.bind(*args, **kwargs)
            bound.apply_defaults()
            MembershipValidator.require_access(
                bound.arguments.get(chat_id_param),
                bound.arguments.get(requester_param),
            )
            return func(*args, **kwargs)

        return wrapper

    return decorator
