"""
Typed inputs, views and collaborator records for the chat lifecycle.

Inputs (built by the boundary layer from validated request data):
    ChatFilter: Listing filter with 1-based paging
    ChatCreateSpec: Fields for a new chat
    ChatPatch: Partial update of non-identity fields
    MembershipRef: (chat_id, user_id) pair for attach / detach

Views (built deterministically from one Chat instance):
    PublicChatView: Full member list, no requester perspective
    SelfChatView: Requester perspective; ``partner`` is the other
        participant and the requester is filtered out of ``members``

Records returned by remote collaborators:
    Room, RemoteUser

Events:
    ChatReadEvent: Payload of the real-time "chat read" notification
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING

from chat.constants import CHAT_CONFIG

if TYPE_CHECKING:
    from datetime import datetime
    from typing import Any

    from chat.models import Chat, ChatMembership


@dataclass(frozen=True)
class ChatFilter:
    """Optional equality predicates plus paging for listing chats."""

    room_id: int | None = None
    title: str | None = None
    status: str | None = None
    page: int = CHAT_CONFIG.DEFAULT_PAGE
    limit: int = CHAT_CONFIG.DEFAULT_LIMIT

    def predicates(self) -> dict[str, Any]:
        """ORM lookups for the filters that were supplied."""
        lookups: dict[str, Any] = {}
        if self.room_id:
            lookups["room_id"] = self.room_id
        if self.title:
            lookups["title"] = self.title
        if self.status:
            lookups["status"] = self.status
        return lookups


@dataclass(frozen=True)
class ChatCreateSpec:
    title: str
    room_id: int
    status: str | None = None


@dataclass(frozen=True)
class ChatPatch:
    """
    Partial update of a chat.

    Only ``title`` and ``status`` are patchable; ``id`` and
    ``created_at`` are immutable and have no field here.
    """

    title: str | None = None
    status: str | None = None

    def changes(self) -> dict[str, Any]:
        return {
            name: value
            for name, value in (("title", self.title), ("status", self.status))
            if value is not None
        }

    def is_empty(self) -> bool:
        return not self.changes()


@dataclass(frozen=True)
class MembershipRef:
    chat_id: int
    user_id: str


@dataclass(frozen=True)
class MemberView:
    user_id: str
    name: str
    avatar: str | None
    joined_at: datetime

    @classmethod
    def from_membership(cls, membership: ChatMembership) -> MemberView:
        return cls(
            user_id=membership.user.user_id,
            name=membership.user.name,
            avatar=membership.user.avatar,
            joined_at=membership.joined_at,
        )


def _member_views(chat: Chat) -> tuple[MemberView, ...]:
    return tuple(
        MemberView.from_membership(membership) for membership in chat.memberships.all()
    )


@dataclass(frozen=True)
class PublicChatView:
    """A chat as seen without a requester identity."""

    id: int
    title: str
    room_id: int
    status: str
    created_at: datetime
    members: tuple[MemberView, ...] = ()

    @classmethod
    def from_chat(cls, chat: Chat) -> PublicChatView:
        return cls(
            id=chat.pk,
            title=chat.title,
            room_id=chat.room_id,
            status=chat.status,
            created_at=chat.created_at,
            members=_member_views(chat),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class SelfChatView:
    """
    A chat as seen by one of its members.

    ``partner`` is the earliest-joined member other than the requester
    (None when the requester is alone in the chat). ``members`` never
    contains the requester.
    """

    id: int
    title: str
    room_id: int
    status: str
    created_at: datetime
    requester_id: str
    partner: MemberView | None = None
    members: tuple[MemberView, ...] = ()

    @classmethod
    def from_chat(cls, chat: Chat, requester_id: str) -> SelfChatView:
        others = tuple(
            member for member in _member_views(chat) if member.user_id != requester_id
        )
        return cls(
            id=chat.pk,
            title=chat.title,
            room_id=chat.room_id,
            status=chat.status,
            created_at=chat.created_at,
            requester_id=requester_id,
            partner=others[0] if others else None,
            members=others,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ChatPage:
    """One page of listed chats plus offset-pagination metadata."""

    items: tuple[SelfChatView, ...]
    meta: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "data": [item.to_dict() for item in self.items],
            "meta": self.meta,
        }


@dataclass(frozen=True)
class ChatReadEvent:
    chat_id: int
    reader_id: str


@dataclass(frozen=True)
class Room:
    id: int
    title: str = ""


@dataclass(frozen=True)
class RemoteUser:
    id: str
    name: str = ""
    avatar: str | None = None
