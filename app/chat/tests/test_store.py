"""
Tests for ChatStore.

Verifies:
- Listing is scoped to the requester's memberships, filtered and paged
- The total count ignores membership scoping
- Mutations refuse to run outside an open transaction scope
- Unique-constraint violations surface as chat error kinds
- Pair lookup is unordered
"""

import pytest

from chat.exceptions import (
    ChatAlreadyExistsError,
    ChatNotFoundError,
    MembershipAlreadyExistsError,
)
from chat.models import Chat, ChatMembership, ChatStatus
from chat.store import ChatStore
from chat.tests.factories import ChatFactory
from chat.types import ChatCreateSpec, ChatFilter, ChatPatch
from core.services import BaseService, TransactionScopeError


def closed_scope():
    with BaseService.atomic() as scope:
        pass
    return scope


# =============================================================================
# Reads
# =============================================================================


class TestList:
    def test_returns_only_chats_requester_belongs_to(self, db, alice, bob):
        mine = ChatFactory(members=[alice])
        ChatFactory(members=[bob])

        rows = ChatStore.list(ChatFilter(), "alice")

        assert [chat.pk for chat in rows] == [mine.pk]

    def test_orders_newest_first(self, db, alice):
        older = ChatFactory(members=[alice])
        newer = ChatFactory(members=[alice])

        rows = ChatStore.list(ChatFilter(), "alice")

        assert [chat.pk for chat in rows] == [newer.pk, older.pk]

    def test_applies_equality_filters(self, db, alice):
        ChatFactory(room_id=1, members=[alice])
        target = ChatFactory(room_id=2, status=ChatStatus.ARCHIVED, members=[alice])
        ChatFactory(room_id=2, members=[alice])

        rows = ChatStore.list(ChatFilter(room_id=2, status=ChatStatus.ARCHIVED), "alice")

        assert [chat.pk for chat in rows] == [target.pk]

    def test_title_filter_is_exact(self, db, alice):
        ChatFactory(title="Support team", members=[alice])
        target = ChatFactory(title="Support", members=[alice])

        rows = ChatStore.list(ChatFilter(title="Support"), "alice")

        assert [chat.pk for chat in rows] == [target.pk]

    def test_pages_are_one_based(self, db, alice):
        chats = [ChatFactory(members=[alice]) for _ in range(5)]
        newest_first = [chat.pk for chat in reversed(chats)]

        page_one = ChatStore.list(ChatFilter(page=1, limit=2), "alice")
        page_three = ChatStore.list(ChatFilter(page=3, limit=2), "alice")
        page_four = ChatStore.list(ChatFilter(page=4, limit=2), "alice")

        assert [chat.pk for chat in page_one] == newest_first[:2]
        assert [chat.pk for chat in page_three] == newest_first[4:]
        assert page_four == []

    def test_rows_carry_all_members(self, db, alice, bob):
        ChatFactory(members=[alice, bob])

        (chat,) = ChatStore.list(ChatFilter(), "alice")

        assert [m.user.user_id for m in chat.memberships.all()] == ["alice", "bob"]


class TestCountTotal:
    def test_counts_without_membership_scope(self, db, alice):
        ChatFactory(members=[alice])
        ChatFactory()
        ChatFactory(status=ChatStatus.ARCHIVED)

        assert ChatStore.count_total(ChatFilter()) == 3
        assert ChatStore.count_total(ChatFilter(status=ChatStatus.ARCHIVED)) == 1


class TestGet:
    def test_returns_chat(self, db):
        chat = ChatFactory(title="Support")

        assert ChatStore.get(chat.pk).title == "Support"

    def test_missing_chat_raises_not_found(self, db):
        with pytest.raises(ChatNotFoundError) as exc_info:
            ChatStore.get(404)

        assert exc_info.value.details == {"chat_id": 404}

    def test_get_for_update_requires_open_scope(self, db):
        chat = ChatFactory()

        with pytest.raises(TransactionScopeError):
            ChatStore.get_for_update(closed_scope(), chat.pk)


class TestMembershipReads:
    def test_is_member(self, db, shared_chat, carol):
        assert ChatStore.is_member(shared_chat.pk, "alice") is True
        assert ChatStore.is_member(shared_chat.pk, "carol") is False

    def test_find_membership(self, db, shared_chat):
        membership = ChatStore.find_membership(shared_chat.pk, "bob")

        assert membership is not None
        assert membership.user_id == "bob"
        assert ChatStore.find_membership(shared_chat.pk, "nobody") is None

    def test_member_count(self, db, shared_chat, empty_chat):
        assert ChatStore.member_count(shared_chat.pk) == 2
        assert ChatStore.member_count(empty_chat.pk) == 0


class TestFindChatBetween:
    def test_finds_shared_chat_in_either_order(self, db, shared_chat):
        assert ChatStore.find_chat_between("alice", "bob") == shared_chat.pk
        assert ChatStore.find_chat_between("bob", "alice") == shared_chat.pk

    def test_returns_none_without_shared_chat(self, db, alice, carol):
        ChatFactory(members=[alice])
        ChatFactory(members=[carol])

        assert ChatStore.find_chat_between("alice", "carol") is None

    def test_user_with_itself_has_no_pair_chat(self, db, shared_chat, alice):
        ChatFactory(members=[alice])

        assert ChatStore.find_chat_between("alice", "alice") is None


# =============================================================================
# Mutations
# =============================================================================


class TestCreate:
    def test_creates_active_chat(self, db):
        with BaseService.atomic() as scope:
            chat = ChatStore.create(scope, ChatCreateSpec(title="Support", room_id=7))

        assert chat.pk is not None
        assert chat.status == ChatStatus.ACTIVE
        assert ChatStore.member_count(chat.pk) == 0

    def test_requires_open_scope(self, db):
        with pytest.raises(TransactionScopeError):
            ChatStore.create(closed_scope(), ChatCreateSpec(title="Support", room_id=7))

        assert Chat.objects.count() == 0

    def test_title_collision_raises_already_exists(self, db):
        ChatFactory(title="Support")

        with pytest.raises(ChatAlreadyExistsError), BaseService.atomic() as scope:
            ChatStore.create(scope, ChatCreateSpec(title="Support", room_id=7))

        assert Chat.objects.filter(title="Support").count() == 1


class TestUpdate:
    def test_applies_only_supplied_fields(self, db):
        chat = ChatFactory(title="Old", status=ChatStatus.ACTIVE)

        with BaseService.atomic() as scope:
            changed = ChatStore.update(scope, chat.pk, ChatPatch(status=ChatStatus.ARCHIVED))

        chat.refresh_from_db()
        assert changed == 1
        assert chat.title == "Old"
        assert chat.status == ChatStatus.ARCHIVED

    def test_empty_patch_changes_nothing(self, db):
        chat = ChatFactory()

        with BaseService.atomic() as scope:
            assert ChatStore.update(scope, chat.pk, ChatPatch()) == 0

    def test_rename_to_taken_title_raises_already_exists(self, db):
        ChatFactory(title="Taken")
        chat = ChatFactory(title="Mine")

        with pytest.raises(ChatAlreadyExistsError), BaseService.atomic() as scope:
            ChatStore.update(scope, chat.pk, ChatPatch(title="Taken"))

        chat.refresh_from_db()
        assert chat.title == "Mine"


class TestDelete:
    def test_deletes_chat_and_memberships(self, db, shared_chat):
        with BaseService.atomic() as scope:
            removed = ChatStore.delete(scope, shared_chat.pk)

        assert removed == 2
        assert not Chat.objects.filter(pk=shared_chat.pk).exists()
        assert ChatMembership.objects.filter(chat_id=shared_chat.pk).count() == 0

    def test_requires_open_scope(self, db, shared_chat):
        with pytest.raises(TransactionScopeError):
            ChatStore.delete(closed_scope(), shared_chat.pk)

        assert Chat.objects.filter(pk=shared_chat.pk).exists()


class TestMembershipMutations:
    def test_add_member(self, db, empty_chat, alice):
        with BaseService.atomic() as scope:
            membership = ChatStore.add_member(scope, empty_chat.pk, "alice")

        assert membership.joined_at is not None
        assert ChatStore.is_member(empty_chat.pk, "alice")

    def test_duplicate_add_raises_already_exists(self, db, shared_chat):
        with pytest.raises(MembershipAlreadyExistsError), BaseService.atomic() as scope:
            ChatStore.add_member(scope, shared_chat.pk, "alice")

        assert ChatStore.member_count(shared_chat.pk) == 2

    def test_remove_member(self, db, shared_chat):
        with BaseService.atomic() as scope:
            removed = ChatStore.remove_member(scope, shared_chat.pk, "bob")

        assert removed == 1
        assert not ChatStore.is_member(shared_chat.pk, "bob")

    def test_add_member_requires_open_scope(self, db, empty_chat, alice):
        with pytest.raises(TransactionScopeError):
            ChatStore.add_member(closed_scope(), empty_chat.pk, "alice")
