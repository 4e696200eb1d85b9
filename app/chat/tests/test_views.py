"""
Tests for chat API views.

This module tests the chat endpoints over HTTP:
- ChatListCreateView: List and create
- ChatDetailView: Get, update, delete
- ChatReadView: Mark read
- ChatMembershipView: Attach and detach
- ChatPairView: Pair teardown

Testing Philosophy:
    Tests focus on observable HTTP behavior:
    - Response status codes
    - Response body structure and error codes
    - Database state changes
    - Authentication enforcement

Remote collaborators are replaced by the fakes in conftest.py.
"""

from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken

from chat.exceptions import CollaboratorUnavailableError, RoomNotFoundError
from chat.models import Chat, ChatStatus
from chat.store import ChatStore
from chat.tests.factories import ChatFactory

# =============================================================================
# URL Constants
# =============================================================================


CHATS_URL = "/api/v1/chat/chats/"
MEMBERS_URL = f"{CHATS_URL}members/"


def chat_detail_url(chat_id):
    return f"{CHATS_URL}{chat_id}/"


def chat_read_url(chat_id):
    return f"{CHATS_URL}{chat_id}/read/"


def pair_url(partner_id):
    return f"{CHATS_URL}pairs/{partner_id}/"


# =============================================================================
# Authentication
# =============================================================================


class TestAuthentication:
    def test_anonymous_requests_are_rejected(self, db, api_client):
        """
        Every endpoint requires an access token.

        Why it matters: The requester identity drives every membership check.
        """
        assert api_client.get(CHATS_URL).status_code == status.HTTP_401_UNAUTHORIZED
        assert api_client.get(chat_detail_url(1)).status_code == status.HTTP_401_UNAUTHORIZED
        assert api_client.post(MEMBERS_URL, {}).status_code == status.HTTP_401_UNAUTHORIZED

    def test_invalid_token_is_rejected(self, db, api_client):
        api_client.credentials(HTTP_AUTHORIZATION="Bearer not-a-token")

        assert api_client.get(CHATS_URL).status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# List / Create
# =============================================================================


class TestChatList:
    def test_returns_page(self, shared_chat, alice_client):
        response = alice_client.get(CHATS_URL)

        assert response.status_code == status.HTTP_200_OK
        assert [c["id"] for c in response.data["data"]] == [shared_chat.id]
        assert response.data["data"][0]["partner"]["user_id"] == "bob"
        assert response.data["meta"]["current_page"] == 1
        assert response.data["meta"]["path"].endswith(CHATS_URL)

    def test_empty_page_is_not_found(self, shared_chat, alice_client):
        """
        An empty result answers 404, not an empty list.

        Why it matters: Clients page until they get CHAT_NOT_FOUND.
        """
        response = alice_client.get(CHATS_URL, {"status": ChatStatus.ARCHIVED})

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "CHAT_NOT_FOUND"

    def test_invalid_query(self, shared_chat, alice_client):
        response = alice_client.get(CHATS_URL, {"limit": 1000})

        assert response.status_code == status.HTTP_400_BAD_REQUEST


class TestChatCreate:
    def test_creates_chat(self, db, rooms, alice_client, alice):
        response = alice_client.post(CHATS_URL, {"title": "Support", "room_id": 7}, format="json")

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["title"] == "Support"
        assert response.data["status"] == ChatStatus.ACTIVE
        assert response.data["members"] == []
        assert Chat.objects.filter(pk=response.data["id"]).exists()

    def test_duplicate_title_conflicts(self, shared_chat, rooms, alice_client):
        response = alice_client.post(
            CHATS_URL, {"title": "Alice and Bob", "room_id": 7}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "CHAT_ALREADY_EXISTS"

    def test_missing_room(self, db, rooms, alice_client, alice):
        rooms.get_room.side_effect = RoomNotFoundError(details={"room_id": 9})

        response = alice_client.post(CHATS_URL, {"title": "Support", "room_id": 9}, format="json")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "ROOM_NOT_FOUND"


# =============================================================================
# Detail
# =============================================================================


class TestChatDetail:
    def test_get_as_member(self, shared_chat, bob_client):
        response = bob_client.get(chat_detail_url(shared_chat.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["partner"]["user_id"] == "alice"
        assert [m["user_id"] for m in response.data["members"]] == ["alice"]

    def test_get_as_non_member(self, shared_chat, carol_client):
        response = carol_client.get(chat_detail_url(shared_chat.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "MEMBERSHIP_MISSING"

    def test_get_missing_chat(self, db, alice_client):
        response = alice_client.get(chat_detail_url(404))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "CHAT_NOT_FOUND"

    def test_patch(self, shared_chat, alice_client):
        response = alice_client.patch(
            chat_detail_url(shared_chat.id),
            {"title": "Renamed", "status": "archived", "id": 999},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"success": True}
        shared_chat.refresh_from_db()
        assert shared_chat.title == "Renamed"
        assert shared_chat.status == ChatStatus.ARCHIVED
        assert Chat.objects.filter(pk=shared_chat.id).exists()

    def test_delete_detaches_partner_with_caller_token(
        self, shared_chat, ties, alice_client, django_capture_on_commit_callbacks
    ):
        with django_capture_on_commit_callbacks(execute=True):
            response = alice_client.delete(chat_detail_url(shared_chat.id))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"success": True}
        assert not Chat.objects.filter(pk=shared_chat.id).exists()
        token, partner_id = ties.detach_partner.call_args.args
        assert partner_id == "bob"
        assert AccessToken(token)["user_id"] == "alice"

    def test_delete_as_non_member(self, shared_chat, ties, carol_client):
        response = carol_client.delete(chat_detail_url(shared_chat.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert Chat.objects.filter(pk=shared_chat.id).exists()


# =============================================================================
# Read
# =============================================================================


class TestChatRead:
    def test_marks_read(self, shared_chat, messages, alice_client):
        response = alice_client.post(chat_read_url(shared_chat.id))

        assert response.status_code == status.HTTP_200_OK
        messages.read_messages.assert_called_once_with(shared_chat.id, "alice")

    def test_non_member(self, shared_chat, messages, carol_client):
        response = carol_client.post(chat_read_url(shared_chat.id))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        messages.read_messages.assert_not_called()

    def test_message_store_unavailable(self, shared_chat, messages, alice_client):
        messages.read_messages.side_effect = CollaboratorUnavailableError(
            details={"collaborator": "message-store", "reason": "server_error"}
        )

        response = alice_client.post(chat_read_url(shared_chat.id))

        assert response.status_code == status.HTTP_503_SERVICE_UNAVAILABLE
        assert response.data["error_code"] == "COLLABORATOR_UNAVAILABLE"
        assert response.data["details"]["collaborator"] == "message-store"


# =============================================================================
# Members
# =============================================================================


class TestChatMembers:
    def test_attach(self, shared_chat, directory, remote_user, alice_client):
        directory.users["u1"] = remote_user("u1", name="Alice Two")

        response = alice_client.post(
            MEMBERS_URL, {"chat_id": shared_chat.id, "user_id": "u1"}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data == {"success": True}
        assert ChatStore.is_member(shared_chat.id, "u1")

    def test_attach_unknown_user(self, shared_chat, directory, alice_client):
        response = alice_client.post(
            MEMBERS_URL, {"chat_id": shared_chat.id, "user_id": "ghost"}, format="json"
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "USER_NOT_FOUND"

    def test_attach_existing_member(self, shared_chat, directory, alice_client):
        response = alice_client.post(
            MEMBERS_URL, {"chat_id": shared_chat.id, "user_id": "bob"}, format="json"
        )

        assert response.status_code == status.HTTP_409_CONFLICT
        assert response.data["error_code"] == "MEMBERSHIP_ALREADY_EXISTS"

    def test_detach(self, shared_chat, alice_client):
        response = alice_client.delete(
            MEMBERS_URL, {"chat_id": shared_chat.id, "user_id": "bob"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert not ChatStore.is_member(shared_chat.id, "bob")

    def test_detach_missing_membership(self, shared_chat, carol, alice_client):
        response = alice_client.delete(
            MEMBERS_URL, {"chat_id": shared_chat.id, "user_id": "carol"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "MEMBERSHIP_MISSING"


# =============================================================================
# Pairs
# =============================================================================


class TestChatPair:
    def test_deletes_chat_between_pair(self, shared_chat, alice_client):
        response = alice_client.delete(pair_url("bob"))

        assert response.status_code == status.HTTP_200_OK
        assert not Chat.objects.filter(pk=shared_chat.id).exists()

    def test_repeated_teardown_succeeds(self, shared_chat, alice_client):
        """
        Pair teardown means "make sure no chat exists".

        Why it matters: Callers retry it freely when a relationship ends.
        """
        alice_client.delete(pair_url("bob"))

        response = alice_client.delete(pair_url("bob"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"success": True}

    def test_leaves_other_pairs(self, shared_chat, carol, alice, alice_client):
        other = ChatFactory(members=[alice, carol])

        alice_client.delete(pair_url("bob"))

        assert Chat.objects.filter(pk=other.pk).exists()

    def test_pair_with_self_deletes_nothing(self, shared_chat, alice, carol, alice_client):
        ChatFactory(members=[alice, carol])
        before = Chat.objects.count()

        first = alice_client.delete(pair_url("alice"))
        second = alice_client.delete(pair_url("alice"))

        assert first.status_code == status.HTTP_200_OK
        assert second.status_code == status.HTTP_200_OK
        assert Chat.objects.count() == before
        assert Chat.objects.filter(pk=shared_chat.id).exists()
