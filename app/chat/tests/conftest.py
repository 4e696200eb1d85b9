"""
Test configuration and fixtures for chat tests.

This module provides:
- Cached users (alice, bob, carol) and a chat both alice and bob belong to
- Fakes for the remote collaborators, patched where the services look
  them up
- API client helpers authenticated with real access tokens

Usage:
    def test_example(shared_chat, alice_client):
        response = alice_client.get(f"/api/v1/chat/chats/{shared_chat.id}/")
        assert response.status_code == 200
"""

from types import SimpleNamespace

import pytest
from django.core.cache import cache
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from chat.tests.factories import ChatFactory, ChatUserFactory
from chat.types import RemoteUser, Room

# =============================================================================
# Global
# =============================================================================


@pytest.fixture(autouse=True)
def _clear_cache():
    """Reset circuit-breaker state between tests."""
    cache.clear()
    yield
    cache.clear()


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    return ChatUserFactory(user_id="alice", name="Alice")


@pytest.fixture
def bob(db):
    return ChatUserFactory(user_id="bob", name="Bob")


@pytest.fixture
def carol(db):
    """A cached user who is not a member of any fixture chat."""
    return ChatUserFactory(user_id="carol", name="Carol")


# =============================================================================
# Chat Fixtures
# =============================================================================


@pytest.fixture
def shared_chat(db, alice, bob):
    """A chat with alice (joined first) and bob."""
    return ChatFactory(title="Alice and Bob", room_id=7, members=[alice, bob])


@pytest.fixture
def empty_chat(db):
    return ChatFactory(title="Nobody here", room_id=7)


# =============================================================================
# Collaborator Fakes
# =============================================================================


class FakeDirectory:
    """In-memory user directory; records every lookup."""

    def __init__(self, users=None):
        self.users = dict(users or {})
        self.calls = []

    def get_user(self, user_id):
        self.calls.append(user_id)
        return self.users.get(user_id)


@pytest.fixture
def directory(mocker):
    fake = FakeDirectory()
    mocker.patch("chat.user_sync.get_user_directory_client", return_value=fake)
    return fake


@pytest.fixture
def rooms(mocker):
    client = mocker.Mock()
    client.get_room.side_effect = lambda room_id: Room(id=room_id, title=f"Room {room_id}")
    mocker.patch("chat.services.get_room_client", return_value=client)
    return client


@pytest.fixture
def messages(mocker):
    client = mocker.Mock()
    client.read_messages.return_value = None
    mocker.patch("chat.services.get_message_store_client", return_value=client)
    return client


@pytest.fixture
def ties(mocker):
    client = mocker.Mock()
    client.detach_partner.return_value = None
    mocker.patch("chat.services.get_ties_client", return_value=client)
    return client


@pytest.fixture
def remote_user():
    """Factory for directory records."""

    def make(user_id, name="", avatar=None):
        return RemoteUser(id=user_id, name=name, avatar=avatar)

    return make


# =============================================================================
# API Client Fixtures
# =============================================================================


def access_token_for(user_id: str) -> str:
    """Access token as the external auth service would issue it."""
    return str(AccessToken.for_user(SimpleNamespace(id=user_id)))


def client_for(user_id: str) -> APIClient:
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access_token_for(user_id)}")
    return client


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def alice_client(alice):
    return client_for("alice")


@pytest.fixture
def bob_client(bob):
    return client_for("bob")


@pytest.fixture
def carol_client(carol):
    return client_for("carol")
