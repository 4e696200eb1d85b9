"""
HTTP clients for the remote collaborators of the chat lifecycle.

Clients:
    RoomServiceClient: Room registry (existence check at chat creation)
    UserDirectoryClient: Remote user directory (read-only)
    TiesServiceClient: Relationship-graph service (partner detach)
    MessageStoreClient: Message store (mark a chat read for a user)

Every call goes through a named CircuitBreaker. Transport errors,
timeouts, 5xx answers, unexpected 4xx answers and open circuits all
surface as CollaboratorUnavailableError with the collaborator name in
``details``; remote bodies never leak into the error. Only transport
errors and 5xx answers count as circuit failures. Ids are percent-encoded
as single path segments. The ties service rejecting the caller token is
AccessDeniedError, not unavailability.

Factories read the base URLs, token and thresholds from settings and
return one shared client per collaborator:

    from chat.clients import get_room_client

    room = get_room_client().get_room(7)

Tests build clients directly with an ``httpx.Client`` backed by
``httpx.MockTransport``.
"""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from django.conf import settings

from chat.constants import CHAT_CONFIG
from chat.exceptions import (
    AccessDeniedError,
    ChatNotFoundError,
    CollaboratorUnavailableError,
    RoomNotFoundError,
)
from chat.types import RemoteUser, Room
from core.circuit_breaker import CircuitBreaker, CircuitOpenError

if TYPE_CHECKING:
    from typing import Any

logger = logging.getLogger(__name__)


def _segment(value: Any) -> str:
    """One URL path segment; "/", "?", "#" and ".." cannot escape it."""
    segment = quote(str(value), safe="")
    if segment in (".", ".."):
        # Dot segments would be collapsed by URL normalization
        return segment.replace(".", "%2E")
    return segment


class _RemoteServerError(Exception):
    """A 5xx answer, raised inside the circuit guard so it counts as a failure."""

    def __init__(self, status_code: int):
        self.status_code = status_code
        super().__init__(f"HTTP {status_code}")


class ServiceClient:
    """
    Base class for collaborator clients.

    Attributes:
        collaborator: Name used for the circuit and in error details
        base_url: Service root, without trailing slash
        token: Bearer token sent when a call does not supply its own
    """

    collaborator: str = "service"

    def __init__(
        self,
        base_url: str,
        token: str = "",
        timeout: float = 5.0,
        http_client: httpx.Client | None = None,
        circuit: CircuitBreaker | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._http = http_client or httpx.Client(timeout=timeout)
        self.circuit = circuit or CircuitBreaker(self.collaborator)

    def _unavailable(self, reason: str, **details: Any) -> CollaboratorUnavailableError:
        return CollaboratorUnavailableError(
            f"{self.collaborator} is unavailable",
            details={"collaborator": self.collaborator, "reason": reason, **details},
        )

    def _request(
        self,
        method: str,
        path: str,
        *,
        token: str | None = None,
        json: dict | None = None,
    ) -> httpx.Response:
        """
        Send one request and return any non-5xx response.

        Raises:
            CollaboratorUnavailableError: On transport failure, timeout,
                5xx answer or open circuit
        """
        bearer = token if token is not None else self.token
        headers = {"Accept": "application/json"}
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"

        try:
            with self.circuit.guard():
                response = self._http.request(
                    method, f"{self.base_url}{path}", headers=headers, json=json
                )
                if response.status_code >= 500:
                    raise _RemoteServerError(response.status_code)
        except CircuitOpenError:
            logger.warning(
                f"{self.collaborator} circuit open, call refused",
                extra={"collaborator": self.collaborator, "path": path},
            )
            raise self._unavailable("circuit_open") from None
        except _RemoteServerError as e:
            logger.warning(
                f"{self.collaborator} answered {e.status_code}",
                extra={"collaborator": self.collaborator, "path": path},
            )
            raise self._unavailable("server_error", status=e.status_code) from None
        except httpx.HTTPError as e:
            logger.warning(
                f"{self.collaborator} request failed: {e.__class__.__name__}",
                extra={"collaborator": self.collaborator, "path": path},
            )
            raise self._unavailable("transport_error") from None
        return response

    def _unexpected(self, response: httpx.Response) -> CollaboratorUnavailableError:
        logger.warning(
            f"{self.collaborator} answered unexpected {response.status_code}",
            extra={"collaborator": self.collaborator},
        )
        return self._unavailable("unexpected_status", status=response.status_code)

    def _data(self, response: httpx.Response) -> dict:
        """Body of a 2xx answer, unwrapped from a ``{"data": ...}`` envelope."""
        try:
            payload = response.json()
        except ValueError:
            raise self._unavailable("invalid_body") from None
        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            return payload["data"]
        if isinstance(payload, dict):
            return payload
        raise self._unavailable("invalid_body")


class RoomServiceClient(ServiceClient):
    collaborator = "room-service"

    def get_room(self, room_id: int) -> Room:
        """
        Raises:
            RoomNotFoundError: The registry has no such room
            CollaboratorUnavailableError: The registry could not answer
        """
        response = self._request("GET", f"/rooms/{_segment(room_id)}")
        if response.status_code == httpx.codes.NOT_FOUND:
            raise RoomNotFoundError(details={"room_id": room_id})
        if not response.is_success:
            raise self._unexpected(response)

        data = self._data(response)
        return Room(id=int(data.get("id", room_id)), title=data.get("title") or "")


class UserDirectoryClient(ServiceClient):
    collaborator = "user-directory"

    def get_user(self, user_id: str) -> RemoteUser | None:
        """
        Look a user up in the directory. Returns None when it has no record.

        Raises:
            CollaboratorUnavailableError: The directory could not answer
        """
        response = self._request("GET", f"/users/{_segment(user_id)}")
        if response.status_code == httpx.codes.NOT_FOUND:
            return None
        if not response.is_success:
            raise self._unexpected(response)

        data = self._data(response)
        if not data.get("id"):
            return None

        # Fit the cache columns; a cut URL is useless, so drop it instead
        avatar = str(data.get("avatar") or "") or None
        if avatar and len(avatar) > CHAT_CONFIG.AVATAR_MAX_LENGTH:
            logger.warning(
                "Directory avatar URL too long, not cached",
                extra={"user_id": user_id, "length": len(avatar)},
            )
            avatar = None
        return RemoteUser(
            id=str(data["id"]),
            name=str(data.get("name") or "")[: CHAT_CONFIG.USER_NAME_MAX_LENGTH],
            avatar=avatar,
        )


class TiesServiceClient(ServiceClient):
    collaborator = "ties-service"

    def detach_partner(self, auth_token: str | None, partner_id: str) -> None:
        """
        Sever the partner tie between the token's owner and partner_id.

        A 404 means the tie is already gone and counts as success.

        Raises:
            AccessDeniedError: The service rejected the caller's token
                (401/403); repeating the call cannot succeed
            CollaboratorUnavailableError: The service could not answer
        """
        response = self._request(
            "DELETE", f"/ties/partners/{_segment(partner_id)}", token=auth_token or ""
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            logger.debug(
                "Partner tie already detached",
                extra={"partner_id": partner_id},
            )
            return
        if response.status_code in (httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN):
            logger.warning(
                f"{self.collaborator} rejected the caller token ({response.status_code})",
                extra={"collaborator": self.collaborator, "partner_id": partner_id},
            )
            raise AccessDeniedError(
                "Caller token rejected by the ties service",
                details={"collaborator": self.collaborator, "status": response.status_code},
            )
        if not response.is_success:
            raise self._unexpected(response)


class MessageStoreClient(ServiceClient):
    collaborator = "message-store"

    def read_messages(self, chat_id: int, user_id: str) -> None:
        """
        Mark every message in the chat as read for user_id. Idempotent.

        Raises:
            ChatNotFoundError: The message store has no such chat
            CollaboratorUnavailableError: The store could not answer
        """
        response = self._request(
            "POST", f"/chats/{_segment(chat_id)}/read", json={"user_id": user_id}
        )
        if response.status_code == httpx.codes.NOT_FOUND:
            raise ChatNotFoundError(details={"chat_id": chat_id})
        if not response.is_success:
            raise self._unexpected(response)


def _build(client_class: type[ServiceClient], base_url: str) -> ServiceClient:
    return client_class(
        base_url=base_url,
        token=settings.CHAT_SERVICE_TOKEN,
        timeout=settings.REMOTE_SERVICE_TIMEOUT_SECONDS,
        circuit=CircuitBreaker(
            client_class.collaborator,
            failure_threshold=settings.REMOTE_CIRCUIT_FAILURE_THRESHOLD,
            recovery_timeout=settings.REMOTE_CIRCUIT_RECOVERY_TIMEOUT,
        ),
    )


@lru_cache(maxsize=None)
def get_room_client() -> RoomServiceClient:
    return _build(RoomServiceClient, settings.ROOM_SERVICE_URL)


@lru_cache(maxsize=None)
def get_user_directory_client() -> UserDirectoryClient:
    return _build(UserDirectoryClient, settings.USER_DIRECTORY_URL)


@lru_cache(maxsize=None)
def get_ties_client() -> TiesServiceClient:
    return _build(TiesServiceClient, settings.TIES_SERVICE_URL)


@lru_cache(maxsize=None)
def get_message_store_client() -> MessageStoreClient:
    return _build(MessageStoreClient, settings.MESSAGE_SERVICE_URL)
