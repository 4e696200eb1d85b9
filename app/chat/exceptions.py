"""
Error kinds raised by the chat lifecycle.

Each kind has a stable ``error_code`` and inherits its HTTP status from
the core hierarchy, so the DRF exception handler can map it without
knowing about chats.

Hierarchy:
    NotFoundError
    ├── ChatNotFoundError - chat does not exist (or a list page is empty)
    ├── UserNotFoundError - user directory / local cache has no such identity
    └── RoomNotFoundError - referenced room does not exist
    ConflictError
    ├── ChatAlreadyExistsError - title already taken
    └── MembershipAlreadyExistsError - duplicate attach
    PermissionDeniedError
    ├── MembershipMissingError - caller or target is not a member
    └── AccessDeniedError - no requester identity supplied
    ExternalServiceError
    └── CollaboratorUnavailableError - remote call failed or circuit open
"""

from core.exceptions import (
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
)


class ChatNotFoundError(NotFoundError):
    default_error_code = "CHAT_NOT_FOUND"
    default_message = "Chat not found"


class ChatAlreadyExistsError(ConflictError):
    default_error_code = "CHAT_ALREADY_EXISTS"
    default_message = "A chat with this title already exists"


class MembershipMissingError(PermissionDeniedError):
    default_error_code = "MEMBERSHIP_MISSING"
    default_message = "User is not a member of this chat"


class MembershipAlreadyExistsError(ConflictError):
    default_error_code = "MEMBERSHIP_ALREADY_EXISTS"
    default_message = "User is already a member of this chat"


class UserNotFoundError(NotFoundError):
    default_error_code = "USER_NOT_FOUND"
    default_message = "User not found"


class RoomNotFoundError(NotFoundError):
    default_error_code = "ROOM_NOT_FOUND"
    default_message = "Room not found"


class AccessDeniedError(PermissionDeniedError):
    default_error_code = "ACCESS_DENIED"
    default_message = "Access denied"


class CollaboratorUnavailableError(ExternalServiceError):
    """
    A remote collaborator could not answer.

    ``details["collaborator"]`` names the service; the remote body is
    never included.
    """

    default_error_code = "COLLABORATOR_UNAVAILABLE"
    default_message = "A dependent service is unavailable"
