"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the application
- Machine-readable error codes for client handling
- A stable HTTP status per error kind for the API boundary

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Input validation failures
    ├── NotFoundError - Resource not found
    ├── PermissionDeniedError - Authorization failures
    ├── ConflictError - State conflicts (duplicates, concurrent modifications)
    └── ExternalServiceError - Remote collaborator failures

Usage:
    from core.exceptions import NotFoundError

    raise NotFoundError("Chat not found", error_code="CHAT_NOT_FOUND")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=e.http_status)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
    core.exception_handlers maps them onto HTTP responses.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, collaborator name, etc.)
        http_status: Status used when the error reaches the API boundary
    """

    default_error_code: str = "APPLICATION_ERROR"
    default_message: str = "Application error"
    http_status: int = 400

    def __init__(
        self,
        message: str | None = None,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message or self.default_message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Example:
            {
                "error": "Chat not found",
                "error_code": "CHAT_NOT_FOUND",
                "details": {"chat_id": 12}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails in the service layer.

    For request payloads, use DRF serializer validation instead.
    """

    default_error_code: str = "VALIDATION_ERROR"
    default_message: str = "Validation failed"
    http_status: int = 400


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource does not exist."""

    default_error_code: str = "NOT_FOUND"
    default_message: str = "Resource not found"
    http_status: int = 404


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the caller may not perform an operation.

    Note:
        For authentication failures (missing/invalid token), DRF's
        NotAuthenticated / AuthenticationFailed apply. This is for
        authorization decisions made by services.
    """

    default_error_code: str = "PERMISSION_DENIED"
    default_message: str = "Permission denied"
    http_status: int = 403


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for duplicate entries, including unique constraint violations
    caught from the database.
    """

    default_error_code: str = "CONFLICT"
    default_message: str = "Conflict with current state"
    http_status: int = 409


class ExternalServiceError(BaseApplicationError):
    """
    Raised when a remote collaborator call fails.

    Note:
        Log the original error for debugging but never put remote
        response bodies into the message or details.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"
    default_message: str = "External service unavailable"
    http_status: int = 503
