"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for successful operations
- TransactionScope: Explicit handle to one open database transaction
- BaseService: Base class with logging and transaction helpers

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Failure Handling:
    Domain failures are raised as core.exceptions.BaseApplicationError
    subclasses. Raising inside ``BaseService.atomic()`` rolls back every
    local write made in that scope. Successful operations return a
    ServiceResult so callers get a uniform payload.

Usage:
    from core.services import BaseService, ServiceResult

    class ChatService(BaseService):
        @classmethod
        def rename(cls, chat_id: int, title: str) -> ServiceResult[None]:
            with cls.atomic() as scope:
                ChatStore.update(scope, chat_id, ChatPatch(title=title))
                scope.on_commit(lambda: cls.get_logger().info("renamed"))
            return ServiceResult.success(None)

Related:
    - core.exceptions: Error hierarchy raised by services
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import DEFAULT_DB_ALIAS, transaction

if TYPE_CHECKING:
    from collections.abc import Callable, Generator
    from typing import Any

# Generic type for ServiceResult data
T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None for plain acknowledgments)
        error: Error message if failed
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        # Acknowledgment
        return ServiceResult.success(None)

        # Entity payload
        return ServiceResult.success(view)

        # In a view
        return Response(result.to_response())
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T | None = None) -> ServiceResult[T]:
        """
        Create a successful result.

        Args:
            data: The result data, or None for an acknowledgment

        Returns:
            ServiceResult with success=True and data set
        """
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)

        Returns:
            ServiceResult with success=False and error details
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response format.

        Acknowledgments render as ``{"success": true}``; results carrying
        data add a ``data`` key.

        Returns:
            Dict with success status and data or error details
        """
        if self.success:
            if self.data is None:
                return {"success": True}
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class TransactionScopeError(RuntimeError):
    """Raised when a write is attempted outside an open TransactionScope."""


@dataclass
class TransactionScope:
    """
    Explicit handle to one open database transaction.

    Created only by BaseService.atomic(). Store operations that mutate
    state take the scope as an argument and call ``require_active()``
    before writing, so a write can never run in autocommit mode by
    accident.

    Attributes:
        using: Database alias the transaction is bound to
    """

    using: str = DEFAULT_DB_ALIAS
    _closed: bool = field(default=False, repr=False)

    @property
    def is_active(self) -> bool:
        """True while the owning atomic block is open."""
        if self._closed:
            return False
        return transaction.get_connection(self.using).in_atomic_block

    def require_active(self) -> None:
        """
        Guard for mutating operations.

        Raises:
            TransactionScopeError: If the scope was already released
        """
        if not self.is_active:
            raise TransactionScopeError(
                "Mutating store operations require an open transaction scope"
            )

    def on_commit(self, callback: Callable[[], Any]) -> None:
        """
        Run callback after the outermost transaction commits.

        Callbacks are discarded if the transaction rolls back.
        """
        transaction.on_commit(callback, using=self.using)

    def close(self) -> None:
        self._closed = True


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction scopes

    Design Notes:
        - Use @classmethod (no instance state)
        - Services should be stateless
        - Raise core.exceptions errors for failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls, using: str = DEFAULT_DB_ALIAS) -> Generator[TransactionScope, None, None]:
        """
        Open a database transaction and yield its scope handle.

        All database operations made through the scope are committed
        together when the block exits normally and rolled back when it
        raises. The scope is closed on every exit path.

        Args:
            using: Database alias

        Yields:
            TransactionScope bound to the open transaction

        Example:
            with cls.atomic() as scope:
                ChatStore.add_member(scope, chat_id, user_id)
        """
        scope = TransactionScope(using=using)
        try:
            with transaction.atomic(using=using):
                yield scope
        finally:
            scope.close()
