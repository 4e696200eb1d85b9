"""
Core Application - Infrastructure & Base Classes

Generic, reusable building blocks with no domain-specific logic.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer (logging, transaction scopes)
    - ServiceResult: Standard result wrapper
    - TransactionScope: Explicit handle to an open transaction

Exceptions (import from core.exceptions):
    - BaseApplicationError, ValidationError, NotFoundError,
      PermissionDeniedError, ConflictError, ExternalServiceError

Resilience (import from core.circuit_breaker):
    - CircuitBreaker, CircuitOpenError

Helpers (import from core.helpers):
    - page_offset, build_page_meta

Note:
    Models are NOT imported here to avoid AppRegistryNotReady errors.
    Import them directly from their modules.
"""

from .exceptions import (
    BaseApplicationError,
    ConflictError,
    ExternalServiceError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .helpers import build_page_meta, page_offset
from .services import BaseService, ServiceResult, TransactionScope, TransactionScopeError

__all__ = [
    "BaseService",
    "ServiceResult",
    "TransactionScope",
    "TransactionScopeError",
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
    "ExternalServiceError",
    "build_page_meta",
    "page_offset",
]
