"""
Circuit breaker for remote collaborator calls.

State is kept in Django's cache backend (Redis in deployment) so every
web worker sees the same circuit for a given collaborator.

States:
    - CLOSED: Normal operation, calls pass through
    - OPEN: Collaborator is failing, calls fail fast
    - HALF_OPEN: Recovery probe, a limited number of calls pass through

Usage:
    from core.circuit_breaker import CircuitBreaker

    rooms_circuit = CircuitBreaker("room-service", failure_threshold=5)

    with rooms_circuit.guard():
        response = client.get(f"/rooms/{room_id}")

Design Notes:
    - Only failures that indicate an unhealthy collaborator should be
      recorded. Callers raise inside ``guard()`` for those and handle
      expected answers (404 and friends) without raising.
    - If the cache itself is unavailable the breaker stays closed.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

from django.core.cache import cache

from core.exceptions import ExternalServiceError

if TYPE_CHECKING:
    from collections.abc import Generator

logger = logging.getLogger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


class CircuitOpenError(ExternalServiceError):
    """
    Raised when a call is refused because the circuit is open.

    The collaborator was not contacted.
    """

    default_error_code: str = "CIRCUIT_OPEN"
    default_message: str = "Service temporarily unavailable"


@dataclass(frozen=True)
class CircuitBreakerConfig:
    """Thresholds for one circuit."""

    failure_threshold: int = 5
    recovery_timeout: int = 30
    half_open_max_calls: int = 1
    cache_ttl: int = 3600


class CircuitBreaker:
    """
    Cache-backed circuit breaker keyed by collaborator name.

    Attributes:
        name: Collaborator identifier, part of every cache key
        config: Thresholds
    """

    def __init__(
        self,
        name: str,
        failure_threshold: int = 5,
        recovery_timeout: int = 30,
        half_open_max_calls: int = 1,
    ):
        self.name = name
        self.config = CircuitBreakerConfig(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            half_open_max_calls=half_open_max_calls,
        )
        self._state_key = f"circuit:{name}:state"
        self._failures_key = f"circuit:{name}:failures"
        self._opened_at_key = f"circuit:{name}:opened_at"
        self._probes_key = f"circuit:{name}:probes"

    @property
    def state(self) -> CircuitState:
        try:
            return CircuitState(cache.get(self._state_key, CircuitState.CLOSED.value))
        except ValueError:
            return CircuitState.CLOSED

    def allow_request(self) -> bool:
        """
        Decide whether a call may go out now.

        An open circuit moves to half-open once the recovery timeout has
        elapsed; half-open admits ``half_open_max_calls`` probes.
        """
        try:
            state = self.state
            if state == CircuitState.CLOSED:
                return True

            if state == CircuitState.OPEN:
                opened_at = cache.get(self._opened_at_key)
                if opened_at is None or time.time() - opened_at < self.config.recovery_timeout:
                    return False
                self._set(self._state_key, CircuitState.HALF_OPEN.value)
                self._set(self._probes_key, 0)
                logger.info("Circuit half-open", extra={"circuit": self.name})

            probes = self._incr(self._probes_key)
            return probes <= self.config.half_open_max_calls
        except Exception as e:
            logger.warning(
                f"Circuit breaker cache error, allowing call: {e}",
                extra={"circuit": self.name},
            )
            return True

    def record_success(self) -> None:
        try:
            if self.state == CircuitState.HALF_OPEN:
                logger.info("Circuit closed after recovery", extra={"circuit": self.name})
            self._set(self._state_key, CircuitState.CLOSED.value)
            self._set(self._failures_key, 0)
        except Exception as e:
            logger.warning(
                f"Circuit breaker failed to record success: {e}",
                extra={"circuit": self.name},
            )

    def record_failure(self) -> None:
        try:
            if self.state == CircuitState.HALF_OPEN:
                self._open()
                logger.warning("Circuit reopened after failed probe", extra={"circuit": self.name})
                return

            failures = self._incr(self._failures_key)
            if failures >= self.config.failure_threshold:
                self._open()
                logger.warning(
                    f"Circuit opened after {failures} failures",
                    extra={"circuit": self.name, "failure_count": failures},
                )
        except Exception as e:
            logger.warning(
                f"Circuit breaker failed to record failure: {e}",
                extra={"circuit": self.name},
            )

    @contextmanager
    def guard(self) -> Generator[None, None, None]:
        """
        Wrap one remote call.

        Raises:
            CircuitOpenError: If the circuit refuses the call
        """
        if not self.allow_request():
            raise CircuitOpenError(details={"collaborator": self.name})

        try:
            yield
        except Exception:
            self.record_failure()
            raise
        self.record_success()

    def reset(self) -> None:
        """Force the circuit closed (admin and tests)."""
        cache.delete_many(
            [self._state_key, self._failures_key, self._opened_at_key, self._probes_key]
        )

    def get_status(self) -> dict:
        return {
            "name": self.name,
            "state": self.state.value,
            "failure_count": cache.get(self._failures_key, 0),
            "failure_threshold": self.config.failure_threshold,
        }

    def _open(self) -> None:
        self._set(self._state_key, CircuitState.OPEN.value)
        self._set(self._opened_at_key, time.time())

    def _set(self, key: str, value) -> None:
        cache.set(key, value, timeout=self.config.cache_ttl)

    def _incr(self, key: str) -> int:
        try:
            return cache.incr(key)
        except ValueError:
            # incr on a missing key
            cache.set(key, 1, timeout=self.config.cache_ttl)
            return 1

    def __repr__(self) -> str:
        return f"CircuitBreaker(name={self.name!r}, state={self.state.value})"
