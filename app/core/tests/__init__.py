"""Tests for core infrastructure: services, errors, circuit breaker, helpers."""
