"""
Test collection hooks shared by every app.

Tests are auto-marked by filename so CI can run the fast unit suite
separately: ``pytest -m unit`` / ``pytest -m integration``.
"""

import pytest


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_views.py, test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_serializers.py, test_helpers.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    integration_patterns = [
        "test_views.py",
        "test_services.py",
        "test_tasks.py",
        "test_store.py",
        "test_authorization.py",
        "test_user_sync.py",
        "test_consumers.py",
        "test_circuit_breaker.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_serializers.py",
        "test_types.py",
        "test_helpers.py",
        "test_exceptions.py",
        "test_exception_handlers.py",
        "test_clients.py",
        "test_notifications.py",
    ]

    for item in items:
        # Skip if test already has unit/integration marker
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            # Default: integration (safe for Django where most tests hit DB)
            item.add_marker(pytest.mark.integration)
