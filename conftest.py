"""
Root pytest configuration for the Django project.

Sets environment defaults so settings load without a .env file, then
switches the backing services to in-process versions: SQLite for the
database, local memory for the cache (circuit-breaker state) and the
in-memory channel layer for real-time events.

App-specific fixtures are defined in each app's tests/conftest.py.
"""

import os

import django

# Must happen before settings are imported
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")
os.environ.setdefault("SECRET_KEY", "test-secret-key-not-for-production-use-0123456789")
os.environ.setdefault("DATABASE_URL", "sqlite:///chat_test.sqlite3")
os.environ.setdefault("DEBUG", "False")
os.environ.setdefault("SECURE_SSL_REDIRECT", "False")


def pytest_configure():
    """Configure Django settings before tests run."""
    from django.conf import settings

    settings.CACHES = {
        "default": {
            "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
            "LOCATION": "chat-tests",
        }
    }
    settings.CHANNEL_LAYERS = {
        "default": {"BACKEND": "channels.layers.InMemoryChannelLayer"},
    }

    # Tasks run inline; .delay() never needs a broker
    settings.CELERY_TASK_ALWAYS_EAGER = True
    settings.CELERY_TASK_EAGER_PROPAGATES = False

    # Disable throttling during tests to prevent rate limit failures
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_CLASSES"] = []
    settings.REST_FRAMEWORK["DEFAULT_THROTTLE_RATES"] = {}

    django.setup()
