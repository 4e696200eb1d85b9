"""
Celery application for the chat service.

The worker runs the post-commit reconciliation tasks of the chat
lifecycle (see chat/tasks.py), currently the retried partner tie detach
that follows a chat deletion.

Redis is both the message broker and result backend. Tasks are
auto-discovered from the installed Django apps.

Usage:
    celery -A config worker -l info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
