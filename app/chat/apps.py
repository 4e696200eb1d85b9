"""
Chat application configuration.

This app provides the chat lifecycle:
- Chats bound to external rooms, with globally unique titles
- Memberships backed by a local cache of directory users
- Read notifications over WebSockets
- Pairwise teardown when a relationship ends
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """Configuration for the chat application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"
