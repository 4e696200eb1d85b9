"""
Constants and configuration for the chat module.

Import example:
    from chat.constants import CHAT_CONFIG
"""

from typing import Final


class CHAT_CONFIG:
    """Configuration for chat operations."""

    # Listing (1-based pages)
    DEFAULT_PAGE: Final[int] = 1
    DEFAULT_LIMIT: Final[int] = 10
    MAX_LIMIT: Final[int] = 100

    # Field limits
    TITLE_MAX_LENGTH: Final[int] = 255
    USER_ID_MAX_LENGTH: Final[int] = 64
    USER_NAME_MAX_LENGTH: Final[int] = 255
    AVATAR_MAX_LENGTH: Final[int] = 500

    # Real-time channel group for a chat: f"{GROUP_PREFIX}{chat_id}"
    GROUP_PREFIX: Final[str] = "chat_"


class TIES_RETRY_CONFIG:
    """Retry budget for post-commit relationship-graph detach."""

    MAX_RETRIES: Final[int] = 5
    BACKOFF_MAX_SECONDS: Final[int] = 300
