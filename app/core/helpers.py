"""
Helper functions for common infrastructure operations.

Pure infrastructure utilities with no knowledge of domain concepts.

Usage:
    from core.helpers import page_offset, build_page_meta

    offset = page_offset(page=2, per_page=10)  # 10
    meta = build_page_meta(total=35, page=2, per_page=10, path="/api/v1/chat/chats/")
"""

from __future__ import annotations

import math


def page_offset(page: int, per_page: int) -> int:
    """Row offset of a 1-based page."""
    return (page - 1) * per_page


def build_page_meta(total: int, page: int, per_page: int, path: str) -> dict:
    """
    Calculate offset-pagination metadata.

    The page number is echoed back as requested (no clamping) and ``to``
    is the last position the page could hold, not the last row present.

    Args:
        total: Total number of items
        page: Current page number (1-indexed)
        per_page: Items per page
        path: Request path the page was served from

    Returns:
        Dict with pagination metadata

    Example:
        build_page_meta(total=35, page=2, per_page=10, path="/chats/")
        # {
        #     "current_page": 2,
        #     "last_page": 4,
        #     "per_page": 10,
        #     "from": 11,
        #     "to": 20,
        #     "total": 35,
        #     "path": "/chats/"
        # }
    """
    offset = page_offset(page, per_page)
    return {
        "current_page": page,
        "last_page": math.ceil(total / per_page) if per_page > 0 else 0,
        "per_page": per_page,
        "from": offset + 1,
        "to": offset + per_page,
        "total": total,
        "path": path,
    }
