"""
DRF exception handler for application errors.

Maps every core.exceptions.BaseApplicationError onto its ``http_status``
and renders ``to_dict()`` as the body. Anything else is left to DRF's
default handler, which returns None for non-API exceptions so Django's
500 handling applies.

Configured in settings:
    REST_FRAMEWORK = {
        "EXCEPTION_HANDLER": "core.exception_handlers.api_exception_handler",
    }
"""

from __future__ import annotations

import logging

from rest_framework.response import Response
from rest_framework.views import exception_handler

from core.exceptions import BaseApplicationError

logger = logging.getLogger(__name__)


def api_exception_handler(exc, context):
    """Render application errors with their stable error codes."""
    if isinstance(exc, BaseApplicationError):
        view = context.get("view")
        logger.info(
            f"{exc.error_code} raised by {view.__class__.__name__ if view else 'unknown view'}",
            extra={"error_code": exc.error_code, "status": exc.http_status},
        )
        return Response(exc.to_dict(), status=exc.http_status)

    return exception_handler(exc, context)
