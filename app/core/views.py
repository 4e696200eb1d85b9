"""
Core views providing infrastructure endpoints.
"""

import logging

from django.core.cache import cache
from django.db import connection
from django.db.utils import DatabaseError
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Liveness/readiness probe.

    The database is required: the service cannot honour any chat
    operation without it. The cache only holds circuit-breaker state,
    so losing it degrades the report without failing the probe.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable
    """
    report = {"status": "healthy", "database": "connected", "cache": "connected"}

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except DatabaseError:
        logger.exception("Health check: database unreachable")
        report["database"] = "disconnected"
        report["status"] = "unhealthy"

    try:
        cache.set("health_check", "ok", timeout=1)
        if cache.get("health_check") != "ok":
            report["cache"] = "disconnected"
    except Exception:
        logger.warning("Health check: cache unreachable", exc_info=True)
        report["cache"] = "disconnected"

    return JsonResponse(report, status=200 if report["status"] == "healthy" else 503)
