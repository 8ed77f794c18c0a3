"""
Core views providing infrastructure endpoints.

Health endpoints for container orchestration and load balancers:
    /health/        overall status with component details
    /health/live/   process liveness (never touches the database)
    /health/ready/  readiness: the database answers queries
"""

import logging

from django.db import connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def _database_connected() -> bool:
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
    except Exception:
        logger.warning("Health check: database unreachable", exc_info=True)
        return False
    return True


def health_check(request):
    """
    Health check endpoint for monitoring.

    Returns:
        200 {"status": "healthy", "service": ..., "database": "connected"}
        503 with "unhealthy" / "disconnected" when the database is down
    """
    is_healthy = _database_connected()
    health_status = {
        "status": "healthy" if is_healthy else "unhealthy",
        "service": "coverage-marketplace",
        "database": "connected" if is_healthy else "disconnected",
    }
    return JsonResponse(health_status, status=200 if is_healthy else 503)


def liveness_check(request):
    """Liveness probe: the process is up and serving requests."""
    return JsonResponse({"ok": True})


def readiness_check(request):
    """Readiness probe: 503 until the database accepts queries."""
    if _database_connected():
        return JsonResponse({"ok": True, "database": "connected"})
    return JsonResponse({"ok": False, "database": "disconnected"}, status=503)
