"""
Infrastructure endpoints that sit outside the business domain.
"""

import logging

from django.conf import settings
from django.db import DatabaseError, connection
from django.http import JsonResponse

logger = logging.getLogger(__name__)


def health_check(request):
    """
    Liveness/readiness probe for load balancers and orchestrators.

    Reports database connectivity and whether the payment provider is
    configured. Only the database decides the HTTP status: a missing Stripe
    key degrades checkout but the service can still serve reads.

    HTTP Status Codes:
        200: Database reachable
        503: Database unreachable

    Example Response:
        {
            "status": "healthy",
            "database": "connected",
            "payments": "configured"
        }
    """
    health_status = {
        "status": "healthy",
        "database": "unknown",
        "payments": "configured",
    }
    is_healthy = True

    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
            cursor.fetchone()
        health_status["database"] = "connected"
    except DatabaseError:
        logger.exception("Health check could not reach the database")
        health_status["database"] = "disconnected"
        health_status["status"] = "unhealthy"
        is_healthy = False

    if not settings.STRIPE_SECRET_KEY or not settings.STRIPE_WEBHOOK_SECRET:
        health_status["payments"] = "unconfigured"

    return JsonResponse(health_status, status=200 if is_healthy else 503)
