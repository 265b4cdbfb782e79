"""
Murmur Backend — Health Check Route
====================================

What:  Health check endpoint for monitoring and load balancer probes.
Why:   Load balancers use this to route away from instances that cannot reach
       their database.
How:   Runs `SELECT 1` through the Database handle opened by the lifespan.
When:  Periodically (e.g., every 30 seconds by Docker, every 10 seconds by LB).

Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable or not yet opened (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request, Response, status

from murmur import __version__
from murmur.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    database = getattr(request.app.state, "database", None)
    db_status = "disconnected"

    if database is not None and await database.ping():
        db_status = "connected"
    else:
        logger.warning("Health check: database unreachable")

    overall = "healthy" if db_status == "connected" else "unhealthy"
    if overall == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
