"""
Associates Backend — Health Check Routes
=========================================

What:  GET / (liveness banner) and GET /health (dependency status).
Who:   Docker health checks, the hosting platform's probes, and humans with curl.

Status levels:
    - healthy:   database reachable and media host configured (HTTP 200)
    - degraded:  database reachable, media host not configured (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy import text

from associates_api import __version__
from associates_api.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", response_class=PlainTextResponse, summary="Liveness banner")
async def root() -> str:
    return "server running"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request, response: Response) -> HealthResponse:
    """
    Probe the database with SELECT 1 and report whether the media host has
    credentials. The media host itself is not called; a probe every few
    seconds would count against its API quota.
    """
    db_status = "connected"
    overall = "healthy"

    try:
        async with request.app.state.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    media_status = "configured" if request.app.state.media_client.configured else "not_configured"
    if media_status != "configured" and overall == "healthy":
        overall = "degraded"

    if overall == "unhealthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        media_host=media_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
