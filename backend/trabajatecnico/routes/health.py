"""
TrabajaTecnico Backend — Health Check Route
============================================

What:  GET /api/health for container health checks and load balancers.
How:   Runs ``SELECT 1`` against the database and reports whether mail
       credentials are configured. The SMTP server is not contacted; an
       unreachable one only degrades side effects, never the API.

Status levels:
    healthy:   database reachable (HTTP 200)
    unhealthy: database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Response
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from trabajatecnico import __version__
from trabajatecnico.config import settings
from trabajatecnico.database import engine
from trabajatecnico.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Health"])

_start_time = time.time()


@router.get("/health", response_model=HealthResponse, summary="Service health check")
async def health_check(response: Response) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", e)

    return HealthResponse(
        status=overall,
        version=__version__,
        environment=settings.environment,
        database=db_status,
        email_configured=settings.email_configured,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
