"""Health check routes."""

import logging
import time

from fastapi import APIRouter
from sqlalchemy import text

from app.core.config import get_settings
from app.core.database import get_engine
from app.core.metrics import (
    strategy_engine_db_query_failures_total,
    strategy_engine_db_query_latency_seconds,
)
from app.schemas.v1.health import HealthResponse, ReadyResponse

router = APIRouter(tags=["health"])
logger = logging.getLogger(__name__)


@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Basic health check."""
    settings = get_settings()
    return HealthResponse(status="ok", service=settings.app.name, version=settings.app.version)


@router.get("/health/ready", response_model=ReadyResponse)
async def readiness_check():
    """Readiness check: the case database must answer a trivial query."""
    database_ok = False
    try:
        engine = get_engine()
        started = time.perf_counter()
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        strategy_engine_db_query_latency_seconds.labels(query_name="health_ready_db_check").observe(
            time.perf_counter() - started
        )
        database_ok = True
    except Exception as exc:
        strategy_engine_db_query_failures_total.labels(query_name="health_ready_db_check").inc()
        logger.exception(
            "Health readiness DB check failed",
            extra={"route": "/api/v1/health/ready", "dependency": "database", "error": str(exc)},
        )

    return ReadyResponse(
        status="ready" if database_ok else "degraded",
        database=database_ok,
        dependencies={"database": database_ok},
    )


@router.get("/health/live", response_model=HealthResponse)
async def liveness_check():
    """Liveness check."""
    return HealthResponse(status="alive")
