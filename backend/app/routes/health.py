"""
Inkwell Backend - Service Banner & Health Check
=================================================

What:  GET / (service banner) and GET /health (dependency probe).
Who:   Load balancers, Docker health checks, humans checking a deployment.

Status levels:
    - healthy:   store backend reachable (HTTP 200)
    - degraded:  database down; echo and health still answer, processing
                 falls back to best-effort accounting (HTTP 200)

With STORE_BACKEND=memory there is no database to probe and the status is
always healthy.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy import text

from app import __version__
from app.config import Settings
from app.dependencies import get_settings, get_stores
from app.repositories.base import Stores
from app.schemas.common import HealthResponse, RootResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Module-level so uptime spans app instances in one process
_start_time = time.time()


@router.get("/", response_model=RootResponse, summary="Service banner")
async def root(config: Settings = Depends(get_settings)) -> RootResponse:
    return RootResponse(
        message="Inkwell API is running",
        version=__version__,
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        environment=config.environment,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    request: Request, stores: Stores = Depends(get_stores)
) -> HealthResponse:
    """
    Runs SELECT 1 against the database when the SQL stores are active.
    """
    db_status = "not_used"
    overall = "healthy"

    engine = request.app.state.engine
    if stores.backend == "sql" and engine is not None:
        try:
            async with engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            db_status = "connected"
        except Exception as e:
            db_status = "disconnected"
            overall = "degraded"
            logger.warning("Health check: database unreachable: %s", e)

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        store_backend=stores.backend,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
