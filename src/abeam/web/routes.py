"""Status route handlers for the AB-EAM web API."""

from __future__ import annotations

import logging
import sqlite3
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from abeam import __version__
from abeam.errors import DatabaseError
from abeam.web.models import ApiInfoResponse, HealthResponse, RootResponse

logger = logging.getLogger(__name__)

health_router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@health_router.get("/health", response_model=HealthResponse)
def health(request: Request) -> JSONResponse:
    """Check database connectivity and return health status."""
    state = request.app.state
    uptime = round(time.monotonic() - state.started_at, 3)
    try:
        state.database.get("SELECT 1")
        row = state.database.get("SELECT MAX(version) AS version FROM migrations")
    except (sqlite3.Error, DatabaseError) as exc:
        logger.warning("Health check failed: %s", exc)
        body = HealthResponse(
            status="UNHEALTHY",
            timestamp=_now(),
            uptime=uptime,
            environment=state.config.app_env,
            database="error",
            detail=str(exc),
        )
        return JSONResponse(body.model_dump(), status_code=503)

    body = HealthResponse(
        status="OK",
        timestamp=_now(),
        uptime=uptime,
        environment=state.config.app_env,
        database="ok",
        schema_version=row["version"] or 0,
    )
    return JSONResponse(body.model_dump())


@health_router.get("/api", response_model=ApiInfoResponse)
def api_info() -> ApiInfoResponse:
    return ApiInfoResponse(
        message="AB-EAM API is running",
        version=__version__,
        timestamp=_now(),
    )


@health_router.get("/", response_model=RootResponse)
def root() -> RootResponse:
    return RootResponse(
        message="AB-EAM Backend API is running!",
        version=__version__,
        endpoints={"health": "/health", "api": "/api", "docs": "/api/docs"},
    )
