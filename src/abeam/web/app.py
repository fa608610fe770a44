"""FastAPI application factory for the AB-EAM web API."""

from __future__ import annotations

import logging
import time
import traceback
import uuid
from datetime import datetime, timezone

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from abeam import __version__
from abeam.config import Config
from abeam.storage.database import Database
from abeam.web.models import ErrorResponse
from abeam.web.routes import health_router

logger = logging.getLogger(__name__)

_SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Cross-Origin-Opener-Policy": "same-origin",
    "Cross-Origin-Resource-Policy": "same-origin",
    "X-DNS-Prefetch-Control": "off",
    "Strict-Transport-Security": "max-age=15552000; includeSubDomains",
}


def _error_body(request: Request, error: str, code: str, **extra) -> dict:
    return ErrorResponse(
        error=error,
        code=code,
        path=request.url.path,
        method=request.method,
        **extra,
    ).model_dump(exclude_none=True)


def create_app(config: Config, database: Database, lifespan=None) -> FastAPI:
    """Build and return a configured FastAPI application.

    The database handle is shared through ``app.state``; the caller owns its
    lifecycle.
    """
    app = FastAPI(
        title="AB-EAM",
        version=__version__,
        docs_url="/api/docs",
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.database = database
    app.state.started_at = time.monotonic()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=[config.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With"],
        expose_headers=["X-Request-ID"],
    )

    def internal_error_response(request: Request, exc: Exception) -> JSONResponse:
        logger.error(
            "Unhandled error on %s %s", request.method, request.url.path, exc_info=exc
        )
        extra = {"timestamp": datetime.now(timezone.utc).isoformat()}
        if config.is_development:
            extra["stack"] = "".join(traceback.format_exception(exc))
        body = _error_body(request, "Internal server error", "INTERNAL_SERVER_ERROR", **extra)
        return JSONResponse(body, status_code=500)

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or f"req_{uuid.uuid4().hex[:16]}"
        start = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as exc:
            # Errors escaping the route still get the request id and headers
            response = internal_error_response(request, exc)
        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = request_id
        for name, value in _SECURITY_HEADERS.items():
            response.headers.setdefault(name, value)
        logger.info(
            "%s %s - %d - %.0fms",
            request.method,
            request.url.path,
            response.status_code,
            duration_ms,
        )
        return response

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
        if exc.status_code == 404:
            body = _error_body(request, "Route not found", "ROUTE_NOT_FOUND")
        else:
            body = _error_body(request, str(exc.detail), f"HTTP_{exc.status_code}")
        return JSONResponse(body, status_code=exc.status_code)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        return internal_error_response(request, exc)

    app.include_router(health_router)
    return app
