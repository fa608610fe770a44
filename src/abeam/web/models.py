"""Pydantic v2 response models for the AB-EAM web API."""

from __future__ import annotations

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Status endpoints
# ---------------------------------------------------------------------------
class HealthResponse(BaseModel):
    status: str             # 'OK' | 'UNHEALTHY'
    timestamp: str
    uptime: float
    environment: str
    database: str           # 'ok' | 'error'
    schema_version: int | None = None
    detail: str | None = None


class ApiInfoResponse(BaseModel):
    message: str
    version: str
    timestamp: str


class RootResponse(BaseModel):
    message: str
    version: str
    endpoints: dict[str, str]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------
class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    code: str
    path: str
    method: str
    timestamp: str | None = None
    stack: str | None = None
