# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Service info, liveness and readiness endpoints.

None of these routes require authentication. Only /health/ready touches
the database; load balancers should use /health for liveness.
"""

import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Response, status
from pydantic import BaseModel, Field

from upskill import __version__
from upskill.core.config import get_settings
from upskill.infrastructure.database.connection import check_database_connection

logger = logging.getLogger(__name__)

router = APIRouter()

_started_at = time.monotonic()


class ServiceInfo(BaseModel):
    name: str = Field(description="Service name")
    version: str = Field(description="API version")
    api: str = Field(description="Versioned API prefix")


class HealthResponse(BaseModel):
    """Liveness check payload."""

    status: str = Field(description="Always 'healthy' while the process serves requests")
    timestamp: datetime = Field(description="Current server time (UTC)")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Seconds since the process started")


class DependencyCheck(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    latency_ms: float | None = Field(None, description="Round trip in milliseconds")


class ReadinessResponse(BaseModel):
    """Readiness check payload."""

    ready: bool = Field(description="True when every dependency is reachable")
    checks: dict[str, DependencyCheck] = Field(description="Result per dependency")


@router.get("/", response_model=ServiceInfo, include_in_schema=False)
async def service_info() -> ServiceInfo:
    return ServiceInfo(name="upskill", version=__version__, api="/api/v1")


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Liveness check; does not touch the database."""
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=__version__,
        environment=get_settings().environment,
        uptime_seconds=int(time.monotonic() - _started_at),
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    responses={503: {"model": ReadinessResponse, "description": "A dependency is down"}},
)
async def readiness_check(response: Response) -> ReadinessResponse:
    """Check the database and answer 503 while it is unreachable."""
    started = time.perf_counter()
    reachable = await check_database_connection()
    elapsed = round((time.perf_counter() - started) * 1000, 2)

    if reachable:
        database = DependencyCheck(status="healthy", latency_ms=elapsed)
    else:
        logger.error("Readiness check failed: database unreachable")
        database = DependencyCheck(status="unhealthy")
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return ReadinessResponse(ready=reachable, checks={"database": database})
