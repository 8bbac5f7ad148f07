# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

/health reports the database and the currently active school period, so an
operator can tell at a glance which period a closure would act on. /ready
only answers whether the database is reachable.
"""

import logging
import time
from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel, Field
from sqlalchemy import select

from school_closure import __version__
from school_closure.core.config import get_settings
from school_closure.infrastructure.database.connection import get_sessionmaker
from school_closure.infrastructure.database.models import SchoolPeriod
from school_closure.utils.datetime import utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

_started = time.monotonic()


class DatabaseHealth(BaseModel):
    status: str = Field(description="healthy or unhealthy")
    latency_ms: float | None = None
    message: str | None = None


class HealthResponse(BaseModel):
    """Health check response model."""

    status: str = Field(description="Overall health status")
    timestamp: datetime
    version: str
    environment: str
    uptime_seconds: int
    database: DatabaseHealth
    active_period: str | None = Field(None, description="Label of the active school period")


class ReadinessResponse(BaseModel):
    ready: bool
    database: DatabaseHealth


async def _probe_database() -> tuple[DatabaseHealth, str | None]:
    """Time a query for the active period; a failure marks the database unhealthy."""
    start = time.monotonic()
    try:
        async with get_sessionmaker()() as session:
            result = await session.execute(
                select(SchoolPeriod.period).where(SchoolPeriod.is_active.is_(True)).limit(1)
            )
            active_period = result.scalar_one_or_none()
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        return DatabaseHealth(status="unhealthy", message=str(e)), None

    latency = round((time.monotonic() - start) * 1000, 2)
    return DatabaseHealth(status="healthy", latency_ms=latency), active_period


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    database, active_period = await _probe_database()
    return HealthResponse(
        status=database.status,
        timestamp=utc_now(),
        version=__version__,
        environment=get_settings().environment,
        uptime_seconds=int(time.monotonic() - _started),
        database=database,
        active_period=active_period,
    )


@router.get("/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    database, _ = await _probe_database()
    return ReadinessResponse(ready=database.status == "healthy", database=database)
