# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Health check endpoints.

This module provides liveness, health and readiness endpoints for the API.
"""

import time
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from src.core.config import get_settings
from src.infrastructure.background.broker import get_broker_manager
from src.infrastructure.database.connection import DatabaseError, get_database

logger = logging.getLogger(__name__)

router = APIRouter()

# Track server start time for uptime calculation
_server_start_time = time.time()


class ComponentHealth(BaseModel):
    """Individual component health status."""
    status: str = Field(description="Component status")
    latency_ms: float | None = Field(None, description="Response latency in ms")
    message: str | None = Field(None, description="Additional status message")


class ComponentsHealth(BaseModel):
    """All components health status."""
    database: ComponentHealth | None = None
    broker: ComponentHealth | None = None


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(description="Overall health status")
    timestamp: datetime = Field(description="Current server timestamp")
    version: str = Field(description="API version")
    environment: str = Field(description="Deployment environment")
    uptime_seconds: int = Field(description="Server uptime in seconds")
    enrolments_enabled: bool = Field(description="Whether temporary enrolments are switched on")
    components: ComponentsHealth = Field(default_factory=ComponentsHealth)


class LivenessResponse(BaseModel):
    """Liveness check response model."""
    status: str = "alive"


class ReadinessResponse(BaseModel):
    """Readiness check response model."""
    ready: bool = Field(description="Whether the service is ready")
    checks: dict[str, Any] = Field(description="Individual check results")


async def check_database() -> ComponentHealth:
    """Check the platform database connection."""
    try:
        db = get_database()
    except DatabaseError as e:
        return ComponentHealth(status="unhealthy", message=str(e))

    start = time.time()
    if not await db.check_connection():
        logger.error("Database health check failed")
        return ComponentHealth(status="unhealthy", message="Database unreachable")

    latency = (time.time() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


def check_broker() -> ComponentHealth:
    """Check the Dramatiq broker."""
    start = time.time()
    stats = get_broker_manager().get_queue_stats()
    if stats.get("status") != "healthy":
        message = stats.get("error") or stats.get("status")
        logger.error("Broker health check failed: %s", message)
        return ComponentHealth(status="unhealthy", message=str(message))

    latency = (time.time() - start) * 1000
    return ComponentHealth(status="healthy", latency_ms=round(latency, 2))


@router.get("/health/live", response_model=LivenessResponse)
async def liveness_check() -> LivenessResponse:
    """Report that the process is up."""
    return LivenessResponse()


@router.get("/health", response_model=HealthResponse)
async def health_check() -> HealthResponse:
    """Check if the API is healthy with component details.

    Returns:
        HealthResponse with detailed status.
    """
    settings = get_settings()
    uptime = int(time.time() - _server_start_time)

    db_health = await check_database()
    broker_health = check_broker()

    component_statuses = [db_health.status, broker_health.status]
    if all(s == "healthy" for s in component_statuses):
        overall_status = "healthy"
    elif all(s == "unhealthy" for s in component_statuses):
        overall_status = "unhealthy"
    else:
        overall_status = "degraded"

    return HealthResponse(
        status=overall_status,
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.environment,
        uptime_seconds=uptime,
        enrolments_enabled=settings.enrolment.enabled,
        components=ComponentsHealth(database=db_health, broker=broker_health),
    )


@router.get("/health/ready", response_model=ReadinessResponse)
async def readiness_check() -> ReadinessResponse:
    """Check if the API is ready to accept webhook calls.

    Returns:
        ReadinessResponse with individual check results.
    """
    checks: dict[str, Any] = {}

    db_health = await check_database()
    checks["database"] = {"status": db_health.status, "latency_ms": db_health.latency_ms}

    broker_health = check_broker()
    checks["broker"] = {"status": broker_health.status, "latency_ms": broker_health.latency_ms}

    ready = db_health.status == "healthy" and broker_health.status == "healthy"
    return ReadinessResponse(ready=ready, checks=checks)
