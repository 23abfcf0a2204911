"""Health check utilities for the feedback relay.

Provides health and readiness checks for monitoring infrastructure components.
"""

import time
from enum import Enum
from typing import Dict, Optional
from dataclasses import dataclass

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from domain.admission.ports import CounterStorePort
from .logging_config import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    """Health check status enum."""
    HEALTHY = "healthy"
    UNHEALTHY = "unhealthy"
    DEGRADED = "degraded"


@dataclass
class ComponentHealth:
    """Health status for a single component."""
    status: HealthStatus
    message: Optional[str] = None
    latency_ms: Optional[float] = None


def check_database_health(db: Session) -> ComponentHealth:
    """Check database connectivity and health.

    Args:
        db: Database session

    Returns:
        ComponentHealth: Database health status
    """
    try:
        start = time.time()
        db.execute(text("SELECT 1"))
        latency_ms = (time.time() - start) * 1000

        return ComponentHealth(
            status=HealthStatus.HEALTHY,
            message="Database connection OK",
            latency_ms=round(latency_ms, 2)
        )
    except SQLAlchemyError as e:
        logger.error(f"Database health check failed: {e}", exc_info=True)
        return ComponentHealth(
            status=HealthStatus.UNHEALTHY,
            message="Database unreachable"
        )


def check_counter_store_health(store: CounterStorePort) -> ComponentHealth:
    """Check the admission counter store.

    Admission fails closed without it, so an unreachable store makes the
    relay unhealthy rather than degraded.
    """
    start = time.time()
    reachable = store.ping()
    latency_ms = (time.time() - start) * 1000

    if not reachable:
        logger.error("Counter store health check failed")
        return ComponentHealth(status=HealthStatus.UNHEALTHY, message="Counter store unreachable")

    return ComponentHealth(
        status=HealthStatus.HEALTHY,
        message="Counter store OK",
        latency_ms=round(latency_ms, 2)
    )


def check_pipeline_health(provider_count: int) -> ComponentHealth:
    if provider_count == 0:
        return ComponentHealth(status=HealthStatus.DEGRADED, message="No content provider configured")
    if provider_count == 1:
        return ComponentHealth(status=HealthStatus.DEGRADED, message="No fallback content provider")
    return ComponentHealth(status=HealthStatus.HEALTHY, message=f"{provider_count} providers configured")


def get_overall_health(components: Dict[str, ComponentHealth]) -> HealthStatus:
    """Determine overall health from component statuses.

    Args:
        components: Dictionary of component health statuses

    Returns:
        HealthStatus: Overall system health
    """
    if all(c.status == HealthStatus.HEALTHY for c in components.values()):
        return HealthStatus.HEALTHY

    if any(c.status == HealthStatus.UNHEALTHY for c in components.values()):
        return HealthStatus.UNHEALTHY

    return HealthStatus.DEGRADED
