"""Observability API endpoints.

Provides metrics, health checks, and readiness probes for monitoring.
"""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST

from database import get_db
from dependencies import get_content_pipeline, get_counter_store
from domain.admission.ports import CounterStorePort
from pipeline.content_pipeline import ContentPipeline
from .health import (
    check_counter_store_health,
    check_database_health,
    check_pipeline_health,
    get_overall_health,
    HealthStatus,
)

router = APIRouter(tags=["Observability"])


@router.get(
    "/metrics",
    summary="Prometheus metrics endpoint",
    include_in_schema=False,  # Hide from OpenAPI docs
)
def metrics():
    """Expose Prometheus metrics in exposition format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@router.get(
    "/health",
    summary="Health check endpoint",
    description="Returns health status of database, counter store and content providers",
)
def health_check(
    db: Session = Depends(get_db),
    store: CounterStorePort = Depends(get_counter_store),
    pipeline: ContentPipeline = Depends(get_content_pipeline),
):
    """Check health of all system components.

    Returns 200 OK unless a component is unhealthy, then 503.
    """
    components = {
        "database": check_database_health(db),
        "counter_store": check_counter_store_health(store),
        "content_pipeline": check_pipeline_health(len(pipeline.providers)),
    }

    overall_status = get_overall_health(components)

    response_data = {
        "status": overall_status.value,
        "components": {
            name: {
                "status": comp.status.value,
                "message": comp.message,
                "latency_ms": comp.latency_ms,
            }
            for name, comp in components.items()
        }
    }

    status_code = 200 if overall_status != HealthStatus.UNHEALTHY else 503

    return JSONResponse(
        content=response_data,
        status_code=status_code
    )


@router.get(
    "/ready",
    summary="Readiness check endpoint",
    description="Returns readiness status (for Kubernetes readiness probes)",
)
def readiness_check(
    db: Session = Depends(get_db),
    store: CounterStorePort = Depends(get_counter_store),
):
    """Ready when the database and the counter store both answer.

    Without the counter store every submission would be denied.
    """
    for component in (check_database_health(db), check_counter_store_health(store)):
        if component.status != HealthStatus.HEALTHY:
            return JSONResponse(
                content={"status": "not_ready", "message": component.message},
                status_code=503
            )

    return {
        "status": "ready",
        "message": "Application is ready to serve traffic"
    }
