"""Observability module for the feedback relay.

Provides structured logging, metrics, and health checks.
"""

from .logging_config import configure_logging, get_logger
from .metrics import (
    abuse_reports_total,
    admission_decisions_total,
    deliveries_total,
    pipeline_calls_total,
    pipeline_failovers_total,
    pipeline_latency_ms,
    retention_records_total,
    state_transitions_total,
)
from .request_id import request_id_var, accept_request_id, get_request_id, set_request_id, generate_request_id
from .health import HealthStatus, ComponentHealth
from .middleware import RequestIDMiddleware

__all__ = [
    # Logging
    "configure_logging",
    "get_logger",
    # Metrics
    "abuse_reports_total",
    "admission_decisions_total",
    "deliveries_total",
    "pipeline_calls_total",
    "pipeline_failovers_total",
    "pipeline_latency_ms",
    "retention_records_total",
    "state_transitions_total",
    # Request ID
    "request_id_var",
    "accept_request_id",
    "get_request_id",
    "set_request_id",
    "generate_request_id",
    # Health
    "HealthStatus",
    "ComponentHealth",
    # Middleware
    "RequestIDMiddleware",
]
