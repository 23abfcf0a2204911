"""Feedback Relay - Main FastAPI Application

Anonymous feedback relay: senders submit feedback for a recipient, the
text is screened and rewritten, and after the sender approves it the
relay delivers it without revealing who sent it.

This module creates and configures the main FastAPI application, including:
- API routers (feedback, abuse reports, observability)
- Middleware (request ID correlation, CORS)
- Exception handlers mapping relay errors to HTTP responses
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import SQLAlchemyError

from config import get_settings
from domain.errors import (
    AccessDenied,
    AdmissionDenied,
    ConflictError,
    ContentBlocked,
    EncryptionFailure,
    InvalidStateError,
    PipelineUnavailable,
)
from pipeline.content_pipeline import category_message
from submissions.status import StateTransitionError
from vault.identity_vault import get_vault

# Observability
from observability.logging_config import configure_logging
from observability.middleware import RequestIDMiddleware
from observability.router import router as observability_router

# Domain Routers
from submissions.router import router as feedback_router
from abuse.router import router as abuse_router

settings = get_settings()

configure_logging(level=settings.LOG_LEVEL, json_format=settings.LOG_JSON)

logger = logging.getLogger(__name__)

ADMISSION_STATUS_CODES = {
    "rate_limited": status.HTTP_429_TOO_MANY_REQUESTS,
    "blocked": status.HTTP_403_FORBIDDEN,
    "bot_suspected": status.HTTP_403_FORBIDDEN,
    "service_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
}

ADMISSION_MESSAGES = {
    "rate_limited": "You've sent a lot of feedback recently. Please try again later.",
    "blocked": "This recipient is not accepting feedback from you.",
    "bot_suspected": "This request looks automated and was not accepted.",
    "service_unavailable": "Feedback can't be accepted right now. Please try again shortly.",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler.

    Startup fails when the vault key is missing: the relay never runs
    without encryption.
    """
    logger.info("Feedback relay starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    get_vault()

    yield

    logger.info("Feedback relay shutting down...")


# Create FastAPI application
app = FastAPI(
    title="Feedback Relay API",
    description="Anonymous, screened feedback delivery",
    version="0.1.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
    openapi_url="/openapi.json" if settings.ENVIRONMENT != "production" else None,
    lifespan=lifespan,
)


# =============================================================================
# MIDDLEWARE CONFIGURATION
# =============================================================================

# Request ID Middleware (must be first for proper correlation)
app.add_middleware(RequestIDMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS.split(","),
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"],
)


# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

@app.exception_handler(AdmissionDenied)
async def admission_denied_handler(request: Request, exc: AdmissionDenied) -> JSONResponse:
    """Deny with the reason and limiter that fired; never with counts."""
    return JSONResponse(
        status_code=ADMISSION_STATUS_CODES.get(exc.reason, status.HTTP_403_FORBIDDEN),
        content={
            "error": exc.code,
            "reason": exc.reason,
            "limiter": exc.limiter,
            "message": ADMISSION_MESSAGES.get(exc.reason, "Feedback was not accepted."),
        },
    )


@app.exception_handler(ContentBlocked)
async def content_blocked_handler(request: Request, exc: ContentBlocked) -> JSONResponse:
    """Explain the category only; the offending text is never echoed."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": exc.code,
            "category": exc.category,
            "message": category_message(exc.category),
        },
    )


@app.exception_handler(PipelineUnavailable)
async def pipeline_unavailable_handler(request: Request, exc: PipelineUnavailable) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={
            "error": exc.code,
            "message": "Feedback processing is temporarily unavailable. Please retry.",
        },
    )


@app.exception_handler(AccessDenied)
async def access_denied_handler(request: Request, exc: AccessDenied) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_403_FORBIDDEN,
        content={"error": exc.code, "message": "This link is invalid or has expired."},
    )


@app.exception_handler(ConflictError)
async def conflict_handler(request: Request, exc: ConflictError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": exc.code, "message": exc.message},
    )


@app.exception_handler(InvalidStateError)
async def invalid_state_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": exc.code, "message": exc.message},
    )


@app.exception_handler(StateTransitionError)
async def state_transition_handler(request: Request, exc: StateTransitionError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_409_CONFLICT,
        content={"error": "invalid_state", "message": "This action is not available for the feedback's current state."},
    )


@app.exception_handler(EncryptionFailure)
async def encryption_failure_handler(request: Request, exc: EncryptionFailure) -> JSONResponse:
    """Operational fault. Logged in full, reported generically."""
    logger.error(f"Encryption failure on {request.method}: {exc.code}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"error": "internal_error", "message": "An unexpected error occurred. Please try again later."},
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Handle Pydantic validation errors.

    Field locations and messages only; submitted values are not echoed.
    """
    details = [
        {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
        for error in exc.errors()
    ]
    logger.warning(f"Validation error on {request.method}", extra={"error_type": "validation"})
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Request validation failed",
            "details": details,
        },
    )


@app.exception_handler(SQLAlchemyError)
async def database_exception_handler(
    request: Request,
    exc: SQLAlchemyError
) -> JSONResponse:
    """Handle database errors.

    Logs the full error but returns a generic message to prevent
    information leakage.
    """
    logger.error(f"Database error on {request.method}", exc_info=exc)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "database_error",
            "message": "A database error occurred. Please try again later.",
        },
    )


# =============================================================================
# ROUTERS
# =============================================================================

app.include_router(observability_router)
app.include_router(feedback_router)
app.include_router(abuse_router)


@app.get("/", include_in_schema=False)
def root():
    return {"service": "feedback-relay", "status": "ok"}
