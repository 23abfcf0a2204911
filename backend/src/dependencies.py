"""Global FastAPI dependencies: shared adapters and per-request services.

Process-wide adapters (counter store, content pipeline, dispatcher,
fingerprint hasher) are built once from settings and cached. Services
that need a database session are built per request.

Tests replace adapters with app.dependency_overrides.
"""

import logging
from functools import lru_cache

from fastapi import Depends, Request, Response
from sqlalchemy.orm import Session

from abuse.registry import AbuseRegistry
from admission.controller import AdmissionController
from admission.fingerprint import FingerprintHasher, client_network_address
from admission.limits import AdmissionLimits
from config import get_settings
from database import get_db
from domain.admission.ports import CounterStorePort
from domain.delivery.ports import DeliveryDispatcherPort
from infrastructure.ai.openai_provider import OpenAICompatibleProvider
from infrastructure.counters.memory_store import InMemoryCounterStore
from infrastructure.counters.redis_store import RedisCounterStore
from infrastructure.mail.smtp_dispatcher import SmtpDispatcher
from pipeline.content_pipeline import ContentPipeline
from submissions.service import SubmissionService, VisitorContext
from vault.identity_vault import IdentityVault, get_vault

logger = logging.getLogger(__name__)


def get_identity_vault() -> IdentityVault:
    """Vault singleton. Raises VaultKeyUnavailable when unconfigured."""
    return get_vault()


@lru_cache()
def get_fingerprint_hasher() -> FingerprintHasher:
    """Keyed hasher for fingerprints and recipient hashes.

    Uses FINGERPRINT_SECRET when set, otherwise a subkey of the vault key.
    """
    settings = get_settings()
    if settings.FINGERPRINT_SECRET:
        return FingerprintHasher(settings.FINGERPRINT_SECRET.encode("utf-8"))
    return FingerprintHasher(get_vault().derive_subkey("fingerprint"))


@lru_cache()
def get_counter_store() -> CounterStorePort:
    settings = get_settings()
    if settings.COUNTER_STORE_BACKEND == "memory":
        logger.warning("Using in-process counter store; admission limits are per-instance only")
        return InMemoryCounterStore()
    return RedisCounterStore.from_url(settings.REDIS_URL)


@lru_cache()
def get_content_pipeline() -> ContentPipeline:
    """Ordered providers: OpenAI first, then the compatible fallback endpoint."""
    settings = get_settings()
    providers = []
    if settings.OPENAI_API_KEY:
        providers.append(OpenAICompatibleProvider(
            name="openai",
            api_key=settings.OPENAI_API_KEY,
            model=settings.CONTENT_MODEL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        ))
    if settings.FALLBACK_PROVIDER_BASE_URL and settings.FALLBACK_PROVIDER_API_KEY:
        providers.append(OpenAICompatibleProvider(
            name="fallback",
            api_key=settings.FALLBACK_PROVIDER_API_KEY,
            model=settings.FALLBACK_PROVIDER_MODEL,
            base_url=settings.FALLBACK_PROVIDER_BASE_URL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        ))
    if not providers:
        logger.warning("No content provider configured; every submission will stay pending")
    return ContentPipeline(providers, timeout_seconds=settings.PROVIDER_TIMEOUT_SECONDS)


@lru_cache()
def get_dispatcher() -> DeliveryDispatcherPort:
    settings = get_settings()
    return SmtpDispatcher(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        from_email=settings.SMTP_FROM_EMAIL,
        user=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        use_tls=settings.SMTP_USE_TLS,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )


def get_visitor(
    request: Request,
    response: Response,
    hasher: FingerprintHasher = Depends(get_fingerprint_hasher),
) -> VisitorContext:
    """Derive the visitor fingerprint for this request.

    A missing or forged visitor cookie is replaced with a freshly signed
    one; the current request still uses the network-derived fingerprint.
    """
    settings = get_settings()
    visitor_token = request.cookies.get(settings.VISITOR_COOKIE_NAME)
    network_address = client_network_address(request, trust_forwarded_for=settings.TRUST_FORWARDED_FOR)

    if not hasher.verify_visitor_token(visitor_token):
        response.set_cookie(
            key=settings.VISITOR_COOKIE_NAME,
            value=hasher.issue_visitor_token(),
            max_age=settings.VISITOR_COOKIE_MAX_AGE,
            httponly=True,
            samesite="lax",
            secure=settings.ENVIRONMENT == "production",
        )

    return VisitorContext(
        fingerprint=hasher.fingerprint(visitor_token, network_address),
        network_key=hasher.network_key(network_address),
    )


def get_abuse_registry(
    db: Session = Depends(get_db),
    vault: IdentityVault = Depends(get_identity_vault),
    dispatcher: DeliveryDispatcherPort = Depends(get_dispatcher),
) -> AbuseRegistry:
    return AbuseRegistry(db, vault=vault, dispatcher=dispatcher)


def get_admission_controller(
    registry: AbuseRegistry = Depends(get_abuse_registry),
    counter_store: CounterStorePort = Depends(get_counter_store),
) -> AdmissionController:
    return AdmissionController(
        counter_store=counter_store,
        registry=registry,
        limits=AdmissionLimits.from_settings(get_settings()),
    )


def get_submission_service(
    db: Session = Depends(get_db),
    admission: AdmissionController = Depends(get_admission_controller),
    pipeline: ContentPipeline = Depends(get_content_pipeline),
    dispatcher: DeliveryDispatcherPort = Depends(get_dispatcher),
    vault: IdentityVault = Depends(get_identity_vault),
    hasher: FingerprintHasher = Depends(get_fingerprint_hasher),
) -> SubmissionService:
    return SubmissionService(
        db=db,
        admission=admission,
        pipeline=pipeline,
        dispatcher=dispatcher,
        vault=vault,
        hasher=hasher,
    )
