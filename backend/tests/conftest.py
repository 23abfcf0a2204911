"""Pytest fixtures for the feedback relay.

Provides reusable test fixtures for:
- Database session on in-memory SQLite (tables created per test)
- Identity vault and fingerprint hasher with fixed test keys
- In-memory counter store, fake content providers, recording dispatcher
- A wired SubmissionService and a TestClient with overridden adapters

Usage:
    async def test_submit(service, make_visitor):
        result = await service.submit(NewSubmission(...), make_visitor())
"""

import sys
import os
from pathlib import Path

# Set environment variables BEFORE any imports to ensure they take effect
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["COUNTER_STORE_BACKEND"] = "memory"
os.environ.setdefault("VAULT_SECRET", "test-vault-secret-with-plenty-of-entropy-0123456789")
os.environ.setdefault("FINGERPRINT_SECRET", "test-fingerprint-secret")
os.environ.setdefault("LOG_JSON", "false")
os.environ.setdefault("PUBLIC_BASE_URL", "https://relay.test")

backend_src = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(backend_src))

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import models  # noqa: F401  (registers every table on Base.metadata)
from models.base import Base
from database import engine, SessionLocal, get_db as database_get_db
from abuse.registry import AbuseRegistry
from admission.controller import AdmissionController
from admission.fingerprint import FingerprintHasher
from admission.limits import AdmissionLimits
from infrastructure.counters.memory_store import InMemoryCounterStore
from pipeline.content_pipeline import ContentPipeline
from submissions.service import SubmissionService, VisitorContext
from vault.identity_vault import IdentityVault
from fixtures.doubles import FakeProvider, RecordingDispatcher

TEST_VAULT_SECRET = os.environ["VAULT_SECRET"]
TEST_FINGERPRINT_KEY = os.environ["FINGERPRINT_SECRET"].encode("utf-8")


@pytest.fixture(scope="function")
def db_session() -> Generator[Session, None, None]:
    """Create a fresh database session for each test.

    Creates all tables before the test and drops them after.
    """
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()

    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def vault() -> IdentityVault:
    return IdentityVault(TEST_VAULT_SECRET)


@pytest.fixture
def hasher() -> FingerprintHasher:
    return FingerprintHasher(TEST_FINGERPRINT_KEY)


@pytest.fixture
def counter_store() -> InMemoryCounterStore:
    return InMemoryCounterStore()


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider(name="primary")


@pytest.fixture
def pipeline(provider: FakeProvider) -> ContentPipeline:
    return ContentPipeline([provider], timeout_seconds=2.0)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest.fixture
def registry(db_session: Session, vault: IdentityVault, dispatcher: RecordingDispatcher) -> AbuseRegistry:
    return AbuseRegistry(db_session, vault=vault, dispatcher=dispatcher)


@pytest.fixture
def admission(counter_store: InMemoryCounterStore, registry: AbuseRegistry) -> AdmissionController:
    return AdmissionController(counter_store=counter_store, registry=registry, limits=AdmissionLimits())


@pytest.fixture
def service(
    db_session: Session,
    admission: AdmissionController,
    pipeline: ContentPipeline,
    dispatcher: RecordingDispatcher,
    vault: IdentityVault,
    hasher: FingerprintHasher,
) -> SubmissionService:
    return SubmissionService(
        db=db_session,
        admission=admission,
        pipeline=pipeline,
        dispatcher=dispatcher,
        vault=vault,
        hasher=hasher,
    )


@pytest.fixture
def make_visitor(hasher: FingerprintHasher):
    """Build a VisitorContext.

    With ``cookie=True`` (default) a signed visitor token is minted so the
    fingerprint is token-derived; ``cookie=False`` exercises the network
    fallback path.
    """
    def _make(cookie: bool = True, address: str = "203.0.113.7", token: str = None) -> VisitorContext:
        if cookie and token is None:
            token = hasher.issue_visitor_token()
        return VisitorContext(
            fingerprint=hasher.fingerprint(token if cookie else None, address),
            network_key=hasher.network_key(address),
        )

    return _make


@pytest.fixture(scope="function")
def client(
    db_session: Session,
    counter_store: InMemoryCounterStore,
    pipeline: ContentPipeline,
    dispatcher: RecordingDispatcher,
    vault: IdentityVault,
    hasher: FingerprintHasher,
):
    """Create a test client with every external adapter replaced."""
    from main import app
    from dependencies import (
        get_content_pipeline,
        get_counter_store,
        get_dispatcher,
        get_fingerprint_hasher,
        get_identity_vault,
    )

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[database_get_db] = override_get_db
    app.dependency_overrides[get_counter_store] = lambda: counter_store
    app.dependency_overrides[get_content_pipeline] = lambda: pipeline
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher
    app.dependency_overrides[get_identity_vault] = lambda: vault
    app.dependency_overrides[get_fingerprint_hasher] = lambda: hasher

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def make_item(db_session: Session, vault: IdentityVault, hasher: FingerprintHasher):
    """Persist a FeedbackItem directly, bypassing the pipeline.

    Used by tests that need an item in a given state (e.g. DELIVERED for
    abuse reports, old REJECTED items for retention).
    """
    from datetime import timedelta
    from uuid import uuid4

    from models.base import utcnow
    from models.feedback_item import FeedbackItem
    from vault.identity_vault import recipient_address_context, sender_identity_context

    def _make(
        status: str = "DELIVERED",
        recipient: str = "bob@example.com",
        sender: str = None,
        fingerprint: str = "f" * 32,
        age_days: int = 0,
        sender_identity_age_days: int = 0,
    ) -> FeedbackItem:
        created = utcnow() - timedelta(days=age_days)
        item = FeedbackItem(
            id=uuid4(),
            status=status,
            raw_text="Original sender wording",
            improved_text="Constructive rewrite",
            fingerprint=fingerprint,
            recipient_hash=hasher.recipient_hash(recipient),
            pipeline_attempts=1,
            delivery_attempts=1 if status == "DELIVERED" else 0,
            created_at=created,
            delivered_at=created if status == "DELIVERED" else None,
        )
        item.recipient_address_encrypted = vault.encrypt(recipient, context=recipient_address_context(item.id))
        if sender:
            item.sender_identity_encrypted = vault.encrypt(sender, context=sender_identity_context(item.id))
            item.sender_identity_expires_at = utcnow() + timedelta(days=30 - sender_identity_age_days)
        db_session.add(item)
        db_session.commit()
        return item

    return _make
