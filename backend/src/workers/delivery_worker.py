"""Delivery retry worker - redelivers APPROVED items whose dispatch failed.

The submission service makes exactly one dispatch attempt when the
sender approves. Items left APPROVED are picked up here on a schedule
until they are delivered or DELIVERY_MAX_ATTEMPTS is reached. An item
is only dispatched after its delivery lease is claimed, so an approve
still in flight and a second worker run both leave it alone.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Dict, Any

from celery import shared_task
from sqlalchemy import or_
from sqlalchemy.orm import Session

from abuse.registry import AbuseRegistry
from admission.controller import AdmissionController
from admission.limits import AdmissionLimits
from config import get_settings
from database import SessionLocal
from dependencies import get_content_pipeline, get_counter_store, get_dispatcher, get_fingerprint_hasher
from domain.errors import DeliveryFailed, InvalidStateError
from models.base import utcnow
from models.feedback_item import FeedbackItem
from submissions.service import SubmissionService
from submissions.status import FeedbackStatus, StateTransitionError
from vault.identity_vault import get_vault

logger = logging.getLogger(__name__)

RETRY_BATCH_SIZE = 100


def build_submission_service(db: Session) -> SubmissionService:
    settings = get_settings()
    return SubmissionService(
        db=db,
        admission=AdmissionController(
            counter_store=get_counter_store(),
            registry=AbuseRegistry(db),
            limits=AdmissionLimits.from_settings(settings),
        ),
        pipeline=get_content_pipeline(),
        dispatcher=get_dispatcher(),
        vault=get_vault(),
        hasher=get_fingerprint_hasher(),
        settings=settings,
    )


async def retry_pending_deliveries(service: SubmissionService, max_attempts: int) -> Dict[str, int]:
    """Attempt delivery for every APPROVED item still under the attempt cap.

    Returns:
        Counts of delivered, failed and exhausted items
    """
    db = service.db
    stale_before = utcnow() - timedelta(seconds=service.settings.DELIVERY_CLAIM_LEASE_SECONDS)
    pending = db.query(FeedbackItem.id).filter(
        FeedbackItem.status == FeedbackStatus.APPROVED.value,
        FeedbackItem.delivery_attempts < max_attempts,
        or_(
            FeedbackItem.delivery_claimed_at.is_(None),
            FeedbackItem.delivery_claimed_at < stale_before,
        ),
    ).order_by(FeedbackItem.approved_at).limit(RETRY_BATCH_SIZE).all()

    counts = {"delivered": 0, "failed": 0, "exhausted": 0}
    for (item_id,) in pending:
        item = service.claim_delivery(item_id)
        if item is None:
            continue

        try:
            await service.deliver(item)
        except (InvalidStateError, StateTransitionError) as e:
            db.rollback()
            logger.warning(
                f"Skipping delivery of item {item_id}: {e}",
                extra={"feedback_item_id": str(item_id)},
            )
        except DeliveryFailed:
            if item.delivery_attempts >= max_attempts:
                counts["exhausted"] += 1
                logger.error(
                    f"Delivery retries exhausted for item {item.id}",
                    extra={"feedback_item_id": str(item.id)},
                )
            else:
                counts["failed"] += 1
        else:
            counts["delivered"] += 1

    return counts


@shared_task(name="delivery.retry_pending", bind=True)
def retry_pending_deliveries_task(self) -> Dict[str, Any]:
    """Scheduled redelivery of approved items.

    Returns:
        Dict with delivered/failed/exhausted counts
    """
    db = SessionLocal()
    try:
        service = build_submission_service(db)
        counts = asyncio.run(retry_pending_deliveries(service, get_settings().DELIVERY_MAX_ATTEMPTS))
        logger.info(f"Delivery retry run finished: {counts}")
        return {"status": "completed", **counts}
    finally:
        db.close()
