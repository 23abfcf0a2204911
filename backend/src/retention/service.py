"""Retention service for data cleanup operations.

Three passes, each idempotent and safe to re-run:
- delete sender identities whose retention window has passed
- redact finished items (DELIVERED, REJECTED) past the feedback window
- delete access tokens that have expired

Items that are still in flight (awaiting approval, approved but not yet
delivered) are never redacted: a sender may leave an item awaiting
approval indefinitely.

Redaction keeps the row, its status history, fingerprint, recipient hash
and block category, so abuse reports and directives stay explainable.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from models.access_token import AccessToken
from models.base import utcnow
from models.feedback_item import FeedbackItem
from observability.metrics import retention_records_total
from submissions.status import TERMINAL_STATES
from vault.tokens import revoke_all_for_item
from .schemas import RetentionSettings, RetentionStatistics

logger = logging.getLogger(__name__)

# Batch size for deletion operations to avoid long transactions
DELETION_BATCH_SIZE = 500


class RetentionService:
    """Executes retention cleanup."""

    def __init__(self, db: Session, settings: Optional[RetentionSettings] = None):
        self.db = db
        self.settings = settings or RetentionSettings()

    def feedback_cutoff(self, now: datetime) -> datetime:
        return now - timedelta(days=self.settings.feedback_retention_days)

    def delete_expired_sender_identities(self, now: datetime, batch_size: int = DELETION_BATCH_SIZE) -> int:
        """Clear encrypted sender addresses whose window has passed.

        Returns:
            Number of identities deleted
        """
        deleted = 0
        while True:
            items = self.db.query(FeedbackItem).filter(
                FeedbackItem.sender_identity_encrypted.isnot(None),
                FeedbackItem.sender_identity_expires_at <= now,
            ).limit(batch_size).all()
            if not items:
                break

            for item in items:
                item.sender_identity_encrypted = None
                item.sender_identity_expires_at = None
                log_audit_event(
                    db=self.db,
                    action="SENDER_IDENTITY_DELETED",
                    entity_type="feedback_item",
                    entity_id=item.id,
                    metadata={"trigger": "retention"},
                )
            self.db.commit()
            deleted += len(items)

        retention_records_total.labels(record_type="sender_identity").inc(deleted)
        return deleted

    def redact_expired_items(self, now: datetime, batch_size: int = DELETION_BATCH_SIZE) -> int:
        """Strip text and addresses from finished items past the window.

        Returns:
            Number of items redacted
        """
        cutoff = self.feedback_cutoff(now)
        terminal = [status.value for status in TERMINAL_STATES]
        redacted = 0
        while True:
            items = self.db.query(FeedbackItem).filter(
                FeedbackItem.status.in_(terminal),
                FeedbackItem.redacted_at.is_(None),
                FeedbackItem.created_at < cutoff,
            ).limit(batch_size).all()
            if not items:
                break

            for item in items:
                self.redact_item(item, now)
            self.db.commit()
            redacted += len(items)

        retention_records_total.labels(record_type="feedback_item").inc(redacted)
        return redacted

    def redact_item(self, item: FeedbackItem, now: Optional[datetime] = None) -> None:
        item.raw_text = None
        item.improved_text = None
        item.block_reason = None
        item.recipient_address_encrypted = None
        item.sender_identity_encrypted = None
        item.sender_identity_expires_at = None
        item.redacted_at = now or utcnow()
        if item.response is not None:
            item.response.body = None
        revoke_all_for_item(self.db, item.id)

    def delete_expired_tokens(self, now: datetime) -> int:
        deleted = self.db.query(AccessToken).filter(
            AccessToken.expires_at.isnot(None),
            AccessToken.expires_at < now,
        ).delete(synchronize_session=False)
        self.db.commit()

        retention_records_total.labels(record_type="access_token").inc(deleted)
        return deleted

    def run_cleanup(self) -> RetentionStatistics:
        """Run every pass. A failing pass is logged and counted; the rest still run."""
        started = utcnow()
        stats = {"sender_identities_deleted": 0, "items_redacted": 0, "tokens_deleted": 0}
        database_errors = 0

        passes = (
            ("sender_identities_deleted", self.delete_expired_sender_identities),
            ("items_redacted", self.redact_expired_items),
            ("tokens_deleted", self.delete_expired_tokens),
        )
        for key, run_pass in passes:
            try:
                stats[key] = run_pass(started)
            except SQLAlchemyError as e:
                self.db.rollback()
                database_errors += 1
                logger.error(f"Retention pass {key} failed: {e}", exc_info=True)

        log_audit_event(
            db=self.db,
            action="RETENTION_RUN",
            metadata={**stats, "database_errors": database_errors},
        )
        self.db.commit()

        statistics = RetentionStatistics(
            job_started_at=started,
            job_completed_at=utcnow(),
            database_errors=database_errors,
            **stats,
        )
        logger.info(
            f"Retention cleanup finished: {statistics.total_records_affected} records affected",
        )
        return statistics
