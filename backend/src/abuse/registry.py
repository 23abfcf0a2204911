"""Abuse report and block registry.

Post-delivery control plane: a recipient reports a delivered item and
the registry records a block directive that the admission controller
consults on every future submission. Directives are forward-only; they
never touch items that were already delivered.

Directive levels:
    sender_specific  (fingerprint, recipient)  default on report
    global           (recipient)               explicit escalation only
Either level may carry an expiry, after which it reverts to no block.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from audit.service import log_audit_event
from delivery import templates
from delivery.notifier import send_notice
from domain.delivery.ports import DeliveryDispatcherPort
from domain.errors import InvalidStateError
from models.abuse_report import AbuseReport, BlockDirective, BlockLevel
from models.base import utcnow
from models.feedback_item import FeedbackItem
from observability.metrics import abuse_reports_total
from submissions.status import FeedbackStatus
from vault.identity_vault import IdentityVault, recipient_address_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BlockCheck:
    """Outcome of a block lookup for one (fingerprint, recipient) pair."""
    level: BlockLevel
    directive_id: Optional[UUID] = None
    expires_at: Optional[datetime] = None

    @property
    def blocked(self) -> bool:
        return self.level != BlockLevel.NONE


NO_BLOCK = BlockCheck(level=BlockLevel.NONE)


@dataclass
class ReportOutcome:
    report: AbuseReport
    created: bool


class AbuseRegistry:
    """Reads and writes block directives.

    Reads are served straight from the database on every admission
    decision, so a new directive is effective for the very next attempt.
    """

    def __init__(
        self,
        db: Session,
        vault: Optional[IdentityVault] = None,
        dispatcher: Optional[DeliveryDispatcherPort] = None,
    ):
        self.db = db
        self.vault = vault
        self.dispatcher = dispatcher

    def check_block(self, fingerprint: str, recipient_hash: str) -> BlockCheck:
        """Return the directive that applies to this pair, if any.

        Global directives win over sender-specific ones.
        """
        now = utcnow()
        directives = self.db.query(BlockDirective).filter(
            BlockDirective.recipient_hash == recipient_hash,
            BlockDirective.lifted_at.is_(None),
            or_(BlockDirective.expires_at.is_(None), BlockDirective.expires_at > now),
            or_(
                BlockDirective.level == BlockLevel.GLOBAL.value,
                BlockDirective.fingerprint == fingerprint,
            ),
        ).all()

        if not directives:
            return NO_BLOCK

        directives.sort(key=lambda d: 0 if d.level == BlockLevel.GLOBAL.value else 1)
        match = directives[0]
        return BlockCheck(
            level=BlockLevel(match.level),
            directive_id=match.id,
            expires_at=match.expires_at,
        )

    def find_report(self, feedback_item_id: UUID) -> Optional[AbuseReport]:
        return self.db.query(AbuseReport).filter(
            AbuseReport.feedback_item_id == feedback_item_id
        ).first()

    async def report(
        self,
        item: FeedbackItem,
        escalate_global: bool = False,
        duration_days: Optional[int] = None,
    ) -> ReportOutcome:
        """File a report against a delivered item.

        Idempotent per item: a second report returns the first one
        unchanged and sends no second confirmation. A concurrent report
        that loses the insert race gets the winner's report.

        Args:
            item: Delivered feedback item
            escalate_global: Block every future sender for this recipient
            duration_days: Temporary directive length; None = permanent

        Raises:
            InvalidStateError: Item was never delivered
        """
        item_id = item.id
        existing = self.find_report(item_id)
        if existing is not None:
            return ReportOutcome(report=existing, created=False)

        if item.status != FeedbackStatus.DELIVERED.value:
            raise InvalidStateError("Only delivered feedback can be reported")

        level = BlockLevel.GLOBAL if escalate_global else BlockLevel.SENDER_SPECIFIC
        now = utcnow()
        expires_at = now + timedelta(days=duration_days) if duration_days else None

        report = AbuseReport(
            feedback_item_id=item.id,
            recipient_hash=item.recipient_hash,
            fingerprint=item.fingerprint,
            directive_level=level.value,
            directive_expires_at=expires_at,
            created_at=now,
        )
        self.db.add(report)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            existing = self.find_report(item_id)
            if existing is None:
                raise
            logger.info(
                f"Item {item_id} was reported concurrently; returning existing report",
                extra={"feedback_item_id": str(item_id)},
            )
            return ReportOutcome(report=existing, created=False)

        directive = BlockDirective(
            level=level.value,
            recipient_hash=item.recipient_hash,
            fingerprint=None if level == BlockLevel.GLOBAL else item.fingerprint,
            report_id=report.id,
            created_at=now,
            expires_at=expires_at,
        )
        self.db.add(directive)
        self.db.flush()

        log_audit_event(
            db=self.db,
            action="ABUSE_REPORTED",
            entity_type="feedback_item",
            entity_id=item.id,
            metadata={
                "report_id": str(report.id),
                "directive_id": str(directive.id),
                "directive_level": level.value,
                "temporary": expires_at is not None,
                "expires_at": expires_at.isoformat() if expires_at else None,
            },
        )
        self.db.commit()
        abuse_reports_total.labels(level=level.value).inc()
        logger.info(
            f"Abuse report filed for item {item.id} with directive {level.value}",
            extra={"feedback_item_id": str(item.id), "directive_level": level.value},
        )

        await self._send_confirmation(item, level, temporary=expires_at is not None)
        return ReportOutcome(report=report, created=True)

    async def _send_confirmation(self, item: FeedbackItem, level: BlockLevel, temporary: bool) -> None:
        if self.dispatcher is None or self.vault is None or not item.recipient_address_encrypted:
            logger.warning(f"Report confirmation for item {item.id} skipped: no delivery route")
            return
        address = self.vault.decrypt(
            item.recipient_address_encrypted,
            context=recipient_address_context(item.id),
        )
        await send_notice(
            self.dispatcher,
            address,
            templates.render_report_confirmation(level.value, temporary),
        )

    def lift_block(self, directive_id: UUID, note: Optional[str] = None) -> bool:
        """Lift a directive. Returns False when unknown or already lifted."""
        directive = self.db.query(BlockDirective).filter(BlockDirective.id == directive_id).first()
        if directive is None or directive.lifted_at is not None:
            return False

        directive.lifted_at = utcnow()
        log_audit_event(
            db=self.db,
            action="BLOCK_DIRECTIVE_LIFTED",
            entity_type="block_directive",
            entity_id=directive.id,
            metadata={"level": directive.level, "note": note},
        )
        self.db.flush()
        return True
