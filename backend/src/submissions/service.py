"""Submission lifecycle service.

Drives a feedback item through the state machine, calling the admission
controller, the content pipeline and the delivery dispatcher at the
right transitions. Every transition is validated against
submissions.status, stamped on the item and recorded as a
FeedbackTransition row.

The service commits at each state boundary so that slow external calls
(provider round-trips, SMTP) never hold a database transaction open.
"""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID, uuid4

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from admission.controller import AdmissionController
from admission.fingerprint import FingerprintHasher, VisitorFingerprint
from audit.service import log_audit_event
from config import Settings, get_settings
from delivery import templates
from delivery.notifier import send_notice
from domain.delivery.ports import DeliveryDispatcherPort, TransportError
from domain.errors import ConflictError, ContentBlocked, DeliveryFailed, InvalidStateError, PipelineUnavailable
from models.access_token import TokenRole
from models.base import as_aware, utcnow
from models.feedback_item import FeedbackItem
from models.feedback_response import FeedbackResponse
from models.feedback_transition import FeedbackTransition
from observability.metrics import deliveries_total, state_transitions_total
from pipeline.content_pipeline import Blocked, ContentPipeline
from vault.identity_vault import IdentityVault, recipient_address_context, sender_identity_context
from vault.tokens import issue_token, resolve_token, revoke_token
from .status import FeedbackStatus, RejectionReason, validate_transition

logger = logging.getLogger(__name__)

TIMESTAMP_COLUMNS = {
    FeedbackStatus.ADMITTED: "admitted_at",
    FeedbackStatus.PROCESSING: "processing_started_at",
    FeedbackStatus.AWAITING_APPROVAL: "awaiting_approval_at",
    FeedbackStatus.APPROVED: "approved_at",
    FeedbackStatus.DELIVERED: "delivered_at",
    FeedbackStatus.REJECTED: "rejected_at",
}


@dataclass(frozen=True)
class VisitorContext:
    """Who is submitting, as far as the relay is allowed to know."""
    fingerprint: VisitorFingerprint
    network_key: str


@dataclass(frozen=True)
class NewSubmission:
    recipient_email: str
    text: str
    sender_email: Optional[str] = None
    category: Optional[str] = None
    honeypot: Optional[str] = None


@dataclass
class SubmissionResult:
    item: FeedbackItem
    sender_token: str


class SubmissionService:
    """Feedback item lifecycle.

    Example:
        service = SubmissionService(db, admission, pipeline, dispatcher, vault, hasher)
        result = await service.submit(NewSubmission(...), visitor)
        await service.approve(result.sender_token)
    """

    def __init__(
        self,
        db: Session,
        admission: AdmissionController,
        pipeline: ContentPipeline,
        dispatcher: DeliveryDispatcherPort,
        vault: IdentityVault,
        hasher: FingerprintHasher,
        settings: Optional[Settings] = None,
    ):
        self.db = db
        self.admission = admission
        self.pipeline = pipeline
        self.dispatcher = dispatcher
        self.vault = vault
        self.hasher = hasher
        self.settings = settings or get_settings()

    # Sender operations

    async def submit(self, submission: NewSubmission, visitor: VisitorContext) -> SubmissionResult:
        """Admit, persist and process a new submission.

        A denied attempt is never persisted. An admitted attempt always
        yields a new item, even when the pipeline is unavailable.

        Raises:
            AdmissionDenied: Admission controller refused the attempt
            ContentBlocked: Screening refused the text (item kept as REJECTED)
        """
        recipient_hash = self.hasher.recipient_hash(submission.recipient_email)

        decision = self.admission.admit(
            fingerprint=visitor.fingerprint,
            recipient_hash=recipient_hash,
            network_key=visitor.network_key,
            honeypot=submission.honeypot,
        )
        decision.raise_for_denial()

        now = utcnow()
        item = FeedbackItem(
            id=uuid4(),
            status=FeedbackStatus.DRAFT.value,
            raw_text=submission.text,
            category=submission.category,
            fingerprint=visitor.fingerprint.value,
            recipient_hash=recipient_hash,
            pipeline_attempts=0,
            delivery_attempts=0,
            created_at=now,
        )
        item.recipient_address_encrypted = self.vault.encrypt(
            submission.recipient_email.strip(),
            context=recipient_address_context(item.id),
        )
        if submission.sender_email:
            item.sender_identity_encrypted = self.vault.encrypt(
                submission.sender_email.strip(),
                context=sender_identity_context(item.id),
            )
            item.sender_identity_expires_at = now + timedelta(days=self.settings.SENDER_IDENTITY_RETENTION_DAYS)

        self.db.add(item)
        self._transition(item, FeedbackStatus.ADMITTED)
        sender_token = self._issue_sender_token(item)
        self.db.commit()

        logger.info(
            f"Feedback item {item.id} admitted",
            extra={"feedback_item_id": str(item.id), "fingerprint": visitor.fingerprint.short},
        )

        await self._process(item)

        if item.status != FeedbackStatus.REJECTED.value:
            await self._notify_sender(item, templates.render_sender_confirmation(sender_token))

        if item.status == FeedbackStatus.REJECTED.value:
            raise ContentBlocked(item.block_category, item_id=str(item.id))

        return SubmissionResult(item=item, sender_token=sender_token)

    async def retry_processing(self, sender_token: str) -> FeedbackItem:
        """Re-run the pipeline for an item left pending by an outage.

        Raises:
            AccessDenied: Invalid sender token
            InvalidStateError: Item is not waiting for the pipeline
            ContentBlocked: Screening refused the text
        """
        item = self._load_for_sender(sender_token, lock=True)
        if item.status not in (FeedbackStatus.ADMITTED.value, FeedbackStatus.PROCESSING.value):
            raise InvalidStateError("Feedback is not waiting for processing")

        await self._process(item)
        self._raise_if_blocked(item)
        return item

    async def edit(self, sender_token: str, text: str) -> FeedbackItem:
        """Replace the text and send it back through the pipeline.

        Admission is not re-run: the attempt was already gated.

        Raises:
            AccessDenied: Invalid sender token
            StateTransitionError: Item is not awaiting approval
            ContentBlocked: Screening refused the edited text
        """
        item = self._load_for_sender(sender_token, lock=True)
        validate_transition(FeedbackStatus(item.status), FeedbackStatus.PROCESSING)

        item.raw_text = text
        item.improved_text = None
        self.db.commit()

        await self._process(item)
        self._raise_if_blocked(item)
        return item

    async def approve(self, sender_token: str) -> FeedbackItem:
        """Accept the improved text verbatim and attempt delivery.

        A transport failure leaves the item APPROVED for the delivery
        worker; it is not surfaced to the sender.
        """
        item = self._load_for_sender(sender_token, lock=True)
        self._transition(item, FeedbackStatus.APPROVED)
        item.delivery_claimed_at = utcnow()
        self.db.commit()

        try:
            await self.deliver(item, sender_token=sender_token)
        except DeliveryFailed:
            logger.info(
                f"Item {item.id} left approved for the delivery worker",
                extra={"feedback_item_id": str(item.id)},
            )
        return item

    def withdraw(self, sender_token: str) -> FeedbackItem:
        item = self._load_for_sender(sender_token, lock=True)
        self._transition(item, FeedbackStatus.REJECTED, reason=RejectionReason.WITHDRAWN_BY_SENDER.value)
        item.rejection_reason = RejectionReason.WITHDRAWN_BY_SENDER.value
        log_audit_event(
            db=self.db,
            action="FEEDBACK_WITHDRAWN",
            entity_type="feedback_item",
            entity_id=item.id,
        )
        self.db.commit()
        return item

    def view_for_sender(self, sender_token: str) -> FeedbackItem:
        return self._load_for_sender(sender_token)

    def delete_sender_identity(self, sender_token: str) -> FeedbackItem:
        """Erase the sender's encrypted address on request."""
        item = self._load_for_sender(sender_token, lock=True)
        had_identity = item.has_sender_identity
        item.sender_identity_encrypted = None
        item.sender_identity_expires_at = None
        if had_identity:
            log_audit_event(
                db=self.db,
                action="SENDER_IDENTITY_DELETED",
                entity_type="feedback_item",
                entity_id=item.id,
                metadata={"trigger": "sender_request"},
            )
        self.db.commit()
        return item

    # Recipient operations

    def view_for_recipient(self, recipient_token: str) -> FeedbackItem:
        """Return the delivered item, marking it read on first view."""
        item = self._load_for_recipient(recipient_token)
        if item.read_at is None:
            item.read_at = utcnow()
            self.db.commit()
        return item

    async def respond(self, recipient_token: str, body: str) -> FeedbackResponse:
        """Store the recipient's one-time reply.

        Raises:
            AccessDenied: Invalid recipient token
            ConflictError: Item already has a reply
        """
        item = self._load_for_recipient(recipient_token, lock=True)
        if item.response is not None:
            raise ConflictError("This feedback already has a response")

        response = FeedbackResponse(feedback_item_id=item.id, body=body, created_at=utcnow())
        self.db.add(response)
        try:
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise ConflictError("This feedback already has a response")

        logger.info(f"Response recorded for item {item.id}", extra={"feedback_item_id": str(item.id)})

        if self.sender_address(item) is not None:
            sender_token = self._issue_sender_token(item)
            self.db.commit()
            await self._notify_sender(item, templates.render_response_notice(sender_token))
        return response

    # Delivery

    def claim_delivery(self, item_id: UUID) -> Optional[FeedbackItem]:
        """Take the delivery lease on an APPROVED item.

        approve() takes the lease in the same commit as the transition, so
        the worker never dispatches an item the sender's request is still
        delivering. A lease older than DELIVERY_CLAIM_LEASE_SECONDS is
        considered abandoned and may be taken over.

        Returns:
            The claimed item, or None if it is not APPROVED or already claimed
        """
        now = utcnow()
        stale_before = now - timedelta(seconds=self.settings.DELIVERY_CLAIM_LEASE_SECONDS)
        result = self.db.execute(
            update(FeedbackItem)
            .where(
                FeedbackItem.id == item_id,
                FeedbackItem.status == FeedbackStatus.APPROVED.value,
                or_(
                    FeedbackItem.delivery_claimed_at.is_(None),
                    FeedbackItem.delivery_claimed_at < stale_before,
                ),
            )
            .values(delivery_claimed_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount != 1:
            return None

        item = self._load(item_id)
        self.db.refresh(item)
        return item

    async def deliver(self, item: FeedbackItem, sender_token: Optional[str] = None) -> None:
        """Dispatch an APPROVED item to its recipient.

        Issues the recipient token, renders the approved text and hands it
        to the dispatcher once. The caller holds the delivery lease
        (approve or claim_delivery); it is released either way. On failure
        the token is revoked, the attempt is counted and the item stays
        APPROVED.

        Raises:
            InvalidStateError: Item is not APPROVED
            DeliveryFailed: Transport refused the message (failure recorded)
        """
        if item.status != FeedbackStatus.APPROVED.value:
            raise InvalidStateError("Only approved feedback can be delivered")

        recipient_token = issue_token(
            self.db,
            item.id,
            TokenRole.RECIPIENT,
            ttl=timedelta(days=self.settings.RECIPIENT_TOKEN_TTL_DAYS),
        )
        address = self.vault.decrypt(
            item.recipient_address_encrypted,
            context=recipient_address_context(item.id),
        )
        message = templates.render_feedback(item.improved_text, recipient_token)

        try:
            receipt = await self.dispatcher.dispatch(address, message)
        except TransportError as e:
            revoke_token(self.db, recipient_token)
            item.delivery_attempts = (item.delivery_attempts or 0) + 1
            item.last_delivery_error = str(e)
            item.delivery_claimed_at = None
            self.db.commit()
            deliveries_total.labels(kind=message.kind, status="error").inc()
            logger.warning(
                f"Delivery of item {item.id} failed (attempt {item.delivery_attempts}): {e}",
                extra={"feedback_item_id": str(item.id), "transient": e.transient},
            )
            raise DeliveryFailed(str(e)) from e

        item.delivery_attempts = (item.delivery_attempts or 0) + 1
        item.delivery_receipt_id = receipt.receipt_id
        item.last_delivery_error = None
        item.delivery_claimed_at = None
        self._transition(item, FeedbackStatus.DELIVERED)
        self.db.commit()
        deliveries_total.labels(kind=message.kind, status="success").inc()

        if self.sender_address(item) is not None:
            if sender_token is None:
                sender_token = self._issue_sender_token(item)
                self.db.commit()
            await self._notify_sender(item, templates.render_delivered_notice(sender_token))

    # Internals

    async def _process(self, item: FeedbackItem) -> None:
        """Run the content pipeline and apply its verdict.

        On PipelineUnavailable the item stays PROCESSING and the failure
        is recorded; the sender may retry.
        """
        if item.status != FeedbackStatus.PROCESSING.value:
            self._transition(item, FeedbackStatus.PROCESSING)
        item.pipeline_attempts = (item.pipeline_attempts or 0) + 1
        self.db.commit()

        try:
            result = await self.pipeline.evaluate(item.raw_text)
        except PipelineUnavailable as e:
            item.last_pipeline_error = ", ".join(e.attempts) or "unavailable"
            self.db.commit()
            logger.warning(
                f"Item {item.id} left in processing: pipeline unavailable",
                extra={"feedback_item_id": str(item.id), "pipeline_attempts": item.pipeline_attempts},
            )
            return

        item.provider = result.provider
        item.last_pipeline_error = None

        if isinstance(result, Blocked):
            item.block_category = result.category
            item.block_reason = result.reason
            item.rejection_reason = RejectionReason.CONTENT_BLOCKED.value
            self._transition(item, FeedbackStatus.REJECTED, reason=RejectionReason.CONTENT_BLOCKED.value)
        else:
            item.improved_text = result.text
            self._transition(item, FeedbackStatus.AWAITING_APPROVAL)

        self.db.commit()

    def _transition(self, item: FeedbackItem, new_status: FeedbackStatus, reason: Optional[str] = None) -> None:
        current = FeedbackStatus(item.status)
        validate_transition(current, new_status)

        now = utcnow()
        item.status = new_status.value
        setattr(item, TIMESTAMP_COLUMNS[new_status], now)
        self.db.add(FeedbackTransition(
            feedback_item_id=item.id,
            from_status=current.value,
            to_status=new_status.value,
            reason=reason,
            created_at=now,
        ))

        state_transitions_total.labels(from_status=current.value, to_status=new_status.value).inc()
        logger.info(
            f"Feedback item {item.id}: {current.value} -> {new_status.value}",
            extra={"feedback_item_id": str(item.id), "from_status": current.value, "to_status": new_status.value},
        )

    def _issue_sender_token(self, item: FeedbackItem) -> str:
        return issue_token(
            self.db,
            item.id,
            TokenRole.SENDER,
            ttl=timedelta(days=self.settings.SENDER_TOKEN_TTL_DAYS),
        )

    def _raise_if_blocked(self, item: FeedbackItem) -> None:
        if item.status == FeedbackStatus.REJECTED.value and item.rejection_reason == RejectionReason.CONTENT_BLOCKED.value:
            raise ContentBlocked(item.block_category, item_id=str(item.id))

    def _load(self, item_id: UUID, lock: bool = False) -> FeedbackItem:
        query = self.db.query(FeedbackItem).filter(FeedbackItem.id == item_id)
        if lock:
            query = query.with_for_update()
        return query.one()

    def _load_for_sender(self, sender_token: str, lock: bool = False) -> FeedbackItem:
        resolved = resolve_token(self.db, sender_token, role=TokenRole.SENDER)
        return self._load(resolved.feedback_item_id, lock=lock)

    def _load_for_recipient(self, recipient_token: str, lock: bool = False) -> FeedbackItem:
        resolved = resolve_token(self.db, recipient_token, role=TokenRole.RECIPIENT)
        return self._load(resolved.feedback_item_id, lock=lock)

    def sender_address(self, item: FeedbackItem) -> Optional[str]:
        """Decrypt the sender address if present and within retention."""
        if not item.sender_identity_encrypted:
            return None
        if item.sender_identity_expires_at and as_aware(item.sender_identity_expires_at) <= utcnow():
            return None
        return self.vault.decrypt(item.sender_identity_encrypted, context=sender_identity_context(item.id))

    async def _notify_sender(self, item: FeedbackItem, message) -> None:
        address = self.sender_address(item)
        if address is None:
            return
        await send_notice(self.dispatcher, address, message)
