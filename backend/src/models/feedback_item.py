"""FeedbackItem model

The central entity of the relay: one row per admitted submission attempt.
Items move through the submission state machine (see submissions.status)
from ADMITTED to DELIVERED or REJECTED.

Sensitive columns are never stored in the clear:
- recipient_address_encrypted / sender_identity_encrypted hold identity
  vault envelopes bound to this item's id
- recipient_hash and fingerprint are keyed HMACs
"""

from typing import Dict, Any
from uuid import uuid4

from sqlalchemy import Column, Text, Integer, DateTime, Uuid, Index
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class FeedbackItem(Base):
    """Anonymous feedback submission.

    Lifecycle:
    1. Created after admission (status=ADMITTED)
    2. Screened and rewritten by the content pipeline (PROCESSING)
    3. Improved text proposed to the sender (AWAITING_APPROVAL)
    4. Sender accepts verbatim (APPROVED)
    5. Dispatched to the recipient (DELIVERED)

    A rejected item (content_blocked, withdrawn_by_sender) is terminal;
    resubmitting creates a new item.
    """

    __tablename__ = 'feedback_item'

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)

    # State machine
    status = Column(Text, nullable=False, default='DRAFT')
    rejection_reason = Column(Text, nullable=True, comment="content_blocked | withdrawn_by_sender")
    block_category = Column(Text, nullable=True, comment="Content category when content_blocked")
    block_reason = Column(Text, nullable=True, comment="Provider explanation, audit only")

    # Content
    raw_text = Column(Text, nullable=True)
    improved_text = Column(Text, nullable=True)
    category = Column(Text, nullable=True, comment="Optional sender-chosen topic")

    # Identity (pseudonymous / encrypted)
    fingerprint = Column(Text, nullable=False)
    recipient_hash = Column(Text, nullable=False)
    recipient_address_encrypted = Column(Text, nullable=True)
    sender_identity_encrypted = Column(Text, nullable=True)
    sender_identity_expires_at = Column(DateTime(timezone=True), nullable=True)

    # Pipeline bookkeeping
    pipeline_attempts = Column(Integer, nullable=False, default=0)
    last_pipeline_error = Column(Text, nullable=True)
    provider = Column(Text, nullable=True, comment="Provider that produced the last verdict")

    # Delivery bookkeeping
    delivery_attempts = Column(Integer, nullable=False, default=0)
    last_delivery_error = Column(Text, nullable=True)
    delivery_receipt_id = Column(Text, nullable=True)
    delivery_claimed_at = Column(DateTime(timezone=True), nullable=True, comment="Lease held by the delivery in progress")

    # Transition timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    admitted_at = Column(DateTime(timezone=True), nullable=True)
    processing_started_at = Column(DateTime(timezone=True), nullable=True)
    awaiting_approval_at = Column(DateTime(timezone=True), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    delivered_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    read_at = Column(DateTime(timezone=True), nullable=True)
    redacted_at = Column(DateTime(timezone=True), nullable=True)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index('ix_feedback_item_status', 'status'),
        Index('ix_feedback_item_recipient_hash', 'recipient_hash'),
        Index('ix_feedback_item_created_at', 'created_at'),
    )

    transitions = relationship(
        "FeedbackTransition",
        back_populates="feedback_item",
        cascade="all, delete-orphan",
        order_by="FeedbackTransition.created_at",
    )
    response = relationship(
        "FeedbackResponse",
        back_populates="feedback_item",
        uselist=False,
        cascade="all, delete-orphan",
    )

    @property
    def has_sender_identity(self) -> bool:
        return self.sender_identity_encrypted is not None

    def to_dict(self) -> Dict[str, Any]:
        """Non-sensitive summary for logs and admin tooling."""
        return {
            'id': str(self.id),
            'status': self.status,
            'rejection_reason': self.rejection_reason,
            'block_category': self.block_category,
            'pipeline_attempts': self.pipeline_attempts,
            'delivery_attempts': self.delivery_attempts,
            'created_at': self.created_at.isoformat() if self.created_at else None,
            'delivered_at': self.delivered_at.isoformat() if self.delivered_at else None,
        }

    def __repr__(self):
        return f"<FeedbackItem(id={self.id}, status={self.status})>"
