"""AbuseReport and BlockDirective models

A recipient reports a delivered item; the report yields a forward-only
block directive consulted by the admission controller.
"""

from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, Text, DateTime, ForeignKey, Uuid, Index, UniqueConstraint

from .base import Base, utcnow


class BlockLevel(str, PyEnum):
    """Scope of a block directive"""
    NONE = "none"
    SENDER_SPECIFIC = "sender_specific"
    GLOBAL = "global"


class AbuseReport(Base):
    """Recipient report against a delivered item (one per item)."""
    __tablename__ = "abuse_report"
    __table_args__ = (
        UniqueConstraint("feedback_item_id", name="uq_abuse_report_item"),
        Index("ix_abuse_report_recipient_hash", "recipient_hash"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    feedback_item_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("feedback_item.id", ondelete="SET NULL"),
        nullable=True,
    )
    recipient_hash = Column(Text, nullable=False)
    fingerprint = Column(Text, nullable=False)
    directive_level = Column(Text, nullable=False)
    directive_expires_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    def __repr__(self):
        return f"<AbuseReport(id={self.id}, level={self.directive_level})>"


class BlockDirective(Base):
    """Active suppression rule.

    fingerprint is NULL for GLOBAL directives. expires_at NULL means
    permanent; a passed expires_at reverts the directive to no block.
    """
    __tablename__ = "block_directive"
    __table_args__ = (
        Index("ix_block_directive_recipient", "recipient_hash", "fingerprint"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    level = Column(Text, nullable=False)
    recipient_hash = Column(Text, nullable=False)
    fingerprint = Column(Text, nullable=True)
    report_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("abuse_report.id", ondelete="SET NULL"),
        nullable=True,
    )
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    lifted_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return (
            f"<BlockDirective(id={self.id}, level={self.level}, "
            f"expires_at={self.expires_at})>"
        )
