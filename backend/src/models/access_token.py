"""AccessToken model

Opaque access links for recipients and senders. Only the SHA-256 hash of a
token is stored; the raw value exists in the issuing response or email.
"""

from enum import Enum as PyEnum
from uuid import uuid4

from sqlalchemy import Column, Text, DateTime, ForeignKey, Uuid, Index

from .base import Base, utcnow


class TokenRole(str, PyEnum):
    """Who an access token speaks for"""
    RECIPIENT = "recipient"
    SENDER = "sender"


class AccessToken(Base):
    __tablename__ = "access_token"
    __table_args__ = (
        Index("ix_access_token_hash", "token_hash", unique=True),
        Index("ix_access_token_item", "feedback_item_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    token_hash = Column(Text, nullable=False)
    feedback_item_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("feedback_item.id", ondelete="CASCADE"),
        nullable=False,
    )
    role = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=True)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<AccessToken(id={self.id}, item={self.feedback_item_id}, role={self.role})>"
