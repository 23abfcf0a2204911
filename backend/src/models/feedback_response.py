"""FeedbackResponse model - the recipient's single reply to an item"""

from uuid import uuid4

from sqlalchemy import Column, Text, DateTime, ForeignKey, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class FeedbackResponse(Base):
    """One-time recipient reply. The unique constraint enforces a single reply."""
    __tablename__ = "feedback_response"
    __table_args__ = (
        UniqueConstraint("feedback_item_id", name="uq_feedback_response_item"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    feedback_item_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("feedback_item.id", ondelete="CASCADE"),
        nullable=False,
    )
    body = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    feedback_item = relationship("FeedbackItem", back_populates="response")
