"""FeedbackTransition model - append-only audit of state transitions"""

from uuid import uuid4

from sqlalchemy import Column, Text, DateTime, ForeignKey, Uuid, Index
from sqlalchemy.orm import relationship

from .base import Base, utcnow


class FeedbackTransition(Base):
    """One row per state change of a FeedbackItem.

    Rows are never updated. from_status is NULL for the initial DRAFT record.
    """
    __tablename__ = "feedback_transition"
    __table_args__ = (
        Index("ix_feedback_transition_item_created", "feedback_item_id", "created_at"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    feedback_item_id = Column(
        Uuid(as_uuid=True),
        ForeignKey("feedback_item.id", ondelete="CASCADE"),
        nullable=False,
    )
    from_status = Column(Text, nullable=True)
    to_status = Column(Text, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    feedback_item = relationship("FeedbackItem", back_populates="transitions")

    def __repr__(self):
        return (
            f"<FeedbackTransition(item={self.feedback_item_id}, "
            f"{self.from_status} -> {self.to_status})>"
        )
