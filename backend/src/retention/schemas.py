"""Pydantic schemas for retention settings and statistics."""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field

from config import Settings


class RetentionSettings(BaseModel):
    """Retention periods in days.

    The two windows are independent. A sender identity never outlives
    its item: redacting an item removes its identity as well.
    """

    feedback_retention_days: int = Field(
        default=180,
        ge=1,
        le=3650,
        description="Days after creation before a finished item is redacted"
    )

    sender_identity_retention_days: int = Field(
        default=30,
        ge=1,
        le=3650,
        description="Days after submission before the sender address is deleted"
    )

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetentionSettings":
        return cls(
            feedback_retention_days=settings.FEEDBACK_RETENTION_DAYS,
            sender_identity_retention_days=settings.SENDER_IDENTITY_RETENTION_DAYS,
        )


class RetentionStatistics(BaseModel):
    """Result of one retention run."""
    job_started_at: datetime
    job_completed_at: datetime
    sender_identities_deleted: int = 0
    items_redacted: int = 0
    tokens_deleted: int = 0
    database_errors: int = 0

    @computed_field
    @property
    def duration_seconds(self) -> float:
        return (self.job_completed_at - self.job_started_at).total_seconds()

    @computed_field
    @property
    def total_records_affected(self) -> int:
        return self.sender_identities_deleted + self.items_redacted + self.tokens_deleted

    @property
    def has_errors(self) -> bool:
        return self.database_errors > 0
