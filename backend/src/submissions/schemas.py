"""Pydantic schemas for feedback submission endpoints"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from config import get_settings
from pipeline.content_pipeline import category_message
from models.feedback_item import FeedbackItem


def _check_length(text: str) -> str:
    settings = get_settings()
    stripped = text.strip()
    if len(stripped) < settings.MIN_MESSAGE_LENGTH:
        raise ValueError(f"Message must be at least {settings.MIN_MESSAGE_LENGTH} characters")
    if len(stripped) > settings.MAX_MESSAGE_LENGTH:
        raise ValueError(f"Message must be at most {settings.MAX_MESSAGE_LENGTH} characters")
    return stripped


# ============================================================================
# Requests
# ============================================================================

class SubmitFeedbackRequest(BaseModel):
    """Body of POST /feedback"""
    recipient_email: EmailStr = Field(..., description="Where the feedback should be delivered")
    content: str = Field(..., description="Feedback text")
    sender_email: Optional[EmailStr] = Field(
        None,
        description="Optional address for confirmations; stored encrypted, never shown to the recipient",
    )
    category: Optional[str] = Field(None, max_length=64, description="Optional topic (e.g. work, communication)")
    website: Optional[str] = Field(None, description="Leave empty")

    model_config = ConfigDict(extra='forbid')

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        return _check_length(value)


class EditFeedbackRequest(BaseModel):
    content: str = Field(..., description="Edited feedback text")

    model_config = ConfigDict(extra='forbid')

    @field_validator("content")
    @classmethod
    def validate_content(cls, value: str) -> str:
        return _check_length(value)


class RespondRequest(BaseModel):
    body: str = Field(..., min_length=1, max_length=5000, description="One-time reply to the sender")

    model_config = ConfigDict(extra='forbid')


def _delivery_status(item: FeedbackItem) -> Optional[str]:
    if item.status != "APPROVED":
        return None
    if (item.delivery_attempts or 0) >= get_settings().DELIVERY_MAX_ATTEMPTS:
        return "failed"
    return "pending"


# ============================================================================
# Responses
# ============================================================================

class SubmitFeedbackResponse(BaseModel):
    """Response for POST /feedback.

    The sender token is the only way to review, approve or withdraw the
    submission. It is shown once.
    """
    id: str = Field(..., description="Feedback item ID")
    status: str = Field(..., description="AWAITING_APPROVAL, or PROCESSING when the pipeline is pending")
    sender_token: str = Field(..., description="Sender access token")
    improved_content: Optional[str] = Field(None, description="Suggested rewrite, when available")

    class Config:
        json_schema_extra = {
            "example": {
                "id": "123e4567-e89b-12d3-a456-426614174000",
                "status": "AWAITING_APPROVAL",
                "sender_token": "Zx4...",
                "improved_content": "I'd appreciate more notice before deadlines change.",
            }
        }


class SenderView(BaseModel):
    """What the sender sees through their access link."""
    id: str
    status: str
    content: Optional[str] = None
    improved_content: Optional[str] = None
    rejection_reason: Optional[str] = None
    block_category: Optional[str] = None
    block_message: Optional[str] = None
    has_sender_identity: bool
    delivery_status: Optional[str] = Field(None, description="pending | failed while approved but not yet delivered")
    delivered_at: Optional[datetime] = None
    response: Optional[str] = None
    responded_at: Optional[datetime] = None

    @classmethod
    def from_item(cls, item: FeedbackItem) -> "SenderView":
        return cls(
            id=str(item.id),
            status=item.status,
            content=item.raw_text,
            improved_content=item.improved_text,
            rejection_reason=item.rejection_reason,
            block_category=item.block_category,
            block_message=category_message(item.block_category) if item.block_category else None,
            has_sender_identity=item.has_sender_identity,
            delivery_status=_delivery_status(item),
            delivered_at=item.delivered_at,
            response=item.response.body if item.response else None,
            responded_at=item.response.created_at if item.response else None,
        )


class RecipientView(BaseModel):
    """What the recipient sees: only the approved text, never sender data."""
    id: str
    status: str
    content: Optional[str] = None
    category: Optional[str] = None
    delivered_at: Optional[datetime] = None
    read_at: Optional[datetime] = None
    can_respond: bool

    @classmethod
    def from_item(cls, item: FeedbackItem) -> "RecipientView":
        return cls(
            id=str(item.id),
            status=item.status,
            content=item.improved_text,
            category=item.category,
            delivered_at=item.delivered_at,
            read_at=item.read_at,
            can_respond=item.response is None,
        )


class RespondResponse(BaseModel):
    id: str = Field(..., description="Response ID")
    feedback_id: str
    created_at: datetime
