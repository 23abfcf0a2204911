"""Pydantic schemas for abuse reporting endpoints."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class ReportRequest(BaseModel):
    """Optional body of a report. An empty body files a permanent sender-specific block."""
    escalate_global: bool = Field(
        False,
        description="Refuse all future anonymous feedback, from any sender",
    )
    duration_days: Optional[int] = Field(
        None,
        ge=1,
        le=365,
        description="Make the block temporary (days); omit for permanent",
    )


class ReportResponse(BaseModel):
    report_id: str = Field(..., description="Abuse report ID")
    directive_level: str = Field(..., description="sender_specific | global")
    expires_at: Optional[datetime] = Field(None, description="When the block reverts, if temporary")
    created: bool = Field(..., description="False when the item had already been reported")

    class Config:
        json_schema_extra = {
            "example": {
                "report_id": "550e8400-e29b-41d4-a716-446655440000",
                "directive_level": "sender_specific",
                "expires_at": None,
                "created": True,
            }
        }
