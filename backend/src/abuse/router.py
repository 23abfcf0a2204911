"""Abuse report endpoint.

Reporting is available to the recipient only, through the access link
delivered with the feedback. Reports are idempotent per item.
"""

from typing import Optional

from fastapi import APIRouter, Body, Depends, Response, status
from sqlalchemy.orm import Session

from database import get_db
from dependencies import get_abuse_registry
from models.access_token import TokenRole
from models.feedback_item import FeedbackItem
from vault.tokens import resolve_token
from .registry import AbuseRegistry
from .schemas import ReportRequest, ReportResponse


router = APIRouter(prefix="/feedback", tags=["abuse"])


@router.post(
    "/{recipient_token}/report",
    response_model=ReportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Report feedback as abusive",
    description="""
    Files an abuse report and blocks future submissions.

    **Directive levels:**
    - default: block this sender for this recipient
    - `escalate_global`: block all senders for this recipient
    - `duration_days`: make the block temporary

    Already delivered items are not affected. A repeated report returns
    the original one with status 200.
    """
)
async def report_feedback(
    recipient_token: str,
    response: Response,
    body: Optional[ReportRequest] = Body(None),
    db: Session = Depends(get_db),
    registry: AbuseRegistry = Depends(get_abuse_registry),
) -> ReportResponse:
    resolved = resolve_token(db, recipient_token, role=TokenRole.RECIPIENT)
    item = db.query(FeedbackItem).filter(FeedbackItem.id == resolved.feedback_item_id).one()

    body = body or ReportRequest()
    outcome = await registry.report(
        item,
        escalate_global=body.escalate_global,
        duration_days=body.duration_days,
    )
    db.commit()

    if not outcome.created:
        response.status_code = status.HTTP_200_OK

    report = outcome.report
    return ReportResponse(
        report_id=str(report.id),
        directive_level=report.directive_level,
        expires_at=report.directive_expires_at,
        created=outcome.created,
    )
