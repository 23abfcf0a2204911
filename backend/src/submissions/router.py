"""Feedback API Router - submission, sender and recipient endpoints.

Sender endpoints are addressed by the sender access token, recipient
endpoints by the recipient access token. Tokens are the only credential;
an unknown, revoked or expired token always yields the same 403.
"""

from fastapi import APIRouter, Depends, Response, status

from dependencies import get_submission_service, get_visitor
from .schemas import (
    EditFeedbackRequest,
    RecipientView,
    RespondRequest,
    RespondResponse,
    SenderView,
    SubmitFeedbackRequest,
    SubmitFeedbackResponse,
)
from .service import NewSubmission, SubmissionService, VisitorContext
from .status import FeedbackStatus


router = APIRouter(prefix="/feedback", tags=["feedback"])


@router.post(
    "",
    response_model=SubmitFeedbackResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit anonymous feedback",
    description="""
    Submit feedback for a recipient. The text is screened and rewritten
    before anything is sent; the sender must approve the rewrite.

    **Responses:**
    - 201: Rewrite ready for approval
    - 202: Accepted, content pipeline temporarily unavailable (retry later)
    - 403: `blocked` or `bot_suspected`
    - 422: Content blocked (category only) or invalid input
    - 429: `rate_limited` with the limiter that fired
    - 503: `service_unavailable`
    """
)
async def submit_feedback(
    body: SubmitFeedbackRequest,
    response: Response,
    visitor: VisitorContext = Depends(get_visitor),
    service: SubmissionService = Depends(get_submission_service),
) -> SubmitFeedbackResponse:
    result = await service.submit(
        NewSubmission(
            recipient_email=body.recipient_email,
            text=body.content,
            sender_email=body.sender_email,
            category=body.category,
            honeypot=body.website,
        ),
        visitor,
    )
    item = result.item
    if item.status != FeedbackStatus.AWAITING_APPROVAL.value:
        response.status_code = status.HTTP_202_ACCEPTED

    return SubmitFeedbackResponse(
        id=str(item.id),
        status=item.status,
        sender_token=result.sender_token,
        improved_content=item.improved_text,
    )


# ============================================================================
# Sender endpoints
# ============================================================================

@router.get("/sender/{sender_token}", response_model=SenderView, summary="View own submission")
def view_as_sender(
    sender_token: str,
    service: SubmissionService = Depends(get_submission_service),
) -> SenderView:
    return SenderView.from_item(service.view_for_sender(sender_token))


@router.post(
    "/sender/{sender_token}/edit",
    response_model=SenderView,
    summary="Edit and re-screen",
    description="AWAITING_APPROVAL → PROCESSING → AWAITING_APPROVAL (or REJECTED if screening blocks the edit).",
)
async def edit_feedback(
    sender_token: str,
    body: EditFeedbackRequest,
    service: SubmissionService = Depends(get_submission_service),
) -> SenderView:
    item = await service.edit(sender_token, body.content)
    return SenderView.from_item(item)


@router.post(
    "/sender/{sender_token}/approve",
    response_model=SenderView,
    summary="Approve the rewrite as-is",
    description="AWAITING_APPROVAL → APPROVED → DELIVERED. If the mail transport is down the item stays APPROVED and is retried.",
)
async def approve_feedback(
    sender_token: str,
    service: SubmissionService = Depends(get_submission_service),
) -> SenderView:
    item = await service.approve(sender_token)
    return SenderView.from_item(item)


@router.post("/sender/{sender_token}/withdraw", response_model=SenderView, summary="Withdraw before approval")
def withdraw_feedback(
    sender_token: str,
    service: SubmissionService = Depends(get_submission_service),
) -> SenderView:
    return SenderView.from_item(service.withdraw(sender_token))


@router.post(
    "/sender/{sender_token}/retry",
    response_model=SenderView,
    summary="Retry processing after an outage",
)
async def retry_feedback(
    sender_token: str,
    response: Response,
    service: SubmissionService = Depends(get_submission_service),
) -> SenderView:
    item = await service.retry_processing(sender_token)
    if item.status == FeedbackStatus.PROCESSING.value:
        response.status_code = status.HTTP_202_ACCEPTED
    return SenderView.from_item(item)


@router.delete(
    "/sender/{sender_token}/identity",
    response_model=SenderView,
    summary="Delete stored sender address",
)
def delete_identity(
    sender_token: str,
    service: SubmissionService = Depends(get_submission_service),
) -> SenderView:
    return SenderView.from_item(service.delete_sender_identity(sender_token))


# ============================================================================
# Recipient endpoints
# ============================================================================

@router.get("/{recipient_token}", response_model=RecipientView, summary="Read delivered feedback")
def view_as_recipient(
    recipient_token: str,
    service: SubmissionService = Depends(get_submission_service),
) -> RecipientView:
    return RecipientView.from_item(service.view_for_recipient(recipient_token))


@router.post(
    "/{recipient_token}/respond",
    response_model=RespondResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Reply once",
    description="Stores a one-time reply. A second reply returns 409.",
)
async def respond_to_feedback(
    recipient_token: str,
    body: RespondRequest,
    service: SubmissionService = Depends(get_submission_service),
) -> RespondResponse:
    reply = await service.respond(recipient_token, body.body)
    return RespondResponse(id=str(reply.id), feedback_id=str(reply.feedback_item_id), created_at=reply.created_at)
