"""Feedback item status state machine.

State Flow:
    DRAFT → ADMITTED → PROCESSING → AWAITING_APPROVAL → APPROVED → DELIVERED
                                  ↘ REJECTED (blocked by content screening)

    AWAITING_APPROVAL → PROCESSING  (sender edited, text is re-screened)
    AWAITING_APPROVAL → REJECTED    (sender withdrew)

Terminal States: DELIVERED, REJECTED
"""

from enum import Enum
from typing import List


class FeedbackStatus(str, Enum):
    """Feedback item status enumeration."""
    DRAFT = "DRAFT"
    ADMITTED = "ADMITTED"
    PROCESSING = "PROCESSING"
    AWAITING_APPROVAL = "AWAITING_APPROVAL"
    APPROVED = "APPROVED"
    DELIVERED = "DELIVERED"
    REJECTED = "REJECTED"


class RejectionReason(str, Enum):
    CONTENT_BLOCKED = "content_blocked"
    WITHDRAWN_BY_SENDER = "withdrawn_by_sender"


ALLOWED_TRANSITIONS = {
    FeedbackStatus.DRAFT: [FeedbackStatus.ADMITTED],
    FeedbackStatus.ADMITTED: [FeedbackStatus.PROCESSING],
    FeedbackStatus.PROCESSING: [
        FeedbackStatus.AWAITING_APPROVAL,
        FeedbackStatus.REJECTED,
    ],
    FeedbackStatus.AWAITING_APPROVAL: [
        FeedbackStatus.PROCESSING,
        FeedbackStatus.APPROVED,
        FeedbackStatus.REJECTED,
    ],
    FeedbackStatus.APPROVED: [FeedbackStatus.DELIVERED],
    FeedbackStatus.DELIVERED: [],  # Terminal state
    FeedbackStatus.REJECTED: [],  # Terminal state
}

TERMINAL_STATES = frozenset(
    status for status, targets in ALLOWED_TRANSITIONS.items() if not targets
)


class StateTransitionError(Exception):
    """Raised when an invalid state transition is attempted."""
    pass


def validate_transition(
    current_status: FeedbackStatus,
    new_status: FeedbackStatus
) -> None:
    """Validate that a state transition is allowed.

    Args:
        current_status: Current feedback item status
        new_status: Target status to transition to

    Raises:
        StateTransitionError: If transition is not allowed
    """
    allowed = ALLOWED_TRANSITIONS.get(current_status, [])
    if new_status not in allowed:
        raise StateTransitionError(
            f"Invalid transition: {current_status.value} -> {new_status.value}. "
            f"Allowed transitions from {current_status.value}: "
            f"{[s.value for s in allowed]}"
        )


def can_transition(
    current_status: FeedbackStatus,
    new_status: FeedbackStatus
) -> bool:
    """Check if a state transition is allowed without raising exception."""
    return new_status in ALLOWED_TRANSITIONS.get(current_status, [])


def get_allowed_transitions(status: FeedbackStatus) -> List[FeedbackStatus]:
    return ALLOWED_TRANSITIONS.get(status, [])


def is_terminal(status: FeedbackStatus) -> bool:
    return status in TERMINAL_STATES
