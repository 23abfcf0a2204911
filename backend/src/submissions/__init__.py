"""Feedback submissions: state machine, lifecycle service and API.

Only the state machine is exported here; import the service and router
from their modules.
"""

from .status import (
    FeedbackStatus,
    RejectionReason,
    StateTransitionError,
    validate_transition,
    can_transition,
    get_allowed_transitions,
    is_terminal,
)

__all__ = [
    "FeedbackStatus",
    "RejectionReason",
    "StateTransitionError",
    "validate_transition",
    "can_transition",
    "get_allowed_transitions",
    "is_terminal",
]
