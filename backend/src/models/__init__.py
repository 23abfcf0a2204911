"""SQLAlchemy models for the feedback relay"""

from .base import Base, PortableJSONB, utcnow
from .feedback_item import FeedbackItem
from .feedback_transition import FeedbackTransition
from .feedback_response import FeedbackResponse
from .access_token import AccessToken, TokenRole
from .abuse_report import AbuseReport, BlockDirective, BlockLevel
from .audit_log import AuditLog

__all__ = [
    "Base",
    "PortableJSONB",
    "utcnow",
    "FeedbackItem",
    "FeedbackTransition",
    "FeedbackResponse",
    "AccessToken",
    "TokenRole",
    "AbuseReport",
    "BlockDirective",
    "BlockLevel",
    "AuditLog",
]
