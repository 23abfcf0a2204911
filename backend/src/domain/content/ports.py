"""
Content Provider Port - Abstract interface for AI content providers.

Hexagonal Architecture: This is a domain port that infrastructure adapters implement.
The content pipeline depends on this port, never on a vendor SDK or schema.

One provider round-trip does both jobs: screening for disallowed content
and proposing a constructive rewrite.
"""

from abc import ABC, abstractmethod
from typing import Literal, Optional

from pydantic import BaseModel, model_validator


BLOCK_CATEGORIES = (
    "harassment",
    "hate",
    "threat",
    "self_harm",
    "sexual",
    "personal_data",
    "spam",
    "other",
)


class ProviderVerdict(BaseModel):
    """
    Normalized provider answer.

    decision="blocked" must carry a reason; decision="ok" must carry the
    rewritten text. Anything else is an invalid response, which the
    pipeline treats as a provider failure rather than a content decision.

    Attributes:
        decision: 'blocked' or 'ok'
        reason: Human-readable explanation when blocked (audit only)
        category: One of BLOCK_CATEGORIES when blocked
        rewritten_text: Improved, style-normalized text when ok
    """
    decision: Literal["blocked", "ok"]
    reason: Optional[str] = None
    category: Optional[str] = None
    rewritten_text: Optional[str] = None

    @model_validator(mode="after")
    def check_decision_payload(self) -> "ProviderVerdict":
        if self.decision == "blocked":
            if not self.reason or not self.reason.strip():
                raise ValueError("blocked verdict requires a reason")
            if self.category not in BLOCK_CATEGORIES:
                self.category = "other"
        else:
            if not self.rewritten_text or not self.rewritten_text.strip():
                raise ValueError("ok verdict requires rewritten_text")
        return self


class ContentProviderPort(ABC):
    """
    Abstract interface for content providers.

    Implementations must handle:
    - API authentication
    - Request formatting for the vendor
    - Mapping vendor errors onto the ProviderError hierarchy
    - Validating the vendor's answer into a ProviderVerdict
    """

    name: str = "provider"

    @abstractmethod
    async def screen_and_rewrite(self, text: str) -> ProviderVerdict:
        """
        Screen text and propose a rewrite in a single round-trip.

        Args:
            text: Sender's message text

        Returns:
            ProviderVerdict

        Raises:
            ProviderTimeoutError: Request timed out
            ProviderRateLimitError: Rate limit exceeded
            ProviderAuthError: Authentication failed
            ProviderServiceError: Provider service unavailable
            ProviderInvalidResponseError: Answer did not match the contract
        """
        pass


# Custom exceptions for provider operations
class ProviderError(Exception):
    """Base exception for provider operations"""
    pass


class ProviderTimeoutError(ProviderError):
    """Provider request timed out"""
    pass


class ProviderRateLimitError(ProviderError):
    """Rate limit exceeded"""
    pass


class ProviderAuthError(ProviderError):
    """Authentication failed"""
    pass


class ProviderServiceError(ProviderError):
    """Provider service unavailable or returned error"""
    pass


class ProviderInvalidResponseError(ProviderError):
    """Provider returned invalid/unexpected response"""
    pass
