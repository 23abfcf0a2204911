"""Relay error taxonomy.

Every error a caller can observe derives from RelayError and carries a
stable machine-readable code. The HTTP mapping lives in main.py.
"""

from typing import Optional


class RelayError(Exception):
    """Base exception for relay operations"""
    code = "relay_error"

    def __init__(self, message: str = ""):
        super().__init__(message or self.code)
        self.message = message or self.code


class AdmissionDenied(RelayError):
    """Submission refused before any processing (rate limit, block, bot).

    Attributes:
        reason: rate_limited | blocked | bot_suspected | service_unavailable
        limiter: Name of the limiter that fired (pair, sender, fallback,
                 network) or None. Never carries counts or thresholds.
    """
    code = "admission_denied"

    def __init__(self, reason: str, limiter: Optional[str] = None):
        super().__init__(f"Admission denied: {reason}")
        self.reason = reason
        self.limiter = limiter


class ContentBlocked(RelayError):
    """Text refused by content screening; the sender must rewrite it."""
    code = "content_blocked"

    def __init__(self, category: str, item_id: Optional[str] = None):
        super().__init__(f"Content blocked: {category}")
        self.category = category
        self.item_id = item_id


class PipelineUnavailable(RelayError):
    """Every content provider failed. Transient, not the sender's fault."""
    code = "pipeline_unavailable"

    def __init__(self, attempts: Optional[list[str]] = None):
        super().__init__("No content provider available")
        self.attempts = attempts or []


class DeliveryFailed(RelayError):
    """Mail transport refused the message. Retried outside the core."""
    code = "delivery_failed"


class AccessDenied(RelayError):
    """Unknown, revoked or expired access token.

    Deliberately identical for every cause so token probing learns nothing.
    """
    code = "access_denied"

    def __init__(self):
        super().__init__("Access denied")


class EncryptionFailure(RelayError):
    """Ciphertext could not be decrypted or encrypted. Operational, not user-facing."""
    code = "encryption_failure"


class VaultKeyUnavailable(EncryptionFailure):
    """No vault key material configured. Fatal to the whole relay."""
    code = "vault_key_unavailable"


class ConflictError(RelayError):
    """Operation already performed (e.g. second reply to the same item)."""
    code = "conflict"


class InvalidStateError(RelayError):
    """Operation not valid for the item's current state."""
    code = "invalid_state"
