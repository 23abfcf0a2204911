"""Opaque access tokens for recipient and sender links.

Tokens are 256-bit random values (secrets.token_urlsafe). Only their
SHA-256 hash is persisted, so a database leak does not leak access links.
Every token is independently revocable.

Unknown, revoked and expired tokens raise the same AccessDenied, so the
API offers no oracle for token guessing.
"""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from domain.errors import AccessDenied
from models.access_token import AccessToken, TokenRole
from models.base import as_aware, utcnow

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32  # 256 bits of entropy


@dataclass(frozen=True)
class ResolvedToken:
    """Subject a token speaks for"""
    token_id: UUID
    feedback_item_id: UUID
    role: TokenRole


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a raw token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def issue_token(
    db: Session,
    feedback_item_id: UUID,
    role: TokenRole,
    ttl: Optional[timedelta] = None,
) -> str:
    """Issue a new access token for an item.

    Args:
        db: Database session
        feedback_item_id: Item the token grants access to
        role: RECIPIENT or SENDER
        ttl: Optional lifetime; None means no expiry

    Returns:
        Raw token (only ever returned here; store or send it immediately)
    """
    raw = secrets.token_urlsafe(TOKEN_BYTES)
    now = utcnow()
    db.add(AccessToken(
        token_hash=hash_token(raw),
        feedback_item_id=feedback_item_id,
        role=TokenRole(role).value,
        created_at=now,
        expires_at=now + ttl if ttl else None,
    ))
    db.flush()
    return raw


def resolve_token(db: Session, token: str, role: Optional[TokenRole] = None) -> ResolvedToken:
    """Resolve a raw token to its item and role.

    Args:
        db: Database session
        token: Raw token from the URL
        role: When given, the token must carry this role

    Returns:
        ResolvedToken

    Raises:
        AccessDenied: Unknown, revoked, expired, or wrong role
    """
    if not token or len(token) > 256:
        raise AccessDenied()

    record = db.query(AccessToken).filter(AccessToken.token_hash == hash_token(token)).first()
    if record is None or record.revoked_at is not None:
        raise AccessDenied()
    if record.expires_at is not None and as_aware(record.expires_at) <= utcnow():
        raise AccessDenied()
    if role is not None and record.role != TokenRole(role).value:
        raise AccessDenied()

    return ResolvedToken(
        token_id=record.id,
        feedback_item_id=record.feedback_item_id,
        role=TokenRole(record.role),
    )


def revoke_token(db: Session, token: str) -> bool:
    """Revoke one token. Returns False if it was unknown or already revoked."""
    record = db.query(AccessToken).filter(AccessToken.token_hash == hash_token(token)).first()
    if record is None or record.revoked_at is not None:
        return False
    record.revoked_at = utcnow()
    db.flush()
    return True


def revoke_all_for_item(db: Session, feedback_item_id: UUID, role: Optional[TokenRole] = None) -> int:
    """Revoke every live token of an item (optionally one role only)."""
    query = db.query(AccessToken).filter(
        AccessToken.feedback_item_id == feedback_item_id,
        AccessToken.revoked_at.is_(None),
    )
    if role is not None:
        query = query.filter(AccessToken.role == TokenRole(role).value)

    now = utcnow()
    count = 0
    for record in query.all():
        record.revoked_at = now
        count += 1
    db.flush()

    if count:
        logger.info(
            f"Revoked {count} access token(s) for item {feedback_item_id}",
            extra={"feedback_item_id": str(feedback_item_id)},
        )
    return count
