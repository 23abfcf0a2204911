"""Audit logging service for security events.

This service provides a centralized interface for creating immutable audit log
entries. All security-relevant events must be logged through this service.

Audit Events:
- ABUSE_REPORTED
- BLOCK_DIRECTIVE_CREATED, BLOCK_DIRECTIVE_LIFTED
- SENDER_IDENTITY_DELETED
- FEEDBACK_WITHDRAWN
- RETENTION_RUN

Metadata must never contain addresses, message text or raw tokens.
"""

import logging
from typing import Optional, Dict, Any
from uuid import UUID

from sqlalchemy.orm import Session

from models.audit_log import AuditLog

logger = logging.getLogger(__name__)


def log_audit_event(
    db: Session,
    action: str,
    entity_type: Optional[str] = None,
    entity_id: Optional[UUID] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Create an audit log entry.

    This function does not validate action names or entity types.

    Args:
        db: Database session
        action: Event action (e.g., "ABUSE_REPORTED")
        entity_type: Type of entity affected (e.g., "feedback_item")
        entity_id: ID of affected entity
        metadata: Additional context as JSON (e.g., {"directive_level": "global"})

    Returns:
        AuditLog: The created audit log entry

    Example:
        log_audit_event(
            db=db,
            action="ABUSE_REPORTED",
            entity_type="feedback_item",
            entity_id=item.id,
            metadata={"directive_level": "sender_specific"}
        )
    """
    audit_entry = AuditLog(
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        metadata_json=metadata,
    )

    db.add(audit_entry)
    db.flush()  # Get ID without committing transaction

    logger.info(
        f"Audit event {action}",
        extra={"action": action, "entity_type": entity_type, "entity_id": str(entity_id) if entity_id else None},
    )

    return audit_entry
