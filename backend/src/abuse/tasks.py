"""Celery tasks for operating the block registry.

Lifting a directive is an operator action and has no HTTP endpoint.
Operators run it through Celery:

    celery -A workers.celery_app call abuse.lift_block \
        --args='["<directive id>", "appeal accepted"]'
"""

import logging
from typing import Any, Dict, Optional
from uuid import UUID

from celery import shared_task

from database import SessionLocal
from .registry import AbuseRegistry

logger = logging.getLogger(__name__)


@shared_task(name="abuse.lift_block", bind=True)
def lift_block_task(self, directive_id: str, note: Optional[str] = None) -> Dict[str, Any]:
    """Lift one block directive.

    Returns:
        Dict with status 'lifted' or 'not_found' (unknown or already lifted)
    """
    db = SessionLocal()
    try:
        lifted = AbuseRegistry(db).lift_block(UUID(directive_id), note=note)
        db.commit()

        if lifted:
            logger.info(f"Block directive {directive_id} lifted")
        else:
            logger.warning(f"Block directive {directive_id} not found or already lifted")
        return {'status': 'lifted' if lifted else 'not_found', 'directive_id': directive_id}

    finally:
        db.close()
