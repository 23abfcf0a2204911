"""Celery tasks for data retention cleanup.

Tasks:
- retention_cleanup_task: daily job

Example Celery Beat schedule configuration:
    from celery.schedules import crontab

    celery_app.conf.beat_schedule = {
        'retention-cleanup-daily': {
            'task': 'retention.cleanup',
            'schedule': crontab(hour=2, minute=0),
            'options': {'expires': 3600},
        },
    }
"""

import logging
from typing import Dict, Any

from celery import shared_task

from config import get_settings
from database import SessionLocal
from .schemas import RetentionSettings
from .service import RetentionService

logger = logging.getLogger(__name__)


@shared_task(name="retention.cleanup", bind=True)
def retention_cleanup_task(self) -> Dict[str, Any]:
    """Execute retention cleanup.

    The task is idempotent - running twice in succession finds nothing
    further to delete.

    Returns:
        Dict with cleanup statistics
    """
    logger.info("Retention cleanup task started")

    db = SessionLocal()
    try:
        service = RetentionService(db, RetentionSettings.from_settings(get_settings()))
        statistics = service.run_cleanup()

        return {
            'status': 'completed_with_errors' if statistics.has_errors else 'completed',
            **statistics.model_dump(mode="json"),
        }

    finally:
        db.close()
