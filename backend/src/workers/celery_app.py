"""Celery application and beat schedule for relay background jobs.

Run a worker with:
    celery -A workers.celery_app worker --beat
"""

from celery import Celery
from celery.schedules import crontab

from config import get_settings

settings = get_settings()

celery_app = Celery(
    "feedback_relay",
    broker=settings.CELERY_BROKER_URL,
    include=["retention.tasks", "workers.delivery_worker", "abuse.tasks"],
)

celery_app.conf.update(
    task_acks_late=True,
    timezone="UTC",
)

celery_app.conf.beat_schedule = {
    'retention-cleanup-daily': {
        'task': 'retention.cleanup',
        'schedule': crontab(hour=2, minute=0),  # 02:00 UTC
        'options': {'expires': 3600},
    },
    'delivery-retry': {
        'task': 'delivery.retry_pending',
        'schedule': crontab(minute='*/5'),
        'options': {'expires': 240},
    },
}
