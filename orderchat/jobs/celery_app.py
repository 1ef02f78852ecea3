"""Celery worker and beat for the conversation expiry sweep

Run with:
    celery -A orderchat.jobs.celery_app worker -B
"""

from celery import Celery

from orderchat.config import settings
from orderchat.log import configure_logging

configure_logging()

celery_app = Celery(
    "orderchat",
    broker=settings.redis_url,
    backend=settings.redis_url,
    include=["orderchat.jobs.tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    result_expires=settings.conversation_cleanup_interval,
    timezone="UTC",
    enable_utc=True,
    # A sweep that outlives its interval would overlap the next one
    task_time_limit=min(300, settings.conversation_cleanup_interval),
    worker_prefetch_multiplier=1,
    task_acks_late=True,
    beat_schedule={
        "expire-stale-conversations": {
            "task": "expire_stale_conversations",
            "schedule": float(settings.conversation_cleanup_interval),
        },
    },
)
