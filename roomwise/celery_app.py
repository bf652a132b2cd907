"""
Celery application configuration for background AI jobs
"""
from celery import Celery
from celery.schedules import crontab
from celery.signals import setup_logging as celery_setup_logging

from roomwise.core.config import settings
from roomwise.core.logging import setup_logging

celery_app = Celery(
    "roomwise",
    broker=settings.redis_url,
    backend=settings.celery_result_backend,
    include=["roomwise.tasks.ai_tasks"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=300,  # 5 minutes max
    result_expires=3600,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    beat_schedule={
        "cleanup-old-data": {
            "task": "roomwise.tasks.cleanup_old_data",
            "schedule": crontab(hour=2, minute=0),
        },
    },
)


@celery_setup_logging.connect
def configure_worker_logging(**kwargs):
    """Use the application logging setup instead of Celery's own"""
    setup_logging()


if __name__ == "__main__":
    celery_app.start()
