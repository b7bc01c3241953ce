"""Celery application configuration."""
from celery import Celery

from repochat.config import settings

celery_app = Celery(
    "repochat",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

celery_app.conf.update(
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,
    task_routes={
        "repochat.tasks.indexing_tasks.*": {"queue": "indexing"},
    },
    # A run is never retried automatically; a new request starts a new run
    task_max_retries=0,
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    result_expires=3600,
)

celery_app.autodiscover_tasks(["repochat.tasks.indexing_tasks"])
