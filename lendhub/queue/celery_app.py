"""
Celery application - async task queue with RabbitMQ.
Challenge: Keep notification delivery and search indexing off the request path.
Design: RabbitMQ broker; Redis as optional result backend.
"""

from celery import Celery

from lendhub.config import get_settings

settings = get_settings()

celery_app = Celery(
    "lendhub",
    broker=settings.celery_broker_url,
    backend=settings.redis_url,
    include=["lendhub.queue.tasks"],
)

# Task settings: retries, time limits, serialization
celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    task_track_started=True,
    task_time_limit=300,
    task_soft_time_limit=60,
    worker_prefetch_multiplier=1,  # Fair distribution
    task_routes={
        "lendhub.queue.tasks.deliver_notification_task": {"queue": "notifications"},
        "lendhub.queue.tasks.index_item_task": {"queue": "search"},
    },
)
