"""
Celery configuration for the verification replay queue
"""
import logging

from celery import Celery
from kombu import Exchange, Queue

from shared.core.config import settings

logger = logging.getLogger(__name__)

celery_app = Celery(
    "turnstile",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
    include=[
        "services.ticket_verification.tasks.verification_tasks",
    ],
)

verification_exchange = Exchange("verification", type="direct")

celery_app.conf.task_queues = (
    Queue(settings.VERIFICATION_QUEUE, verification_exchange, routing_key="verification"),
)

celery_app.conf.task_routes = {
    "verify_ticket": {"queue": settings.VERIFICATION_QUEUE, "routing_key": "verification"},
}

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    timezone="UTC",
    enable_utc=True,

    task_track_started=True,

    # A verification is a handful of Redis round trips
    task_time_limit=60,
    task_soft_time_limit=45,

    # One job per worker process at a time
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.CELERY_WORKER_CONCURRENCY,

    broker_connection_retry_on_startup=True,
    broker_connection_max_retries=10,

    task_acks_late=True,
    task_reject_on_worker_lost=True,

    # Results keyed by task id let an enqueuer look a decision up later
    result_expires=3600,

    task_default_queue=settings.VERIFICATION_QUEUE,
    task_default_exchange="verification",
    task_default_routing_key="verification",
)

logger.info(
    "Celery configured - Broker: %s, Queue: %s, Concurrency: %d",
    settings.REDIS_URL.split("@")[-1] if "@" in settings.REDIS_URL else settings.REDIS_URL,
    settings.VERIFICATION_QUEUE,
    celery_app.conf.worker_concurrency,
)
