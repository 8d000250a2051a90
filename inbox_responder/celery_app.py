"""
Celery application configuration

Start a worker with:
    celery -A inbox_responder.celery_app worker -Q email
"""
import os

from celery import Celery
from kombu import Queue, Exchange

REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", REDIS_URL)
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", REDIS_URL)

celery_app = Celery(
    "inbox_responder",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
    include=["inbox_responder.tasks"]
)

celery_app.conf.update(
    task_queues=(
        Queue("email", Exchange("email"), routing_key="email"),
    ),
    task_default_queue="email",

    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    timezone="UTC",
    enable_utc=True,

    result_expires=3600,  # Results expire after 1 hour

    task_acks_late=True,  # Acknowledge tasks after completion
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,

    # Local runs without a broker
    task_always_eager=os.getenv("CELERY_TASK_ALWAYS_EAGER", "false").lower() == "true",
)


def get_celery_app() -> Celery:
    """Get the Celery application instance"""
    return celery_app
