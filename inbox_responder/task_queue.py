"""
Delayed task queue backed by Celery
"""
import logging
from typing import Any, Dict, Optional

from celery import Celery

from inbox_responder.celery_app import get_celery_app

logger = logging.getLogger(__name__)

CHECK_UNREAD_TASK = "check-unread"
PROCESS_EMAIL_TASK = "process-email"


class TaskQueue:
    """Enqueues named tasks onto the Celery broker"""

    def __init__(self, app: Optional[Celery] = None):
        self.app = app or get_celery_app()

    def add(self, task_name: str, payload: Optional[Dict[str, Any]] = None, delay: Optional[int] = None) -> str:
        """
        Enqueue a named task.

        Args:
            task_name: Registered task name
            payload: Keyword arguments for the task
            delay: Seconds to wait before the task runs (None for immediately)

        Returns:
            Celery task id
        """
        if self.app.conf.task_always_eager:
            # send_task bypasses eager mode, apply_async on the registered task does not
            result = self.app.tasks[task_name].apply_async(kwargs=payload or {}, countdown=delay)
        else:
            result = self.app.send_task(task_name, kwargs=payload or {}, countdown=delay)

        if delay:
            logger.info(f"Scheduled {task_name} in {delay}s (task {result.id})")
        else:
            logger.info(f"Enqueued {task_name} with {payload or {}} (task {result.id})")
        return result.id


def get_task_queue() -> TaskQueue:
    """
    Get task queue instance.

    Returns:
        TaskQueue instance
    """
    return TaskQueue()
