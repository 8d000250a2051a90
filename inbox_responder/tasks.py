"""
Celery tasks for checking and processing unread email
"""
import logging
from typing import Any, Dict, Optional

from inbox_responder.celery_app import celery_app
from inbox_responder.orchestrator import EmailOrchestrator, get_email_orchestrator
from inbox_responder.task_queue import CHECK_UNREAD_TASK, PROCESS_EMAIL_TASK

logger = logging.getLogger(__name__)

# One orchestrator per worker process
_orchestrator: Optional[EmailOrchestrator] = None


def get_orchestrator() -> EmailOrchestrator:
    """
    Get the worker's orchestrator, rebinding to the latest stored token.

    Raises:
        ValueError: If the orchestrator cannot be built (e.g. no API key)
    """
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = get_email_orchestrator()
    else:
        _orchestrator.sync_session()
    return _orchestrator


def set_orchestrator(orchestrator: Optional[EmailOrchestrator]):
    """Share an already built orchestrator with the tasks (web process, eager mode)"""
    global _orchestrator
    _orchestrator = orchestrator


@celery_app.task(name=CHECK_UNREAD_TASK)
def check_unread() -> Dict[str, Any]:
    """
    List unread emails and enqueue a process-email task for each.

    Returns:
        Summary with the number of tasks enqueued
    """
    try:
        orchestrator = get_orchestrator()
    except Exception as e:
        logger.error(f"Cannot build orchestrator for unread check: {e}")
        return {"enqueued": 0, "status": "error", "error": str(e)}

    enqueued = orchestrator.check_unread_emails()
    return {"enqueued": enqueued}


@celery_app.task(name=PROCESS_EMAIL_TASK)
def process_email(message_id: str) -> Dict[str, Any]:
    """
    Fetch one email and run it through the reply sequence.

    Args:
        message_id: Gmail message id

    Returns:
        Processing report as a dict, or a 'no_data' or 'error' status
    """
    try:
        orchestrator = get_orchestrator()
    except Exception as e:
        logger.error(f"Cannot build orchestrator for email {message_id}: {e}")
        return {"message_id": message_id, "status": "error", "error": str(e)}

    email_record = orchestrator.fetch_email_data(message_id)
    if email_record is None:
        logger.warning(f"No data for email {message_id}, skipping")
        return {"message_id": message_id, "status": "no_data"}

    report = orchestrator.process_incoming_email(message_id, email_record)
    return {
        "message_id": message_id,
        "status": "processed" if report.succeeded else "partial",
        "report": report.model_dump(mode="json"),
    }
