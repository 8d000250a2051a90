"""
Inbox Responder Service - Main FastAPI Application

Hosts the scheduling trigger for unread checks and exposes
routes to bind a Gmail session and drive the orchestrator by hand.
"""
import os
import asyncio
import logging
from datetime import datetime
from contextlib import asynccontextmanager, suppress
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException

# Load environment variables from .env file
load_dotenv()

from inbox_responder.models import (
    AccessTokenRequest,
    CheckNowResponse,
    CheckScheduledResponse,
    EmailRecord,
    HealthCheckResponse,
    TaskEnqueuedResponse
)
from inbox_responder.orchestrator import EmailOrchestrator, get_email_orchestrator, UNREAD_CHECK_DELAY
from inbox_responder.task_queue import PROCESS_EMAIL_TASK
from inbox_responder.tasks import set_orchestrator

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO"),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Global state
orchestrator: Optional[EmailOrchestrator] = None
polling_running = False
start_time = datetime.utcnow()


async def poll_unread_emails():
    """Background task that schedules unread checks"""
    poll_interval = float(os.getenv("POLL_INTERVAL", "60"))

    logger.info(f"Starting unread check scheduler (interval: {poll_interval}s)")

    while polling_running:
        try:
            await asyncio.to_thread(orchestrator.schedule_unread_check)
        except Exception as e:
            logger.error(f"Error scheduling unread check: {e}")

        await asyncio.sleep(poll_interval)

    logger.info("Unread check scheduler stopped")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for startup and shutdown"""
    global orchestrator, polling_running

    # Startup
    logger.info("Starting Inbox Responder service...")

    try:
        orchestrator = get_email_orchestrator()
        set_orchestrator(orchestrator)

        polling_running = True
        polling_task = asyncio.create_task(poll_unread_emails())

        logger.info("Inbox Responder service started successfully")

    except Exception as e:
        logger.error(f"Failed to start Inbox Responder service: {e}")
        raise

    yield

    # Shutdown
    logger.info("Shutting down Inbox Responder service...")
    polling_running = False
    polling_task.cancel()
    with suppress(asyncio.CancelledError):
        await polling_task
    logger.info("Inbox Responder service stopped")


# Create FastAPI app
app = FastAPI(
    title="Inbox Responder",
    description="Categorizes, labels and replies to unread Gmail messages",
    version="1.0.0",
    lifespan=lifespan
)


def _get_orchestrator() -> EmailOrchestrator:
    if orchestrator is None:
        raise HTTPException(status_code=503, detail="Orchestrator not initialized")
    return orchestrator


@app.get("/health", response_model=HealthCheckResponse)
async def health_check():
    """
    Health check endpoint

    Returns service status and whether a Gmail session is bound
    """
    uptime = (datetime.utcnow() - start_time).total_seconds()

    return HealthCheckResponse(
        status="healthy" if orchestrator is not None else "starting",
        gmail_session_bound=orchestrator is not None and orchestrator.has_session,
        uptime_seconds=uptime
    )


@app.post("/auth/token")
def bind_access_token(request: AccessTokenRequest):
    """
    Bind a Gmail session using an OAuth2 access token

    Args:
        request: Access token payload

    Returns:
        Success message
    """
    current = _get_orchestrator()

    try:
        current.initialize_client(request.access_token)
        return {"status": "bound"}
    except Exception as e:
        logger.error(f"Error initializing Gmail client: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/emails/check", response_model=CheckScheduledResponse)
def schedule_check():
    """
    Schedule a delayed unread check
    """
    current = _get_orchestrator()

    try:
        current.schedule_unread_check()
        return CheckScheduledResponse(status="scheduled", delay_seconds=UNREAD_CHECK_DELAY)
    except Exception as e:
        logger.error(f"Error scheduling unread check: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.post("/emails/check/now", response_model=CheckNowResponse)
def check_now():
    """
    Run an unread check in-process

    Returns:
        Number of processing tasks enqueued
    """
    current = _get_orchestrator()
    enqueued = current.check_unread_emails()
    return CheckNowResponse(status="checked", enqueued=enqueued)


@app.get("/emails/{message_id}", response_model=EmailRecord)
def get_email(message_id: str):
    """
    Get the email record for a message

    Args:
        message_id: Gmail message id

    Returns:
        Extracted email record
    """
    current = _get_orchestrator()

    if not current.has_session:
        raise HTTPException(status_code=409, detail="No Gmail session bound")

    email_record = current.fetch_email_data(message_id)
    if email_record is None:
        raise HTTPException(status_code=404, detail="Email not found")

    return email_record


@app.post("/emails/{message_id}/process", response_model=TaskEnqueuedResponse)
def process_email(message_id: str):
    """
    Enqueue processing for a single message

    Args:
        message_id: Gmail message id
    """
    current = _get_orchestrator()

    try:
        current.task_queue.add(PROCESS_EMAIL_TASK, {"message_id": message_id})
        return TaskEnqueuedResponse(status="enqueued", task=PROCESS_EMAIL_TASK, message_id=message_id)
    except Exception as e:
        logger.error(f"Error enqueueing {message_id}: {e}")
        raise HTTPException(status_code=500, detail=str(e))


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "service": "Inbox Responder",
        "version": "1.0.0",
        "status": "running"
    }


if __name__ == "__main__":
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8000"))

    uvicorn.run(app, host=host, port=port)
