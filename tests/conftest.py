"""
Shared fixtures for Inbox Responder tests
"""
import os

# Set test environment variables before importing the app
os.environ.setdefault("ANTHROPIC_API_KEY", "test-key")
os.environ.setdefault("CELERY_BROKER_URL", "memory://")
os.environ.setdefault("CELERY_RESULT_BACKEND", "cache+memory://")

import pytest
from unittest.mock import MagicMock

from inbox_responder.models import EmailRecord
from inbox_responder.orchestrator import EmailOrchestrator


@pytest.fixture
def mail_client():
    """Mock Gmail client"""
    client = MagicMock()
    client.list_unread.return_value = []
    client.send_message.return_value = {"id": "sent-1"}
    client.modify_message.return_value = {}
    return client


@pytest.fixture
def classifier():
    """Mock Claude classifier"""
    mock = MagicMock()
    mock.analyze_context.return_value = "Prospect asking about pricing"
    mock.categorize.return_value = "Interested"
    mock.generate_reply.return_value = "Thanks for reaching out! Happy to set up a call this week."
    return mock


@pytest.fixture
def task_queue():
    """Mock task queue"""
    return MagicMock()


@pytest.fixture
def orchestrator(classifier, task_queue, mail_client):
    """Orchestrator with a bound mock Gmail session"""
    return EmailOrchestrator(
        classifier=classifier,
        task_queue=task_queue,
        mail_client=mail_client
    )


@pytest.fixture
def email_record():
    return EmailRecord(
        from_address="alice@example.com",
        to_address="me@example.com",
        subject="Pricing",
        body="Hi, is this still available?"
    )
