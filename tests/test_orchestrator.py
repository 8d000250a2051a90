"""
Tests for the email orchestrator
"""
import logging

import pytest
from unittest.mock import MagicMock, patch, call

from inbox_responder.labels import LABEL_MAPPING, UNREAD_LABEL
from inbox_responder.models import StepStatus
from inbox_responder.orchestrator import EmailOrchestrator, get_email_orchestrator, UNREAD_CHECK_DELAY
from inbox_responder.reply_formatter import ReplyFormatter
from inbox_responder.task_queue import CHECK_UNREAD_TASK, PROCESS_EMAIL_TASK


@pytest.fixture
def unbound_orchestrator(classifier, task_queue):
    """Orchestrator without a Gmail session"""
    return EmailOrchestrator(classifier=classifier, task_queue=task_queue)


class TestInitializeClient:
    """Test Gmail session binding"""

    def test_initialize_client_binds_session(self, unbound_orchestrator):
        with patch("inbox_responder.orchestrator.GmailClient") as gmail_cls:
            unbound_orchestrator.initialize_client("token-123")

        gmail_cls.from_access_token.assert_called_once_with("token-123", user_id="me")
        assert unbound_orchestrator.mail_client is gmail_cls.from_access_token.return_value
        assert unbound_orchestrator.has_session is True

    def test_session_passed_at_construction(self, orchestrator, mail_client):
        assert orchestrator.has_session is True
        assert orchestrator.mail_client is mail_client

    def test_initialize_client_saves_token(self, classifier, task_queue):
        token_store = MagicMock()
        orchestrator = EmailOrchestrator(classifier=classifier, task_queue=task_queue, token_store=token_store)

        with patch("inbox_responder.orchestrator.GmailClient"):
            orchestrator.initialize_client("token-123")

        token_store.save.assert_called_once_with("token-123")


class TestSyncSession:
    """Test rebinding from the shared token store"""

    def test_binds_stored_token(self, classifier, task_queue):
        token_store = MagicMock()
        token_store.load.return_value = "stored-token"
        orchestrator = EmailOrchestrator(classifier=classifier, task_queue=task_queue, token_store=token_store)

        with patch("inbox_responder.orchestrator.GmailClient") as gmail_cls:
            assert orchestrator.sync_session() is True

        gmail_cls.from_access_token.assert_called_once_with("stored-token", user_id="me")
        assert orchestrator.has_session is True
        token_store.save.assert_not_called()

    def test_same_token_does_not_rebind(self, classifier, task_queue):
        token_store = MagicMock()
        token_store.load.return_value = "token-123"
        orchestrator = EmailOrchestrator(classifier=classifier, task_queue=task_queue, token_store=token_store)

        with patch("inbox_responder.orchestrator.GmailClient") as gmail_cls:
            orchestrator.initialize_client("token-123")
            assert orchestrator.sync_session() is False

        gmail_cls.from_access_token.assert_called_once_with("token-123", user_id="me")

    def test_empty_store_keeps_session(self, classifier, task_queue, mail_client):
        token_store = MagicMock()
        token_store.load.return_value = None
        orchestrator = EmailOrchestrator(
            classifier=classifier,
            task_queue=task_queue,
            mail_client=mail_client,
            token_store=token_store
        )

        assert orchestrator.sync_session() is False
        assert orchestrator.mail_client is mail_client

    def test_without_store(self, unbound_orchestrator):
        assert unbound_orchestrator.sync_session() is False
        assert unbound_orchestrator.has_session is False


class TestScheduleUnreadCheck:
    """Test scheduling of the delayed check"""

    def test_schedules_check_with_delay(self, orchestrator, task_queue):
        orchestrator.schedule_unread_check()
        task_queue.add.assert_called_once_with(CHECK_UNREAD_TASK, {}, delay=UNREAD_CHECK_DELAY)
        assert UNREAD_CHECK_DELAY == 60


class TestCheckUnreadEmails:
    """Test polling for unread emails"""

    def test_no_session_returns_without_provider_call(self, unbound_orchestrator, task_queue):
        assert unbound_orchestrator.check_unread_emails() == 0
        task_queue.add.assert_not_called()

    def test_enqueues_one_task_per_message(self, orchestrator, mail_client, task_queue):
        mail_client.list_unread.return_value = ["m1", "m2", "m3"]

        assert orchestrator.check_unread_emails() == 3

        mail_client.list_unread.assert_called_once_with("is:unread")
        assert task_queue.add.call_args_list == [
            call(PROCESS_EMAIL_TASK, {"message_id": "m1"}),
            call(PROCESS_EMAIL_TASK, {"message_id": "m2"}),
            call(PROCESS_EMAIL_TASK, {"message_id": "m3"}),
        ]

    def test_no_unread_messages(self, orchestrator, mail_client, task_queue):
        mail_client.list_unread.return_value = []
        assert orchestrator.check_unread_emails() == 0
        task_queue.add.assert_not_called()

    def test_provider_error_is_swallowed(self, orchestrator, mail_client, task_queue, caplog):
        mail_client.list_unread.side_effect = RuntimeError("Gmail down")

        with caplog.at_level(logging.ERROR, logger="inbox_responder.orchestrator"):
            assert orchestrator.check_unread_emails() == 0

        task_queue.add.assert_not_called()
        assert "Error checking unread emails: Gmail down" in caplog.text

    def test_queue_error_is_swallowed(self, orchestrator, mail_client, task_queue):
        mail_client.list_unread.return_value = ["m1"]
        task_queue.add.side_effect = ConnectionError("broker unreachable")

        assert orchestrator.check_unread_emails() == 0

    def test_custom_query(self, classifier, task_queue, mail_client):
        orchestrator = EmailOrchestrator(
            classifier=classifier,
            task_queue=task_queue,
            mail_client=mail_client,
            unread_query="is:unread in:inbox"
        )
        orchestrator.check_unread_emails()
        mail_client.list_unread.assert_called_once_with("is:unread in:inbox")


class TestFetchEmailData:
    """Test fetching and extracting a message"""

    def test_returns_record(self, orchestrator, mail_client):
        mail_client.get_message.return_value = {
            "snippet": "Tell me more",
            "payload": {"headers": [
                {"name": "Subject", "value": "Question"},
                {"name": "From", "value": "bob@example.com"},
                {"name": "To", "value": "me@example.com"},
            ]},
        }

        record = orchestrator.fetch_email_data("m1")

        assert record.subject == "Question"
        assert record.from_address == "bob@example.com"
        assert record.to_address == "me@example.com"
        assert record.body == "Tell me more"

    def test_error_returns_none(self, orchestrator, mail_client, caplog):
        mail_client.get_message.side_effect = RuntimeError("404")

        with caplog.at_level(logging.ERROR, logger="inbox_responder.orchestrator"):
            assert orchestrator.fetch_email_data("m1") is None

        assert "Error fetching email data for message ID m1: 404" in caplog.text

    def test_no_session_returns_none(self, unbound_orchestrator):
        assert unbound_orchestrator.fetch_email_data("m1") is None


class TestProcessIncomingEmail:
    """Test the categorize, label, reply, mark-read sequence"""

    def test_full_sequence(self, orchestrator, classifier, mail_client, email_record):
        report = orchestrator.process_incoming_email("m1", email_record)

        classifier.analyze_context.assert_called_once_with(email_record.body)
        classifier.categorize.assert_called_once_with(email_record.body)
        classifier.generate_reply.assert_called_once_with(email_record.body)

        assert mail_client.modify_message.call_args_list == [
            call("m1", add_labels=[LABEL_MAPPING["Interested"]]),
            call("m1", remove_labels=[UNREAD_LABEL]),
        ]
        mail_client.send_message.assert_called_once()

        assert report.succeeded is True
        assert report.category == "Interested"
        assert report.label_id == LABEL_MAPPING["Interested"]
        assert [s.step for s in report.steps] == [
            "analyze", "categorize", "label", "generate_reply", "send_reply", "mark_read"
        ]

    def test_reply_goes_back_to_sender(self, orchestrator, mail_client, email_record):
        orchestrator.process_incoming_email("m1", email_record)

        raw = mail_client.send_message.call_args.args[0]
        decoded = ReplyFormatter.decode_base64url(raw)

        assert "From: me@example.com" in decoded
        assert "To: alice@example.com" in decoded
        assert "Subject: Re: Pricing" in decoded
        assert "In-Reply-To: m1" in decoded
        assert "References: m1" in decoded
        assert decoded.endswith("\n\nThanks for reaching out! Happy to set up a call this week.")

    def test_unmapped_category_skips_label(self, orchestrator, classifier, mail_client, email_record):
        classifier.categorize.return_value = "Out of office"

        report = orchestrator.process_incoming_email("m1", email_record)

        assert report.status_of("label") == StepStatus.SKIPPED
        assert mail_client.modify_message.call_args_list == [call("m1", remove_labels=[UNREAD_LABEL])]
        mail_client.send_message.assert_called_once()
        assert report.status_of("mark_read") == StepStatus.SUCCEEDED
        assert report.succeeded is True

    def test_categorize_failure_skips_label(self, orchestrator, classifier, mail_client, email_record):
        classifier.categorize.side_effect = RuntimeError("rate limited")

        report = orchestrator.process_incoming_email("m1", email_record)

        assert report.status_of("categorize") == StepStatus.FAILED
        assert report.status_of("label") == StepStatus.SKIPPED
        assert report.status_of("send_reply") == StepStatus.SUCCEEDED
        assert report.succeeded is False

    def test_analyze_failure_does_not_stop_sequence(self, orchestrator, classifier, mail_client, email_record):
        classifier.analyze_context.side_effect = RuntimeError("timeout")

        report = orchestrator.process_incoming_email("m1", email_record)

        assert report.status_of("analyze") == StepStatus.FAILED
        assert report.status_of("label") == StepStatus.SUCCEEDED
        assert report.status_of("send_reply") == StepStatus.SUCCEEDED

    def test_generate_failure_skips_send_but_marks_read(self, orchestrator, classifier, mail_client, email_record):
        classifier.generate_reply.side_effect = RuntimeError("overloaded")

        report = orchestrator.process_incoming_email("m1", email_record)

        mail_client.send_message.assert_not_called()
        assert report.status_of("send_reply") == StepStatus.SKIPPED
        assert report.status_of("mark_read") == StepStatus.SUCCEEDED

    def test_send_failure_keeps_label(self, orchestrator, mail_client, email_record):
        mail_client.send_message.side_effect = RuntimeError("quota exceeded")

        report = orchestrator.process_incoming_email("m1", email_record)

        assert report.status_of("label") == StepStatus.SUCCEEDED
        assert report.status_of("send_reply") == StepStatus.FAILED
        assert report.status_of("mark_read") == StepStatus.SUCCEEDED
        assert mail_client.modify_message.call_args_list == [
            call("m1", add_labels=[LABEL_MAPPING["Interested"]]),
            call("m1", remove_labels=[UNREAD_LABEL]),
        ]

    def test_every_provider_failing_does_not_raise(self, orchestrator, classifier, mail_client, email_record, caplog):
        classifier.analyze_context.side_effect = RuntimeError("down")
        classifier.categorize.side_effect = RuntimeError("down")
        classifier.generate_reply.side_effect = RuntimeError("down")
        mail_client.modify_message.side_effect = RuntimeError("down")

        with caplog.at_level(logging.ERROR, logger="inbox_responder.orchestrator"):
            report = orchestrator.process_incoming_email("m1", email_record)

        assert report.succeeded is False
        assert report.status_of("mark_read") == StepStatus.FAILED
        errors = [r.getMessage() for r in caplog.records if r.levelno == logging.ERROR]
        assert errors == [
            "Error analyzing context for m1: down",
            "Error categorizing m1: down",
            "Error generating reply for m1: down",
            "Error marking m1 as read: down",
        ]

    def test_placeholder_reply_is_still_sent(self, orchestrator, classifier, mail_client, email_record):
        classifier.generate_reply.return_value = "Sounds good. Best, [Your Name]"

        report = orchestrator.process_incoming_email("m1", email_record)

        mail_client.send_message.assert_called_once()
        assert report.status_of("generate_reply") == StepStatus.SUCCEEDED


class TestGetEmailOrchestrator:
    """Test building the orchestrator from the environment"""

    @pytest.fixture
    def token_store(self, monkeypatch):
        store = MagicMock()
        store.load.return_value = None
        monkeypatch.setattr("inbox_responder.orchestrator.get_classifier", MagicMock())
        monkeypatch.setattr("inbox_responder.orchestrator.get_task_queue", MagicMock())
        monkeypatch.setattr("inbox_responder.orchestrator.get_token_store", MagicMock(return_value=store))
        return store

    def test_env_token_binds_without_saving(self, monkeypatch, token_store):
        monkeypatch.setenv("GMAIL_ACCESS_TOKEN", "env-token")

        with patch("inbox_responder.orchestrator.GmailClient") as gmail_cls:
            orchestrator = get_email_orchestrator()

        gmail_cls.from_access_token.assert_called_once_with("env-token", user_id="me")
        assert orchestrator.has_session is True
        token_store.save.assert_not_called()

    def test_stored_token_takes_precedence(self, monkeypatch, token_store):
        monkeypatch.setenv("GMAIL_ACCESS_TOKEN", "env-token")
        token_store.load.return_value = "bound-token"

        with patch("inbox_responder.orchestrator.GmailClient") as gmail_cls:
            get_email_orchestrator()

        assert gmail_cls.from_access_token.call_args_list == [
            call("env-token", user_id="me"),
            call("bound-token", user_id="me"),
        ]

    def test_no_token_leaves_session_unbound(self, monkeypatch, token_store):
        monkeypatch.delenv("GMAIL_ACCESS_TOKEN", raising=False)
        assert get_email_orchestrator().has_session is False
