"""
Email Orchestrator

Runs the inbox auto-reply sequence:
1. Poll Gmail for unread messages
2. Enqueue one processing task per message
3. Categorize the message and apply the matching label
4. Generate and send a reply
5. Mark the message as read

Every operation logs and swallows provider errors so that queue
tasks never fail on a single bad message.
"""
import os
import logging
from typing import Mapping, Optional

from inbox_responder.classifier import ClaudeClassifier, get_classifier
from inbox_responder.gmail_client import GmailClient, extract_email_record, DEFAULT_UNREAD_QUERY
from inbox_responder.labels import LABEL_MAPPING, UNREAD_LABEL, resolve_label
from inbox_responder.models import EmailRecord, ProcessingReport, StepStatus
from inbox_responder.reply_formatter import ReplyFormatter
from inbox_responder.task_queue import TaskQueue, get_task_queue, CHECK_UNREAD_TASK, PROCESS_EMAIL_TASK
from inbox_responder.token_store import TokenStore, get_token_store

logger = logging.getLogger(__name__)

UNREAD_CHECK_DELAY = 60  # seconds


class EmailOrchestrator:
    """Coordinates Gmail, Claude and the task queue for incoming email"""

    def __init__(
        self,
        classifier: ClaudeClassifier,
        task_queue: TaskQueue,
        mail_client: Optional[GmailClient] = None,
        label_mapping: Mapping[str, str] = LABEL_MAPPING,
        unread_query: str = DEFAULT_UNREAD_QUERY,
        gmail_user_id: str = "me",
        token_store: Optional[TokenStore] = None
    ):
        """
        Initialize email orchestrator.

        Args:
            classifier: Claude classifier/generator
            task_queue: Delayed task queue
            mail_client: Authenticated Gmail client (optional, see initialize_client)
            label_mapping: Category to Gmail label id mapping
            unread_query: Gmail search query for unread messages
            gmail_user_id: Mailbox owner for clients built by initialize_client
            token_store: Shared store that carries the bound token to worker processes
        """
        self.classifier = classifier
        self.task_queue = task_queue
        self.mail_client = mail_client
        self.label_mapping = label_mapping
        self.unread_query = unread_query
        self.gmail_user_id = gmail_user_id
        self.token_store = token_store
        self._access_token: Optional[str] = None
        self.reply_formatter = ReplyFormatter()

    @property
    def has_session(self) -> bool:
        return self.mail_client is not None

    def initialize_client(self, access_token: str):
        """
        Bind an authenticated Gmail session for subsequent calls.

        The token is also saved to the token store, if one is configured,
        so that worker processes pick it up through sync_session.

        Args:
            access_token: OAuth2 access token
        """
        self._bind(access_token)
        if self.token_store is not None:
            self.token_store.save(access_token)

    def sync_session(self) -> bool:
        """
        Rebind from the token store when it holds a different token.

        Returns:
            True if the session was rebound
        """
        if self.token_store is None:
            return False

        access_token = self.token_store.load()
        if not access_token or access_token == self._access_token:
            return False

        self._bind(access_token)
        logger.info("Gmail session rebound from token store")
        return True

    def _bind(self, access_token: str):
        self.mail_client = GmailClient.from_access_token(access_token, user_id=self.gmail_user_id)
        self._access_token = access_token
        logger.info("Gmail client initialized")

    def schedule_unread_check(self):
        """Enqueue a delayed check for unread emails."""
        self.task_queue.add(CHECK_UNREAD_TASK, {}, delay=UNREAD_CHECK_DELAY)

    def check_unread_emails(self) -> int:
        """
        List unread emails and enqueue a processing task for each.

        Returns:
            Number of processing tasks enqueued
        """
        if not self.has_session:
            logger.warning("No Gmail session bound, skipping unread check")
            return 0

        try:
            message_ids = self.mail_client.list_unread(self.unread_query)

            if not message_ids:
                logger.debug("No unread emails found")
                return 0

            logger.info(f"Found {len(message_ids)} unread emails")

            enqueued = 0
            for message_id in message_ids:
                self.task_queue.add(PROCESS_EMAIL_TASK, {"message_id": message_id})
                enqueued += 1

            return enqueued

        except Exception as e:
            logger.error(f"Error checking unread emails: {e}")
            return 0

    def fetch_email_data(self, message_id: str) -> Optional[EmailRecord]:
        """
        Fetch a message and extract its email record.

        Args:
            message_id: Gmail message id

        Returns:
            EmailRecord, or None if the message could not be fetched
        """
        if not self.has_session:
            logger.warning(f"No Gmail session bound, cannot fetch {message_id}")
            return None

        try:
            message = self.mail_client.get_message(message_id)
            return extract_email_record(message)
        except Exception as e:
            logger.error(f"Error fetching email data for message ID {message_id}: {e}")
            return None

    def process_incoming_email(self, message_id: str, email_record: EmailRecord) -> ProcessingReport:
        """
        Categorize, label, reply to and mark read one email.

        Each step logs its own failure. Later steps still run unless they
        depend on the output of a failed step. Nothing is rolled back.

        Args:
            message_id: Gmail message id
            email_record: Record extracted by fetch_email_data

        Returns:
            ProcessingReport with the outcome of each step
        """
        report = ProcessingReport(message_id=message_id)
        body = email_record.body

        logger.info(f"Processing email {message_id} from {email_record.from_address}")

        # Context is logged only
        try:
            context = self.classifier.analyze_context(body)
            logger.info(f"Context for {message_id}: {context}")
            report.record("analyze", StepStatus.SUCCEEDED)
        except Exception as e:
            logger.error(f"Error analyzing context for {message_id}: {e}")
            report.record("analyze", StepStatus.FAILED, str(e))

        category = None
        try:
            category = self.classifier.categorize(body)
            report.category = category
            report.record("categorize", StepStatus.SUCCEEDED, category)
        except Exception as e:
            logger.error(f"Error categorizing {message_id}: {e}")
            report.record("categorize", StepStatus.FAILED, str(e))

        self._apply_label(message_id, category, report)

        reply_text = None
        try:
            reply_text = self.classifier.generate_reply(body)
            is_valid, error = self.reply_formatter.validate_reply(reply_text)
            if not is_valid:
                logger.warning(f"Generated reply for {message_id} looks off: {error}")
            report.record("generate_reply", StepStatus.SUCCEEDED)
        except Exception as e:
            logger.error(f"Error generating reply for {message_id}: {e}")
            report.record("generate_reply", StepStatus.FAILED, str(e))

        self._send_reply(message_id, email_record, reply_text, report)
        self._mark_read(message_id, report)

        if report.succeeded:
            logger.info(f"Email {message_id} processed successfully")
        else:
            failed = [s.step for s in report.steps if s.status == StepStatus.FAILED]
            logger.warning(f"Email {message_id} processed with failed steps: {', '.join(failed)}")

        return report

    def _apply_label(self, message_id: str, category: Optional[str], report: ProcessingReport):
        if category is None:
            logger.warning(f"No category for {message_id}, skipping label")
            report.record("label", StepStatus.SKIPPED, "no category")
            return

        label_id = resolve_label(category, self.label_mapping)
        if label_id is None:
            report.record("label", StepStatus.SKIPPED, f"unmapped category: {category}")
            return

        try:
            self.mail_client.modify_message(message_id, add_labels=[label_id])
            report.label_id = label_id
            logger.info(f"Labeled {message_id} as {category} ({label_id})")
            report.record("label", StepStatus.SUCCEEDED, label_id)
        except Exception as e:
            logger.error(f"Error labeling {message_id}: {e}")
            report.record("label", StepStatus.FAILED, str(e))

    def _send_reply(
        self,
        message_id: str,
        email_record: EmailRecord,
        reply_text: Optional[str],
        report: ProcessingReport
    ):
        if reply_text is None:
            logger.warning(f"No reply text for {message_id}, skipping send")
            report.record("send_reply", StepStatus.SKIPPED, "no reply text")
            return

        try:
            # Reply goes back to the original sender
            raw = self.reply_formatter.build_reply_message(
                from_address=email_record.to_address,
                to_address=email_record.from_address,
                subject=email_record.subject,
                message_id=message_id,
                reply_text=reply_text
            )
            receipt = self.mail_client.send_message(raw)
            logger.info(f"Reply sent for {message_id}")
            report.record("send_reply", StepStatus.SUCCEEDED, receipt.get("id"))
        except Exception as e:
            logger.error(f"Error sending reply for {message_id}: {e}")
            report.record("send_reply", StepStatus.FAILED, str(e))

    def _mark_read(self, message_id: str, report: ProcessingReport):
        try:
            self.mail_client.modify_message(message_id, remove_labels=[UNREAD_LABEL])
            logger.debug(f"Marked {message_id} as read")
            report.record("mark_read", StepStatus.SUCCEEDED)
        except Exception as e:
            logger.error(f"Error marking {message_id} as read: {e}")
            report.record("mark_read", StepStatus.FAILED, str(e))


def get_email_orchestrator() -> EmailOrchestrator:
    """
    Get email orchestrator instance from environment.

    Binds a Gmail session when GMAIL_ACCESS_TOKEN is set. A token bound
    later through initialize_client, in any process, takes precedence
    once sync_session runs.

    Returns:
        EmailOrchestrator instance
    """
    classifier = get_classifier()
    task_queue = get_task_queue()

    orchestrator = EmailOrchestrator(
        classifier=classifier,
        task_queue=task_queue,
        unread_query=os.getenv("UNREAD_QUERY", DEFAULT_UNREAD_QUERY),
        gmail_user_id=os.getenv("GMAIL_USER_ID", "me"),
        token_store=get_token_store()
    )

    # Env token binds locally only, it must not overwrite a stored one
    access_token = os.getenv("GMAIL_ACCESS_TOKEN")
    if access_token:
        orchestrator._bind(access_token)

    orchestrator.sync_session()

    return orchestrator
