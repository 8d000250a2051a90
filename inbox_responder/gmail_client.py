"""
Gmail API client for reading, labeling and replying to messages
"""
import logging
from typing import Any, Dict, List, Optional

from google.oauth2.credentials import Credentials
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError

from inbox_responder.models import EmailRecord

logger = logging.getLogger(__name__)

DEFAULT_UNREAD_QUERY = "is:unread"


def _find_header(headers: List[Dict[str, str]], name: str) -> Optional[str]:
    """Return the value of the first header whose name matches exactly"""
    for header in headers:
        if header.get("name") == name:
            return header.get("value")
    return None


def extract_email_record(message: Dict[str, Any]) -> EmailRecord:
    """
    Extract sender, recipient, subject and snippet from a Gmail message.

    Header names are matched case-sensitively.

    Args:
        message: Message resource returned by users.messages.get

    Returns:
        EmailRecord with defaults for missing fields
    """
    headers = (message.get("payload") or {}).get("headers") or []

    return EmailRecord(
        from_address=_find_header(headers, "From") or "",
        to_address=_find_header(headers, "To") or "",
        subject=_find_header(headers, "Subject") or "No Subject",
        body=message.get("snippet") or "",
    )


class GmailClient:
    """Client for the Gmail API"""

    def __init__(self, service: Any, user_id: str = "me"):
        """
        Initialize Gmail client.

        Args:
            service: Gmail API service built by googleapiclient
            user_id: Mailbox owner ('me' for the authenticated user)
        """
        self.service = service
        self.user_id = user_id

    @classmethod
    def from_access_token(cls, access_token: str, user_id: str = "me") -> "GmailClient":
        """
        Build a client authenticated with an OAuth2 access token.

        Args:
            access_token: OAuth2 access token with Gmail modify/send scopes
            user_id: Mailbox owner

        Returns:
            GmailClient instance
        """
        credentials = Credentials(token=access_token)
        service = build("gmail", "v1", credentials=credentials, cache_discovery=False)
        return cls(service, user_id=user_id)

    def list_unread(self, query: str = DEFAULT_UNREAD_QUERY) -> List[str]:
        """
        List ids of messages matching the query, following pagination.

        Args:
            query: Gmail search query

        Returns:
            List of message ids
        """
        try:
            message_ids: List[str] = []
            page_token = None

            while True:
                response = self.service.users().messages().list(
                    userId=self.user_id,
                    q=query,
                    pageToken=page_token
                ).execute()

                for message in response.get("messages", []) or []:
                    message_ids.append(message["id"])

                page_token = response.get("nextPageToken")
                if not page_token:
                    break

            logger.info(f"Found {len(message_ids)} messages matching '{query}'")
            return message_ids

        except HttpError as e:
            logger.error(f"Gmail API error listing messages: {e}")
            raise

    def get_message(self, message_id: str) -> Dict[str, Any]:
        """
        Get a message by id.

        Args:
            message_id: Gmail message id

        Returns:
            Message resource with headers and snippet
        """
        try:
            return self.service.users().messages().get(
                userId=self.user_id,
                id=message_id
            ).execute()
        except HttpError as e:
            logger.error(f"Gmail API error fetching message {message_id}: {e}")
            raise

    def send_message(self, raw: str) -> Dict[str, Any]:
        """
        Send a base64url-encoded message.

        Args:
            raw: Encoded message

        Returns:
            Send receipt with the new message id
        """
        try:
            receipt = self.service.users().messages().send(
                userId=self.user_id,
                body={"raw": raw}
            ).execute()
            logger.info(f"Sent message {receipt.get('id')}")
            return receipt
        except HttpError as e:
            logger.error(f"Gmail API error sending message: {e}")
            raise

    def modify_message(
        self,
        message_id: str,
        add_labels: Optional[List[str]] = None,
        remove_labels: Optional[List[str]] = None
    ) -> Dict[str, Any]:
        """
        Add or remove labels on a message.

        Args:
            message_id: Gmail message id
            add_labels: Label ids to add
            remove_labels: Label ids to remove

        Returns:
            Modified message resource
        """
        body = {}
        if add_labels:
            body["addLabelIds"] = add_labels
        if remove_labels:
            body["removeLabelIds"] = remove_labels

        try:
            return self.service.users().messages().modify(
                userId=self.user_id,
                id=message_id,
                body=body
            ).execute()
        except HttpError as e:
            logger.error(f"Gmail API error modifying message {message_id}: {e}")
            raise

    def health_check(self) -> bool:
        """
        Check if the Gmail API is reachable with the current token.

        Returns:
            True if healthy, False otherwise
        """
        try:
            self.service.users().getProfile(userId=self.user_id).execute()
            return True
        except Exception as e:
            logger.error(f"Gmail health check failed: {e}")
            return False
