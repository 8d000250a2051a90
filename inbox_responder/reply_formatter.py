"""
Reply message building and validation logic
"""
import base64
import logging
import re
from typing import Optional, Tuple

logger = logging.getLogger(__name__)


class ReplyFormatter:
    """Builds Gmail-ready reply messages"""

    SUBJECT_PREFIX = "Re: "

    # Placeholder patterns to detect
    PLACEHOLDER_PATTERNS = [
        r'\[.*?\]',  # [Your Name], [Company], etc.
        r'\{.*?\}',  # {name}, {company}, etc.
        r'XXX',
    ]

    @staticmethod
    def encode_base64url(text: str) -> str:
        """
        Encode text as unpadded base64url

        Args:
            text: Text to encode

        Returns:
            Base64 with '+' -> '-', '/' -> '_' and trailing '=' stripped
        """
        return base64.urlsafe_b64encode(text.encode("utf-8")).decode("ascii").rstrip("=")

    @staticmethod
    def decode_base64url(encoded: str) -> str:
        """Decode unpadded base64url back to text"""
        padding = "=" * (-len(encoded) % 4)
        return base64.urlsafe_b64decode(encoded + padding).decode("utf-8")

    @staticmethod
    def format_reply_block(
        from_address: str,
        to_address: str,
        subject: str,
        message_id: str,
        reply_text: str
    ) -> str:
        """
        Build the newline-joined reply message.

        Args:
            from_address: Sender of the reply
            to_address: Recipient of the reply
            subject: Original subject (prefixed with "Re: ")
            message_id: Id of the message being replied to
            reply_text: Reply body

        Returns:
            Plain reply message
        """
        return "\n".join([
            f"From: {from_address}",
            f"To: {to_address}",
            f"Subject: {ReplyFormatter.SUBJECT_PREFIX}{subject}",
            f"In-Reply-To: {message_id}",
            f"References: {message_id}",
            "",
            reply_text,
        ])

    @staticmethod
    def build_reply_message(
        from_address: str,
        to_address: str,
        subject: str,
        message_id: str,
        reply_text: str
    ) -> str:
        """Build and base64url-encode a reply message"""
        block = ReplyFormatter.format_reply_block(
            from_address=from_address,
            to_address=to_address,
            subject=subject,
            message_id=message_id,
            reply_text=reply_text
        )
        logger.debug(f"Reply message: {block[:200]}...")
        return ReplyFormatter.encode_base64url(block)

    @staticmethod
    def validate_reply(text: Optional[str]) -> Tuple[bool, Optional[str]]:
        """
        Validate a generated reply

        Args:
            text: Reply text to validate

        Returns:
            Tuple of (is_valid, error_message)
        """
        if not text or not text.strip():
            return False, "Reply is empty"

        for pattern in ReplyFormatter.PLACEHOLDER_PATTERNS:
            if re.search(pattern, text, re.IGNORECASE):
                return False, f"Reply contains placeholder: {pattern}"

        return True, None
