"""
Inbox Responder Service

Automates replies to unread Gmail messages:
- Polls the mailbox for unread messages via a Celery task
- Categorizes each message with Claude and applies the matching label
- Generates and sends a reply with Claude
- Marks the original message as read
"""

__version__ = "1.0.0"
