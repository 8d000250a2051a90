"""
Redis-backed store for the bound Gmail access token

The web process saves the token bound through /auth/token so that
Celery workers, which run in separate processes, can rebind to it.
"""
import os
import logging
from typing import Optional

import redis

from inbox_responder.celery_app import REDIS_URL

logger = logging.getLogger(__name__)

# Google OAuth access tokens are valid for one hour
DEFAULT_TTL_SECONDS = 3600


class TokenStore:
    """Keeps the current Gmail access token under a single Redis key"""

    KEY = "inbox_responder:gmail_access_token"

    def __init__(self, client: Optional[redis.Redis] = None, ttl_seconds: int = DEFAULT_TTL_SECONDS):
        self._redis = client or redis.Redis.from_url(REDIS_URL, decode_responses=True)
        self._ttl = ttl_seconds

    def save(self, access_token: str) -> None:
        """Store the token, replacing any previous one."""
        try:
            self._redis.set(self.KEY, access_token, ex=self._ttl)
            logger.info(f"Stored Gmail access token (expires in {self._ttl}s)")
        except redis.RedisError as e:
            logger.error(f"Failed to store Gmail access token: {e}")
            raise

    def load(self) -> Optional[str]:
        """
        Read the stored token.

        Returns:
            Token, or None if none is stored or Redis is unreachable
        """
        try:
            token = self._redis.get(self.KEY)
        except redis.RedisError as e:
            logger.warning(f"Failed to read Gmail access token: {e}")
            return None

        if isinstance(token, bytes):
            token = token.decode("utf-8")
        return token or None


def get_token_store() -> TokenStore:
    """
    Get token store instance from environment variables.

    Returns:
        TokenStore instance
    """
    url = os.getenv("TOKEN_STORE_URL", REDIS_URL)
    ttl_seconds = int(os.getenv("GMAIL_TOKEN_TTL", str(DEFAULT_TTL_SECONDS)))
    return TokenStore(redis.Redis.from_url(url, decode_responses=True), ttl_seconds=ttl_seconds)
