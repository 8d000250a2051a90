"""
Claude API client for email analysis, categorization and reply generation
"""
import os
import logging
from typing import Optional

from anthropic import Anthropic, APIError, APIConnectionError, RateLimitError

from inbox_responder.labels import CATEGORIES
from inbox_responder.prompt_templates import PromptTemplates

logger = logging.getLogger(__name__)


def normalize_category(raw: str) -> str:
    """
    Map a model response onto the canonical category spelling.

    Unrecognized responses are returned stripped so the label lookup
    skips them.
    """
    cleaned = raw.strip().strip("\"'.").strip()
    for category in CATEGORIES:
        if cleaned.lower() == category.lower():
            return category
    return cleaned


class ClaudeClassifier:
    """Wrapper for Claude API interactions"""

    # Model configuration
    DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
    MAX_TOKENS = 1024  # Maximum tokens for reply generation
    TEMPERATURE = 0.7  # Balance between creativity and consistency

    def __init__(self, api_key: Optional[str] = None, model: Optional[str] = None, client: Optional[Anthropic] = None):
        """
        Initialize Claude API client

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY env var)
            model: Model name (defaults to DEFAULT_MODEL)
            client: Preconfigured Anthropic client
        """
        self.model = model or self.DEFAULT_MODEL
        self.prompt_templates = PromptTemplates()

        if client is not None:
            self.client = client
            return

        self.api_key = api_key or os.getenv("ANTHROPIC_API_KEY")
        if not self.api_key:
            raise ValueError("ANTHROPIC_API_KEY must be provided or set in environment")

        self.client = Anthropic(api_key=self.api_key)

    def _complete(self, system: str, prompt: str, max_tokens: int, temperature: float) -> str:
        """Send one user prompt and return the stripped text of the first block"""
        try:
            message = self.client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[
                    {"role": "user", "content": prompt}
                ]
            )

            tokens_used = message.usage.input_tokens + message.usage.output_tokens
            logger.debug(f"Claude call used {tokens_used} tokens")

            return message.content[0].text.strip()

        except RateLimitError as e:
            logger.error(f"Rate limit exceeded: {e}")
            raise
        except APIConnectionError as e:
            logger.error(f"Connection error to Claude API: {e}")
            raise
        except APIError as e:
            logger.error(f"Claude API error: {e}")
            raise

    def analyze_context(self, email_body: str) -> str:
        """
        Describe the context of an email

        Args:
            email_body: Body text of the email

        Returns:
            Short context description
        """
        logger.info("Analyzing email context")
        return self._complete(
            system=self.prompt_templates.ANALYSIS_SYSTEM_PROMPT,
            prompt=self.prompt_templates.build_analysis_prompt(email_body),
            max_tokens=200,
            temperature=0.3
        )

    def categorize(self, email_body: str) -> str:
        """
        Categorize an email into one of the fixed categories

        Args:
            email_body: Body text of the email

        Returns:
            Canonical category, or the raw model answer if it is not one
        """
        logger.info("Categorizing email")
        raw = self._complete(
            system=self.prompt_templates.CATEGORY_SYSTEM_PROMPT,
            prompt=self.prompt_templates.build_category_prompt(email_body),
            max_tokens=10,
            temperature=0.3  # More deterministic for classification
        )

        category = normalize_category(raw)
        logger.info(f"Detected category: {category}")
        return category

    def generate_reply(self, email_body: str) -> str:
        """
        Generate a reply to an email

        Args:
            email_body: Body text of the email

        Returns:
            Reply text
        """
        logger.info("Generating reply")
        reply_text = self._complete(
            system=self.prompt_templates.SYSTEM_PROMPT,
            prompt=self.prompt_templates.build_reply_prompt(email_body),
            max_tokens=self.MAX_TOKENS,
            temperature=self.TEMPERATURE
        )

        logger.info(f"Generated reply: {len(reply_text)} chars")
        logger.debug(f"Reply: {reply_text[:100]}...")
        return reply_text

    def check_health(self) -> bool:
        """
        Check if Claude API is accessible

        Returns:
            True if API is accessible, False otherwise
        """
        try:
            self.client.messages.create(
                model=self.model,
                max_tokens=10,
                messages=[
                    {"role": "user", "content": "Hello"}
                ]
            )
            return True
        except Exception as e:
            logger.error(f"Claude API health check failed: {e}")
            return False


def get_classifier() -> ClaudeClassifier:
    """
    Get Claude classifier instance from environment variables.

    Returns:
        ClaudeClassifier instance
    """
    model = os.getenv("ANTHROPIC_MODEL", ClaudeClassifier.DEFAULT_MODEL)
    return ClaudeClassifier(model=model)
