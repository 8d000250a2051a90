"""
Prompt templates for Claude classification and reply generation
"""
from inbox_responder.labels import CATEGORIES


class PromptTemplates:
    """Manages prompt templates for analysis, categorization and replies"""

    # Base system prompt for reply generation
    SYSTEM_PROMPT = """You are an email assistant replying to inbound emails on behalf of the mailbox owner.
Your goal is to generate concise, contextually appropriate responses that address the sender's main points.

Key principles:
- Be clear and direct
- Match the tone of the original email
- Keep replies brief but complete (2-4 sentences ideal)
- Never use placeholders like [Your Name] or [Company]
- Generate ONLY the reply text, no explanations or meta-commentary"""

    ANALYSIS_SYSTEM_PROMPT = "You are an email analyst. Describe the context and intent of emails briefly."

    CATEGORY_SYSTEM_PROMPT = "You are an email classifier. Classify emails accurately into the given categories."

    @staticmethod
    def build_analysis_prompt(email_body: str) -> str:
        """
        Build a prompt to describe the context of an email

        Args:
            email_body: Body text of the email

        Returns:
            Prompt string for context analysis
        """
        return f"""Analyze this email and describe its context in one or two sentences:
who the sender appears to be, what they want, and how urgent it is.

Email:
{email_body}

Respond with ONLY the description:"""

    @staticmethod
    def build_category_prompt(email_body: str) -> str:
        """
        Build a prompt to categorize an email into the fixed label set

        Args:
            email_body: Body text of the email

        Returns:
            Prompt string for categorization
        """
        choices = ", ".join(CATEGORIES)
        return f"""Categorize this email by the sender's interest.
Choose ONE of: {choices}

Email:
{email_body}

Respond with ONLY the category (no explanation):"""

    @staticmethod
    def build_reply_prompt(email_body: str) -> str:
        """
        Build a prompt for reply generation

        Args:
            email_body: Body text of the email

        Returns:
            Complete prompt string for Claude API
        """
        prompt_parts = [
            "Email to reply to:",
            email_body,
            "",
            "---",
            "",
            "Keep the reply concise (2-4 sentences ideal, but adjust based on the email's complexity).",
            "If the sender is interested, suggest a short call. If they want more information, offer to share it.",
            "",
            "Generate ONLY the reply text (no subject line, no explanations):",
        ]
        return "\n".join(prompt_parts)
