# =============================================================================
# core/services/assistant_service.py - AI Content Assistant
# =============================================================================
# Generates titles, hooks, body copy and CTAs for a task via OpenAI chat
# completions. Each successful reply costs one AI credit; the route checks
# and consumes credits around the call.
#
# Usage:
#   assistant = ContentAssistant.from_settings(settings)
#   reply = assistant.reply(messages, TaskContext(format="Kratka Forma"))
# =============================================================================

from __future__ import annotations

import logging
from typing import Any

from openai import OpenAI, OpenAIError
from pydantic import BaseModel, Field

from app.config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Exceptions
# =============================================================================

class AssistantError(Exception):
    """
    Error while generating an assistant reply.

    Attributes:
        code: Error code for categorization
        message: Human-readable error message
        suggestion: Actionable suggestion for fixing the error
    """

    def __init__(
        self,
        message: str,
        code: str = "ASSISTANT_ERROR",
        suggestion: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.details = details or {}

    def __str__(self) -> str:
        result = f"[{self.code}] {self.message}"
        if self.suggestion:
            result += f" Suggestion: {self.suggestion}"
        return result


# =============================================================================
# Models
# =============================================================================

class ChatTurn(BaseModel):
    """One message in the assistant conversation."""
    role: str = Field(..., pattern="^(user|assistant)$")
    content: str = Field(..., min_length=1, max_length=8000)


class TaskContext(BaseModel):
    """What the assistant knows about the task being edited."""
    format: str | None = None
    niche: str | None = None
    title: str | None = None


NOT_SPECIFIED = "Not specified"


def build_system_prompt(context: TaskContext | None) -> str:
    """Build the system prompt for a task."""
    context = context or TaskContext()
    return f"""You are an expert content creator assistant helping users create viral social media content.
Your task is to help generate engaging titles, hooks, body content, and CTAs for social media posts.

Context about the task:
- Format: {context.format or NOT_SPECIFIED}
- Niche: {context.niche or NOT_SPECIFIED}
- Current title: {context.title or NOT_SPECIFIED}

Guidelines:
- For "Kratka Forma" (Short Form): Create concise, punchy content optimized for Reels/TikTok (under 60 seconds)
- For "Duga Forma" (Long Form): Create detailed, engaging content for YouTube/Facebook (longer format)
- Hooks should be attention-grabbing and create curiosity (0-3 seconds)
- Body should deliver value and keep viewers engaged (3-45 seconds for short form)
- CTAs should be clear and actionable
- Write in Serbian language (Cyrillic or Latin script, match user's preference)
- Be creative, engaging, and optimized for viral potential

When generating content, provide structured output that can be easily copied into the appropriate fields."""


# =============================================================================
# Assistant
# =============================================================================

class ContentAssistant:
    """
    OpenAI-backed content assistant.

    Args:
        client: OpenAI client, or None when no API key is configured
        model: Chat model ID
        temperature: Sampling temperature (higher = more creative)
        max_tokens: Completion token cap per reply
    """

    def __init__(
        self,
        client: OpenAI | None,
        model: str,
        temperature: float = 0.8,
        max_tokens: int = 1500,
    ):
        self.client = client
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "ContentAssistant":
        client = OpenAI(api_key=settings.OPENAI_API_KEY) if settings.OPENAI_API_KEY else None
        return cls(
            client=client,
            model=settings.OPENAI_MODEL,
            temperature=settings.ASSISTANT_TEMPERATURE,
            max_tokens=settings.ASSISTANT_MAX_TOKENS,
        )

    @property
    def configured(self) -> bool:
        return self.client is not None

    def reply(self, messages: list[ChatTurn], context: TaskContext | None = None) -> str:
        """
        Generate the assistant's next message.

        Raises:
            AssistantError: If no API key is configured, the API call fails,
                or the model returns no content
        """
        if self.client is None:
            raise AssistantError(
                message="OpenAI API key is not configured",
                code="ASSISTANT_NOT_CONFIGURED",
                suggestion="Set OPENAI_API_KEY in the environment",
            )

        payload = [{"role": "system", "content": build_system_prompt(context)}]
        payload.extend({"role": m.role, "content": m.content} for m in messages)

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=payload,
                temperature=self.temperature,
                max_tokens=self.max_tokens,
            )
        except OpenAIError as e:
            raise AssistantError(
                message=f"OpenAI API call failed: {e}",
                code="OPENAI_ERROR",
                suggestion="Check your OPENAI_API_KEY and network connection",
                details={"model": self.model},
            ) from e

        content = response.choices[0].message.content if response.choices else None
        if not content:
            raise AssistantError(message="No response from AI", code="EMPTY_RESPONSE")

        logger.debug(f"Assistant reply: {content[:200]}...")
        return content
