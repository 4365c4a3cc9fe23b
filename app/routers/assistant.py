# =============================================================================
# app/routers/assistant.py - AI Content Assistant Endpoint
# =============================================================================
# POST /api/ai/chat
#
# Each successful reply costs one AI credit. Credits are checked before the
# model is called and consumed only after it answered.
# =============================================================================

import asyncio
import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from app.dependencies import CurrentUser, ServicesDep, UserClient
from app.exceptions import ConfigurationError, InsufficientCreditsError, PlannerException
from core.models.credits import AICredits
from core.resources.credits import CreditsResource
from core.services.assistant_service import AssistantError, ChatTurn, TaskContext

logger = logging.getLogger(__name__)

router = APIRouter()

CREDITS_PER_REPLY = 1


class ChatRequest(BaseModel):
    """Conversation so far plus the task being worked on."""
    messages: list[ChatTurn] = Field(..., min_length=1)
    task_context: TaskContext | None = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "messages": [{"role": "user", "content": "Give me 3 hooks for a gym reel"}],
                "task_context": {"format": "Kratka Forma", "niche": "Fitness", "title": "Leg day"},
            }
        }
    }


class ChatResponse(BaseModel):
    message: str
    credits: AICredits | None = None


@router.post("/ai/chat", response_model=ChatResponse)
async def chat(body: ChatRequest, user: CurrentUser, client: UserClient, services: ServicesDep):
    """
    Ask the content assistant for the next message.

    Raises:
        500: If OPENAI_API_KEY is not configured or the model call fails
        402: If no credits are left this month
    """
    if not services.assistant.configured:
        raise ConfigurationError("OpenAI API key is not configured", setting="OPENAI_API_KEY")

    credits = CreditsResource(client, user.id)
    state = credits.load()
    if not credits.has_credits:
        remaining = state.data.credits_remaining if state.data else 0
        reset_at = state.data.reset_at if state.data else ""
        raise InsufficientCreditsError(remaining, reset_at)

    try:
        message = await asyncio.to_thread(services.assistant.reply, body.messages, body.task_context)
    except AssistantError as e:
        logger.error(f"Assistant reply failed for user {user.id}: {e}")
        raise PlannerException(
            message=e.message,
            code=e.code,
            status_code=500,
            suggestion=e.suggestion,
            details=e.details,
        ) from e

    consumed = credits.consume(CREDITS_PER_REPLY)
    if consumed.error:
        # The reply is returned even if the counter write failed
        logger.warning(f"Failed to consume AI credit for user {user.id}: {consumed.error}")
    else:
        await services.connections.broadcast(
            str(user.id),
            {"type": "credits", "credits": consumed.data.model_dump(mode="json"), "error": None},
        )

    return ChatResponse(message=message, credits=consumed.data or credits.state.data)
