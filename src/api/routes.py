"""
Completion gateway routes.

``POST /chat-with-ai`` takes ``{"message", "learningStyle"}`` and answers
``{"response"}``; every failure answers 500 ``{"error"}``.
"""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from api.completion import build_chat_model, generate_answer
from tiacher.learning.styles import DEFAULT_STYLE
from tiacher.settings import get_settings

logger = logging.getLogger(__name__)

router = APIRouter(tags=["completion"])


# =============================================================================
# Request/Response Models
# =============================================================================


class ChatWithAIRequest(BaseModel):
    """Request body sent by the chat client."""

    model_config = ConfigDict(populate_by_name=True)

    message: str = Field(..., description="The learner's message")
    learning_style: str = Field(
        DEFAULT_STYLE.value, alias="learningStyle", description="Learner's preferred style"
    )


class ChatWithAIResponse(BaseModel):
    response: str = Field(..., description="The tutor's answer")


class ErrorResponse(BaseModel):
    error: str


# =============================================================================
# Endpoints
# =============================================================================


@router.post(
    "/chat-with-ai",
    response_model=ChatWithAIResponse,
    responses={500: {"model": ErrorResponse}},
)
async def chat_with_ai(request: Request):
    """Generate a tutor answer adapted to the learner's style."""
    try:
        body = ChatWithAIRequest.model_validate(await request.json())
        model = build_chat_model(get_settings())
        answer = await generate_answer(model, body.message, body.learning_style)
    except Exception as e:
        logger.error("Error in chat-with-ai: %s", e)
        return JSONResponse(status_code=500, content={"error": str(e)})

    return ChatWithAIResponse(response=answer)
