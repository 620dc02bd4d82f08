"""
Upstream text completion through langchain-anthropic.

The proxy builds a system prompt from the learner's style and asks the
configured model for one answer.
"""

from langchain_anthropic import ChatAnthropic
from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage

from tiacher.errors import CompletionError
from tiacher.learning.styles import build_system_prompt
from tiacher.settings import Settings


def build_chat_model(settings: Settings) -> BaseChatModel:
    """
    Create the upstream chat model.

    Raises:
        CompletionError: If no API key is configured
    """
    if not settings.anthropic_api_key:
        raise CompletionError("TIACHER_ANTHROPIC_API_KEY is not configured")

    return ChatAnthropic(
        model=settings.tutor_model,
        api_key=settings.anthropic_api_key,
        temperature=settings.completion_temperature,
        max_tokens=settings.completion_max_tokens,
    )


def _response_text(content) -> str:
    """Flatten a chat model's content (plain string or list of blocks)."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for block in content:
            if isinstance(block, str):
                parts.append(block)
            elif isinstance(block, dict) and block.get("type") == "text":
                parts.append(block.get("text", ""))
        return "".join(parts)
    return ""


async def generate_answer(model: BaseChatModel, message: str, learning_style: str) -> str:
    """
    Ask ``model`` for a style-conditioned answer.

    Raises:
        CompletionError: If the upstream call fails or returns no text
    """
    try:
        response = await model.ainvoke(
            [
                SystemMessage(content=build_system_prompt(learning_style)),
                HumanMessage(content=message),
            ]
        )
    except Exception as e:
        raise CompletionError(f"Upstream completion error: {e}") from e

    text = _response_text(response.content)
    if not text:
        raise CompletionError("Upstream completion returned no text")
    return text
