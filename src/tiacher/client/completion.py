"""
HTTP client for the completion gateway (``POST /chat-with-ai``).
"""

import logging

import httpx

from tiacher.errors import CompletionError
from tiacher.learning.styles import fallback_response
from tiacher.settings import get_settings

logger = logging.getLogger(__name__)

CHAT_PATH = "/chat-with-ai"


class CompletionClient:
    """Asks the completion proxy for a style-conditioned tutor answer."""

    def __init__(
        self,
        base_url: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.completion_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.completion_timeout
        self._transport = transport

    async def complete(self, message: str, learning_style: str) -> str:
        """
        Get the tutor's answer to ``message``.

        Raises:
            CompletionError: Transport failure, non-200 status, or a body
                without a text ``response``
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    CHAT_PATH, json={"message": message, "learningStyle": learning_style}
                )
        except httpx.HTTPError as e:
            raise CompletionError(f"Completion gateway unreachable: {e}") from e

        if response.status_code != 200:
            detail = ""
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                detail = body.get("error", "")
            raise CompletionError(
                f"Completion gateway returned {response.status_code}"
                + (f": {detail}" if detail else "")
            )

        try:
            body = response.json()
        except ValueError as e:
            raise CompletionError("Completion gateway returned malformed JSON") from e

        text = body.get("response") if isinstance(body, dict) else None
        if not isinstance(text, str):
            raise CompletionError("Completion gateway response has no text")

        return text

    async def complete_or_fallback(self, message: str, learning_style: str) -> tuple[str, bool]:
        """
        Like ``complete`` but never fails: on error a placeholder answer in
        the learner's style is returned instead.

        Returns:
            (answer text, True if the placeholder was used)
        """
        try:
            return await self.complete(message, learning_style), False
        except CompletionError as e:
            logger.error("Error calling completion gateway: %s", e)
            return fallback_response(message, learning_style), True
