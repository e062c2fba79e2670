"""Gateway to OpenAI-compatible providers."""

import logging
from collections.abc import AsyncIterator
from enum import Enum
from typing import Any

import openai
from openai import AsyncOpenAI
from pydantic import BaseModel

from app.core.config import settings
from app.exceptions.llm import LLMConfigurationError, LLMTimeoutError, LLMUpstreamError
from models import User

logger = logging.getLogger(__name__)


class DeltaKind(str, Enum):
    """Kind of text carried by a streamed chunk."""

    CONTENT = "content"
    REASONING = "reasoning"


class StreamDelta(BaseModel):
    """One piece of streamed text."""

    kind: DeltaKind
    text: str


class LLMService:
    """Service class for chat completions and model listing on one user's provider."""

    def __init__(
        self,
        api_key: str | None,
        base_url: str | None = None,
        timeout: float | None = None,
        missing_key_message: str = "API key not configured",
    ):
        """Build a client for ``base_url`` authenticated with ``api_key``.

        Raises:
            LLMConfigurationError: If no API key is given. No request is made.
        """
        if not api_key:
            raise LLMConfigurationError(missing_key_message)

        self.base_url = base_url or settings.default_base_url or None
        self.client = AsyncOpenAI(
            api_key=api_key,
            base_url=self.base_url,
            timeout=timeout or settings.llm_request_timeout,
            # Failures surface to the caller as-is
            max_retries=0,
        )

    @classmethod
    def for_user(cls, user: User, missing_key_message: str = "API key not configured") -> "LLMService":
        """Create a service from the user's stored key and base URL."""
        return cls(
            api_key=user.get_api_key(),
            base_url=user.base_url,
            missing_key_message=missing_key_message,
        )

    async def list_models(self) -> list[str]:
        """Return the provider's model ids sorted alphabetically."""
        try:
            page = await self.client.models.list()
        except openai.APIError as e:
            raise self._map_error(e) from e

        return sorted(model.id for model in page.data)

    async def stream_chat(
        self,
        messages: list[dict[str, Any]],
        model: str,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamDelta]:
        """Stream a completion, yielding content and reasoning text as it arrives."""
        params: dict[str, Any] = {"model": model, "messages": messages, "stream": True}
        if max_tokens:
            params["max_tokens"] = max_tokens

        try:
            stream = await self.client.chat.completions.create(**params)
            async for chunk in stream:
                if not chunk.choices:
                    continue
                delta = chunk.choices[0].delta
                if delta is None:
                    continue

                # Reasoning models on OpenAI-compatible APIs send this extra field
                reasoning = getattr(delta, "reasoning_content", None)
                if reasoning:
                    yield StreamDelta(kind=DeltaKind.REASONING, text=reasoning)
                if delta.content:
                    yield StreamDelta(kind=DeltaKind.CONTENT, text=delta.content)
        except openai.APIError as e:
            raise self._map_error(e) from e

    async def close(self) -> None:
        await self.client.close()

    @staticmethod
    def _map_error(error: openai.APIError) -> LLMUpstreamError:
        if isinstance(error, openai.APITimeoutError):
            logger.warning("Provider request timed out")
            return LLMTimeoutError()
        if isinstance(error, openai.APIStatusError):
            logger.error("Provider returned %s: %s", error.status_code, error.message)
            return LLMUpstreamError(error.message, upstream_status=error.status_code)
        logger.error("Provider request failed: %s", str(error))
        return LLMUpstreamError(str(error) or "Failed to get response from LLM.")
