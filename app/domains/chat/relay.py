"""Relay a provider completion to the client as Server-Sent Events."""

import logging
from collections.abc import AsyncIterator
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.domains.chat.service import ChatService
from app.domains.llm.service import DeltaKind, LLMService
from app.schemas.chat import ChatMessage, MessageRole, to_documents
from app.streaming.events import (
    AssistantComplete,
    AssistantDelta,
    AssistantStart,
    Done,
    ErrorEvent,
    ErrorInfo,
    ThinkingDelta,
    ThinkingEnd,
    ThinkingStart,
)
from app.streaming.sse import encode_frame

logger = logging.getLogger(__name__)

RELAY_ERROR_MESSAGE = "Failed to get response from LLM."


def to_provider_messages(history: list[dict[str, Any]], context_length: int | None = None) -> list[dict[str, str]]:
    """Reduce stored messages to the ``{role, content}`` pairs providers accept.

    Tool requests are sent as assistant text and tool results as user text,
    each prefixed with its role. Only the last ``context_length`` messages are
    kept when a limit is set.
    """
    provider_messages = []
    for message in history:
        if message.get("is_waiting"):
            continue
        try:
            role = MessageRole(message.get("role"))
        except ValueError:
            logger.debug("Dropping message with unknown role %r", message.get("role"))
            continue
        content = message.get("content") or ""

        if role.is_tool_request or role.is_tool_result:
            if not content:
                continue
            provider_role = MessageRole.USER if role.is_tool_result else MessageRole.ASSISTANT
            provider_messages.append({"role": provider_role.value, "content": f"[{role.value}] {content}"})
        else:
            provider_messages.append({"role": role.value, "content": content})

    if context_length:
        provider_messages = provider_messages[-context_length:]
    return provider_messages


class StreamRelay:
    """Streams one assistant turn and stores it once the provider finishes."""

    def __init__(
        self,
        db: AsyncSession,
        llm: LLMService,
        chat_id: UUID,
        history: list[ChatMessage],
        model: str,
        max_tokens: int | None = None,
        context_length: int | None = None,
    ):
        self.db = db
        self.llm = llm
        self.chat_id = chat_id
        self.history = to_documents(history)
        self.model = model
        self.max_tokens = max_tokens
        self.context_length = context_length

    async def stream(self) -> AsyncIterator[str]:
        """Yield SSE frames for the turn, ending with ``done`` or a single ``error``."""
        content_parts: list[str] = []
        thinking_parts: list[str] = []
        assistant_started = False
        thinking_open = False

        try:
            deltas = self.llm.stream_chat(
                to_provider_messages(self.history, self.context_length),
                model=self.model,
                max_tokens=self.max_tokens,
            )
            async for delta in deltas:
                if delta.kind is DeltaKind.REASONING:
                    if not thinking_open:
                        thinking_open = True
                        yield encode_frame(ThinkingStart())
                    thinking_parts.append(delta.text)
                    yield encode_frame(ThinkingDelta(content=delta.text))
                    continue

                if thinking_open:
                    thinking_open = False
                    yield encode_frame(ThinkingEnd())
                if not assistant_started:
                    assistant_started = True
                    yield encode_frame(AssistantStart())
                content_parts.append(delta.text)
                yield encode_frame(AssistantDelta(content=delta.text))

            if thinking_open:
                yield encode_frame(ThinkingEnd())

            content = "".join(content_parts)
            if content:
                assistant_message: dict[str, Any] = {"role": MessageRole.ASSISTANT.value, "content": content}
                if thinking_parts:
                    assistant_message["thinking"] = "".join(thinking_parts)
                await ChatService(self.db).save_assistant_turn(self.chat_id, self.history, assistant_message)
                yield encode_frame(AssistantComplete())
            else:
                logger.info("Provider returned no content for chat %s; nothing saved", self.chat_id)

            yield encode_frame(Done())
        except Exception as e:
            # Errors after the response has started can only be reported in-band
            logger.error("Stream for chat %s failed: %s", self.chat_id, str(e))
            await self.db.rollback()
            yield encode_frame(ErrorEvent(error=ErrorInfo(message=RELAY_ERROR_MESSAGE)))
        finally:
            await self.llm.close()
