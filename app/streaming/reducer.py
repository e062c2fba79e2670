"""Fold stream events into a chat's message list.

A ``TurnReducer`` owns the messages of the chat being streamed. It keeps at
most one open assistant slot and one open tool slot; deltas always land in
the open slot. Callers render ``display_messages()`` after each event.
"""

import logging
import re
from collections.abc import Callable
from typing import Any

from app.schemas.chat import MessageState
from app.streaming.events import (
    EVENT_TYPES,
    AssistantComplete,
    AssistantDelta,
    AssistantStart,
    Done,
    ErrorEvent,
    StreamEnd,
    StreamEvent,
    ThinkingDelta,
    ThinkingEnd,
    ThinkingStart,
    ToolComplete,
    ToolCreate,
    ToolDelta,
    ToolResult,
    ToolStateUpdate,
    UserMessageAck,
)

logger = logging.getLogger(__name__)

_EXTRA_NEWLINES = re.compile(r"\n{3,}")

TOOL_USE_REASON = "tool_use"
READY_TO_EXECUTE = MessageState.READY_TO_EXECUTE.value


class StreamError(Exception):
    """Terminal error reported by the server in the middle of a stream."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


def normalize_content(text: str | None) -> str:
    """Collapse runs of three or more newlines to a blank line."""
    return _EXTRA_NEWLINES.sub("\n\n", text or "")


def placeholder() -> dict[str, Any]:
    """Waiting assistant message shown until the first event arrives."""
    return {"role": "assistant", "content": "", "is_waiting": True}


def is_placeholder(message: dict[str, Any] | None) -> bool:
    return bool(message and message.get("is_waiting"))


def strip_placeholders(messages: list[dict[str, Any]]) -> list[dict[str, Any]]:
    return [message for message in messages if not is_placeholder(message)]


class TurnReducer:
    """Apply the events of one turn to a message list."""

    def __init__(self, messages: list[dict[str, Any]]):
        self.messages = [dict(message) for message in messages]
        self.assistant_index: int | None = None
        self.thinking = ""
        self.is_thinking = False
        self.open_tool_id: str | None = None
        self.paused_for_client_tool = False
        self.finished = False
        self._results_seen: set[str] = set()

        self._handlers: dict[type[StreamEvent], Callable[[Any], None]] = {
            ThinkingStart: self._on_thinking_start,
            ThinkingDelta: self._on_thinking_delta,
            ThinkingEnd: self._on_thinking_end,
            AssistantStart: self._on_assistant_start,
            AssistantDelta: self._on_assistant_delta,
            AssistantComplete: self._on_assistant_complete,
            UserMessageAck: self._on_user_message_ack,
            ToolCreate: self._on_tool_create,
            ToolDelta: self._on_tool_delta,
            ToolComplete: self._on_tool_complete,
            ToolStateUpdate: self._on_tool_state_update,
            ToolResult: self._on_tool_result,
            StreamEnd: self._on_stream_end,
            Done: self._on_done,
            ErrorEvent: self._on_error,
        }
        missing = set(EVENT_TYPES) - set(self._handlers)
        if missing:
            raise TypeError(f"No handler for {sorted(cls.__name__ for cls in missing)}")

    def apply(self, event: StreamEvent) -> None:
        handler = self._handlers.get(type(event))
        if handler is None:
            logger.debug("Ignoring event %s", event.type)
            return
        handler(event)

    def display_messages(self) -> list[dict[str, Any]]:
        """Messages with normalized content, ready to render."""
        displayed = []
        for message in self.messages:
            if message.get("role") == "assistant" and message.get("content"):
                message = {**message, "content": normalize_content(message["content"])}
            displayed.append(message)
        return displayed

    # Slot helpers

    def _last(self) -> dict[str, Any] | None:
        return self.messages[-1] if self.messages else None

    def _replace_or_append(self, message: dict[str, Any]) -> int:
        if is_placeholder(self._last()):
            self.messages[-1] = message
        else:
            self.messages.append(message)
        return len(self.messages) - 1

    def _assistant_slot(self) -> dict[str, Any]:
        if self.assistant_index is None or self.assistant_index >= len(self.messages):
            self.assistant_index = self._replace_or_append({"role": "assistant", "content": ""})
        return self.messages[self.assistant_index]

    def _find_tool(self, tool_id: str) -> dict[str, Any] | None:
        for message in reversed(self.messages):
            role = str(message.get("role", ""))
            if message.get("tool_id") == tool_id and not role.endswith("_result"):
                return message
        logger.warning("Stream referenced unknown tool %s", tool_id)
        return None

    # Thinking

    def _on_thinking_start(self, event: ThinkingStart) -> None:
        self.is_thinking = True
        self.thinking = ""
        last = self._last()
        if is_placeholder(last):
            self.messages[-1] = {"role": "assistant", "content": "", "thinking": ""}
        else:
            self.messages.append({"role": "assistant", "content": "", "thinking": ""})
        self.assistant_index = len(self.messages) - 1

    def _on_thinking_delta(self, event: ThinkingDelta) -> None:
        self.is_thinking = True
        self.thinking += event.content
        self._assistant_slot()["thinking"] = self.thinking

    def _on_thinking_end(self, event: ThinkingEnd) -> None:
        self.is_thinking = False

    # Assistant text

    def _on_assistant_start(self, event: AssistantStart) -> None:
        last = self._last()
        if is_placeholder(last):
            self.messages[-1] = {"role": "assistant", "content": ""}
            self.assistant_index = len(self.messages) - 1
        elif self.assistant_index is None or not last or last.get("role") != "assistant":
            self.messages.append({"role": "assistant", "content": ""})
            self.assistant_index = len(self.messages) - 1

    def _on_assistant_delta(self, event: AssistantDelta) -> None:
        slot = self._assistant_slot()
        slot.pop("is_waiting", None)
        slot["content"] = (slot.get("content") or "") + event.content

    def _on_assistant_complete(self, event: AssistantComplete) -> None:
        pass

    def _on_user_message_ack(self, event: UserMessageAck) -> None:
        for index in range(len(self.messages) - 1, -1, -1):
            if self.messages[index].get("role") == "user":
                self.messages[index] = dict(event.message)
                return
        logger.warning("Received user message ack without a pending user message")

    # Tools

    def _on_tool_create(self, event: ToolCreate) -> None:
        message = dict(event.message)
        message.setdefault("role", event.tool_role)
        self._replace_or_append(message)
        self.open_tool_id = event.tool_id

    def _on_tool_delta(self, event: ToolDelta) -> None:
        message = self._find_tool(event.tool_id)
        if message is not None:
            message["content"] = (message.get("content") or "") + event.content

    def _on_tool_complete(self, event: ToolComplete) -> None:
        message = self._find_tool(event.tool_id)
        if message is not None:
            message["state"] = READY_TO_EXECUTE

    def _on_tool_state_update(self, event: ToolStateUpdate) -> None:
        message = self._find_tool(event.tool_id)
        if message is not None:
            message["state"] = event.state

    def _on_tool_result(self, event: ToolResult) -> None:
        if event.tool_id in self._results_seen:
            logger.warning("Ignoring duplicate result for tool %s", event.tool_id)
            return
        self._results_seen.add(event.tool_id)

        request = self._find_tool(event.tool_id)
        if request is not None and event.state:
            request["state"] = event.state

        result = event.result.model_dump(exclude_none=True)
        result_message = {
            **{key: value for key, value in result.items() if key != "content"},
            "role": f"{event.tool_role}_result",
            "tool_id": event.tool_id,
            "content": result.get("content"),
        }
        self.messages.append(result_message)

        if self.open_tool_id == event.tool_id:
            self.open_tool_id = None
        self.assistant_index = None
        self.thinking = ""

    # Turn end

    def _on_stream_end(self, event: StreamEnd) -> None:
        self.paused_for_client_tool = event.reason == TOOL_USE_REASON
        self.finished = True
        self.is_thinking = False

    def _on_done(self, event: Done) -> None:
        self.finished = True
        self.is_thinking = False

    def _on_error(self, event: ErrorEvent) -> None:
        self.is_thinking = False
        raise StreamError(event.error.message)
