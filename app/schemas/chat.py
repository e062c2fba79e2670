"""Chat schemas for request/response serialization."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import ConfigDict, Field

from .base import BaseModelSchema, BaseSchema


class MessageRole(str, Enum):
    """Message role enumeration."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"
    TOOL_SEARCH = "tool_search"
    TOOL_SEARCH_RESULT = "tool_search_result"
    TOOL_CODE = "tool_code"
    TOOL_CODE_RESULT = "tool_code_result"
    TOOL_DOC_EXTRACT = "tool_doc_extract"
    TOOL_DOC_EXTRACT_RESULT = "tool_doc_extract_result"
    TOOL_GEOLOCATION = "tool_geolocation"
    TOOL_GEOLOCATION_RESULT = "tool_geolocation_result"
    TOOL_INTEGRATION = "tool_integration"
    TOOL_INTEGRATION_RESULT = "tool_integration_result"

    @property
    def is_tool_request(self) -> bool:
        return self.value.startswith("tool_") and not self.value.endswith("_result")

    @property
    def is_tool_result(self) -> bool:
        return self.value.startswith("tool_") and self.value.endswith("_result")


class MessageState(str, Enum):
    """Lifecycle of a tool message."""

    WRITING = "writing"
    ANALYZING = "analyzing"
    READY_TO_EXECUTE = "ready_to_execute"
    EXECUTING = "executing"
    COMPLETED = "completed"
    ERROR = "error"


class Attachment(BaseSchema):
    """File attached to a message."""

    model_config = ConfigDict(from_attributes=True, extra="allow")

    id: str = Field(..., description="File id")
    file_name: str = Field(..., max_length=255)
    object_name: str = Field(..., max_length=500, description="Storage object name")
    mime_type: str = Field(..., max_length=255)
    size: int = Field(..., ge=0, description="Size in bytes")


class ChatMessage(BaseSchema):
    """One message of a chat. Unknown keys sent by clients are kept."""

    model_config = ConfigDict(from_attributes=True, extra="allow")

    role: MessageRole
    content: str | None = None
    attachments: list[Attachment] | None = None
    thinking: str | None = None
    state: MessageState | None = None
    tool_id: str | None = None
    tool_name: str | None = None
    is_waiting: bool | None = Field(None, description="Client placeholder, never persisted")

    def to_document(self) -> dict[str, Any]:
        """Return the message as stored: only keys the sender provided, no placeholder flag."""
        data = self.model_dump(mode="json")
        provided = set(self.model_fields_set) | set(self.model_extra or {})
        return {key: value for key, value in data.items() if key in provided and key != "is_waiting"}


def to_documents(messages: list[ChatMessage]) -> list[dict[str, Any]]:
    """Serialize messages for storage, dropping waiting placeholders."""
    return [message.to_document() for message in messages if not message.is_waiting]


class ChatCreate(BaseSchema):
    """Schema for creating a chat from its first messages."""

    messages: list[ChatMessage] = Field(..., min_length=1, description="Initial messages are required")


class ChatUpdate(BaseSchema):
    """Schema for renaming a chat or saving its messages."""

    title: str | None = Field(None, min_length=1, max_length=255, description="New title")
    messages: list[ChatMessage] | None = Field(None, description="Full ordered message list")
    version: int | None = Field(None, ge=1, description="Expected stored version for a conditional write")


class ChatListItem(BaseSchema):
    """Schema for an entry of the chat list."""

    id: UUID
    title: str
    updated_at: datetime


class ChatResponse(BaseModelSchema):
    """Schema for a chat with all of its messages."""

    user_id: UUID
    title: str
    messages: list[dict[str, Any]] = Field(default_factory=list)
    version: int


class ChatDeleteResponse(BaseSchema):
    """Schema for delete confirmations."""

    message: str
    deleted: int = 1


class StreamRequest(BaseSchema):
    """Schema for requesting a streamed reply."""

    messages: list[ChatMessage] | None = Field(None, description="Message history to answer")
    metadata: dict[str, Any] | None = Field(None, description="Client hints, e.g. client_time")


# Update forward references if needed
ChatCreate.model_rebuild()
ChatUpdate.model_rebuild()
StreamRequest.model_rebuild()
