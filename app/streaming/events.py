"""Stream event vocabulary.

Every SSE frame carries one JSON object tagged by ``type``. The union below
covers every tag the server may send; ``parse_event`` turns a decoded frame
into one of these models.
"""

import logging
from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from pydantic import ValidationError as PydanticValidationError

logger = logging.getLogger(__name__)

TOOL_KINDS = ("CODE", "SEARCH", "DOC_EXTRACT", "INTEGRATION", "GEOLOCATION")
# STATE_UPDATE first so it wins over the shorter suffixes
TOOL_ACTIONS = ("_STATE_UPDATE", "_CREATE", "_DELTA", "_COMPLETE", "_RESULT")


class StreamEvent(BaseModel):
    """Base class of all stream events."""

    model_config = ConfigDict(extra="allow")

    type: str


class ThinkingStart(StreamEvent):
    type: Literal["THINKING_START"] = "THINKING_START"


class ThinkingDelta(StreamEvent):
    type: Literal["THINKING_DELTA"] = "THINKING_DELTA"
    content: str = ""


class ThinkingEnd(StreamEvent):
    type: Literal["THINKING_END"] = "THINKING_END"


class AssistantStart(StreamEvent):
    type: Literal["ASSISTANT_START"] = "ASSISTANT_START"


class AssistantDelta(StreamEvent):
    type: Literal["ASSISTANT_DELTA"] = "ASSISTANT_DELTA"
    content: str = ""


class AssistantComplete(StreamEvent):
    type: Literal["ASSISTANT_COMPLETE"] = "ASSISTANT_COMPLETE"


class UserMessageAck(StreamEvent):
    """Server copy of the user message that started the turn."""

    type: Literal["USER_MESSAGE_ACK"] = "USER_MESSAGE_ACK"
    message: dict[str, Any]


class ToolEvent(StreamEvent):
    """Shared behaviour of ``TOOL_<KIND>_<ACTION>`` events."""

    @property
    def tool_role(self) -> str:
        """Role of the tool request message, e.g. ``tool_code``."""
        kind = self.type[len("TOOL_"):]
        for suffix in TOOL_ACTIONS:
            if kind.endswith(suffix):
                kind = kind[: -len(suffix)]
                break
        return f"tool_{kind.lower()}"


class ToolCreate(ToolEvent):
    type: Literal[
        "TOOL_CODE_CREATE",
        "TOOL_SEARCH_CREATE",
        "TOOL_DOC_EXTRACT_CREATE",
        "TOOL_INTEGRATION_CREATE",
        "TOOL_GEOLOCATION_CREATE",
    ]
    message: dict[str, Any]

    @property
    def tool_id(self) -> str | None:
        return self.message.get("tool_id")


class ToolDelta(ToolEvent):
    type: Literal[
        "TOOL_CODE_DELTA",
        "TOOL_SEARCH_DELTA",
        "TOOL_DOC_EXTRACT_DELTA",
        "TOOL_INTEGRATION_DELTA",
        "TOOL_GEOLOCATION_DELTA",
    ]
    tool_id: str
    content: str = ""


class ToolComplete(ToolEvent):
    type: Literal[
        "TOOL_CODE_COMPLETE",
        "TOOL_SEARCH_COMPLETE",
        "TOOL_DOC_EXTRACT_COMPLETE",
        "TOOL_INTEGRATION_COMPLETE",
        "TOOL_GEOLOCATION_COMPLETE",
    ]
    tool_id: str


class ToolStateUpdate(ToolEvent):
    type: Literal[
        "TOOL_CODE_STATE_UPDATE",
        "TOOL_SEARCH_STATE_UPDATE",
        "TOOL_DOC_EXTRACT_STATE_UPDATE",
        "TOOL_INTEGRATION_STATE_UPDATE",
        "TOOL_GEOLOCATION_STATE_UPDATE",
    ]
    tool_id: str
    state: str


class ToolResultPayload(BaseModel):
    """Output of a tool run. Extra keys such as ``file_outputs`` are kept."""

    model_config = ConfigDict(extra="allow")

    content: str | None = None


class ToolResult(ToolEvent):
    type: Literal[
        "TOOL_CODE_RESULT",
        "TOOL_SEARCH_RESULT",
        "TOOL_DOC_EXTRACT_RESULT",
        "TOOL_INTEGRATION_RESULT",
        "TOOL_GEOLOCATION_RESULT",
    ]
    tool_id: str
    state: str | None = None
    result: ToolResultPayload = Field(default_factory=ToolResultPayload)


class StreamEnd(StreamEvent):
    """Server paused the turn, e.g. ``reason="tool_use"`` for a client-side tool."""

    type: Literal["STREAM_END"] = "STREAM_END"
    reason: str | None = None


class Done(StreamEvent):
    """Explicit end of stream."""

    type: Literal["done"] = "done"


class ErrorInfo(BaseModel):
    message: str = "An error occurred on the server."


class ErrorEvent(StreamEvent):
    type: Literal["error"] = "error"
    error: ErrorInfo = Field(default_factory=ErrorInfo)


Event = Annotated[
    Union[
        ThinkingStart,
        ThinkingDelta,
        ThinkingEnd,
        AssistantStart,
        AssistantDelta,
        AssistantComplete,
        UserMessageAck,
        ToolCreate,
        ToolDelta,
        ToolComplete,
        ToolStateUpdate,
        ToolResult,
        StreamEnd,
        Done,
        ErrorEvent,
    ],
    Field(discriminator="type"),
]

EVENT_TYPES: tuple[type[StreamEvent], ...] = get_args(get_args(Event)[0])

_event_adapter = TypeAdapter(Event)


def _normalize_legacy(payload: dict[str, Any]) -> dict[str, Any]:
    """Map untagged frames (``{"content": ...}`` / ``{"error": ...}``) onto tagged ones."""
    if payload.get("type", "error") == "error" and "error" in payload:
        error = payload["error"]
        message = error.get("message") if isinstance(error, dict) else error
        return {"type": "error", "error": {"message": str(message or ErrorInfo().message)}}
    if "type" in payload:
        return payload
    if "content" in payload:
        return {"type": "ASSISTANT_DELTA", "content": payload["content"] or ""}
    return payload


def parse_event(payload: dict[str, Any]) -> StreamEvent | None:
    """Validate a decoded frame. Returns None for tags this client does not know."""
    payload = _normalize_legacy(payload)
    try:
        return _event_adapter.validate_python(payload)
    except PydanticValidationError as e:
        if any(err.get("type") in ("union_tag_invalid", "union_tag_not_found") for err in e.errors()):
            logger.debug("Ignoring unknown stream event type %r", payload.get("type"))
            return None
        raise


def event_to_dict(event: StreamEvent) -> dict[str, Any]:
    return event.model_dump(mode="json")
