"""Server-Sent Events framing.

Frames are ``data: <json>\\n\\n``. The decoder is incremental: feed it text as
it arrives and it returns the events completed so far.
"""

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from app.streaming.events import StreamEvent, event_to_dict, parse_event

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
FRAME_SEPARATOR = "\n\n"


class StreamProtocolError(Exception):
    """A frame could not be decoded into a known event."""


def encode_frame(payload: StreamEvent | dict[str, Any]) -> str:
    """Encode one event as an SSE frame."""
    if isinstance(payload, StreamEvent):
        payload = event_to_dict(payload)
    return f"{DATA_PREFIX}{json.dumps(payload, ensure_ascii=False, separators=(',', ':'))}{FRAME_SEPARATOR}"


class SSEDecoder:
    """Incremental decoder from text chunks to stream events."""

    def __init__(self):
        self._buffer = ""

    def feed(self, chunk: str) -> list[StreamEvent]:
        # Normalize CRLF over the whole buffer, a pair can span two chunks
        self._buffer = (self._buffer + chunk).replace("\r\n", "\n")
        events: list[StreamEvent] = []

        boundary = self._buffer.find(FRAME_SEPARATOR)
        while boundary != -1:
            frame = self._buffer[:boundary]
            self._buffer = self._buffer[boundary + len(FRAME_SEPARATOR):]
            events.extend(self._decode_frame(frame))
            boundary = self._buffer.find(FRAME_SEPARATOR)

        return events

    def flush(self) -> list[StreamEvent]:
        """Decode whatever is left once the connection closes."""
        frame, self._buffer = self._buffer, ""
        return self._decode_frame(frame) if frame.strip() else []

    @staticmethod
    def _decode_frame(frame: str) -> list[StreamEvent]:
        events = []
        for line in frame.split("\n"):
            if not line.startswith(DATA_PREFIX):
                continue
            raw = line[len(DATA_PREFIX):].strip()
            if not raw:
                continue

            try:
                payload = json.loads(raw)
            except json.JSONDecodeError as e:
                raise StreamProtocolError(f"Malformed stream frame: {raw[:80]}") from e
            if not isinstance(payload, dict):
                raise StreamProtocolError("Stream frame is not a JSON object")

            try:
                event = parse_event(payload)
            except PydanticValidationError as e:
                raise StreamProtocolError(f"Invalid {payload.get('type')} event") from e
            if event is not None:
                events.append(event)
        return events


async def iter_events(chunks: AsyncIterable[str]) -> AsyncIterator[StreamEvent]:
    """Yield events from an async stream of text chunks."""
    decoder = SSEDecoder()
    async for chunk in chunks:
        for event in decoder.feed(chunk):
            yield event
    for event in decoder.flush():
        yield event
