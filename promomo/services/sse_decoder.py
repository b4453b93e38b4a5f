"""
Event frame decoder for the assistant reply stream.

Turns raw text/byte chunks into ``Frame`` objects following the line-oriented
framing used by the chat backend:

    event: tool_call
    data: {"name": "generate_campaign"}

Notes:
- The current event name persists across records until another ``event:``
  line changes it. Strict SSE resets it after every blank line; the backend
  relies on the sticky behaviour, so it is kept on purpose.
- A ``data:`` payload is decoded as JSON when possible and passed through as
  raw text otherwise.
"""

from __future__ import annotations

import codecs
import json
from typing import Any, AsyncIterable, AsyncIterator

from promomo.core.logger import get_logger
from promomo.schemas.chat import Frame

logger = get_logger("promomo.sse_decoder")

DEFAULT_EVENT = "chunk"
EVENT_PREFIX = "event:"
DATA_PREFIX = "data:"
COMMENT_PREFIX = ":"
RECORD_SEPARATOR = "\n"


def parse_data_payload(raw: str) -> Any:
    """Decode a data payload as JSON, falling back to the raw text."""
    try:
        return json.loads(raw)
    except (json.JSONDecodeError, ValueError):
        logger.debug("Non-JSON data payload kept as text: %r", raw[:80])
        return raw


class FrameDecoder:
    """Incremental, chunk-boundary independent frame decoder."""

    def __init__(self, default_event: str = DEFAULT_EVENT):
        self.current_event = default_event
        self.frames_emitted = 0
        self._buffer = ""
        self._bytes_decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def feed(self, chunk: str | bytes) -> list[Frame]:
        """Consume one transport chunk and return the frames it completed."""
        if isinstance(chunk, bytes):
            chunk = self._bytes_decoder.decode(chunk)
        if not chunk:
            return []

        self._buffer += chunk
        lines = self._buffer.split(RECORD_SEPARATOR)
        self._buffer = lines.pop()

        frames: list[Frame] = []
        for line in lines:
            frame = self._process_line(line)
            if frame is not None:
                frames.append(frame)
        return frames

    def close(self) -> list[Frame]:
        """Signal end of stream. An unterminated trailing record is dropped."""
        tail = self._buffer + self._bytes_decoder.decode(b"", final=True)
        self._buffer = ""
        if tail.strip():
            logger.debug("Discarding unterminated trailing record: %r", tail[:80])
        return []

    def _process_line(self, line: str) -> Frame | None:
        stripped = line.strip()
        if not stripped or stripped.startswith(COMMENT_PREFIX):
            return None

        if stripped.startswith(EVENT_PREFIX):
            self.current_event = stripped[len(EVENT_PREFIX):].strip() or DEFAULT_EVENT
            return None

        if stripped.startswith(DATA_PREFIX):
            payload = stripped[len(DATA_PREFIX):].strip()
            if not payload:
                return None
            self.frames_emitted += 1
            return Frame(event=self.current_event, data=parse_data_payload(payload))

        logger.debug("Ignoring non-standard stream line: %r", stripped[:80])
        return None


async def decode_stream(chunks: AsyncIterable[str | bytes]) -> AsyncIterator[Frame]:
    """Yield frames from an async chunk source as soon as each is complete."""
    decoder = FrameDecoder()
    async for chunk in chunks:
        for frame in decoder.feed(chunk):
            yield frame
    for frame in decoder.close():
        yield frame
    logger.debug("Stream ended, frames received: %d", decoder.frames_emitted)


def _first_text(*candidates: Any) -> str:
    for value in candidates:
        if isinstance(value, str) and value:
            return value
    return ""


def fallback_frames(body: Any) -> list[Frame]:
    """Translate a single JSON response body into start/chunk/done frames."""
    body = body if isinstance(body, dict) else {}
    nested = body.get("data") if isinstance(body.get("data"), dict) else {}

    conversation_id = body.get("conversationId") or nested.get("conversationId")
    content = _first_text(
        body.get("response"),
        body.get("message"),
        nested.get("response"),
        nested.get("message"),
    )

    frames = [Frame(event="start", data={"conversationId": conversation_id})]
    if content:
        frames.append(Frame(event="chunk", data={"content": content}))
    frames.append(Frame(event="done", data={"toolsUsed": body.get("toolsUsed") or []}))
    return frames


def error_frame(message: str) -> Frame:
    """Synthetic terminal frame standing in for a transport failure."""
    return Frame(event="error", data={"error": message})
