"""
Streaming chat transport and per-conversation turn control.

``ChatStreamClient.send_message`` never raises for transport problems: a
failed request or a dropped connection shows up as one synthetic ``error``
frame, after which the frame stream ends. ``ChatSession`` runs one turn at a
time for a conversation and applies frames through the reply reducer.
"""

from __future__ import annotations

import asyncio
import json
from typing import AsyncIterator, Callable, Iterable, Optional

import httpx

from promomo.cli.client import APIError, AsyncAPIClient, HTTPStatusError, error_message_from_body
from promomo.core.logger import get_logger
from promomo.schemas.chat import Attachment, ChatRequest, Frame, Message, ReplyState
from promomo.services.chat_helpers import with_system_context
from promomo.services.message_builder import build_assistant_message, build_user_message
from promomo.services.reply_assembler import apply_frame, finish_reply, new_reply_state
from promomo.services.sse_decoder import decode_stream, error_frame, fallback_frames

logger = get_logger("promomo.chat_stream")

CHAT_MESSAGE_PATH = "/chat/message"

ReplyListener = Callable[[ReplyState], None]


class ChatError(Exception):
    """Base class for chat session errors."""


class TurnInProgressError(ChatError):
    """A new message was submitted while the previous reply is still streaming."""


class ChatStreamClient:
    """Sends a user message and yields the frames of the assistant reply."""

    def __init__(self, api: AsyncAPIClient, path: str = CHAT_MESSAGE_PATH):
        self.api = api
        self.path = path

    async def send_message(
        self, message: str, conversation_id: Optional[str] = None
    ) -> AsyncIterator[Frame]:
        request = ChatRequest(message=message, conversation_id=conversation_id)
        payload = request.model_dump(by_alias=True, exclude_none=True)
        logger.info("Sending chat message (conversation=%s)", conversation_id or "new")

        try:
            async with self.api.stream(
                "POST",
                self.path,
                json=payload,
                headers={"Accept": "text/event-stream"},
            ) as response:
                content_type = response.headers.get("content-type", "")
                if "application/json" in content_type:
                    logger.info("Received JSON response instead of an event stream")
                    body = await response.aread()
                    for frame in fallback_frames(_json_body(body)):
                        yield frame
                    return

                async for frame in decode_stream(response.aiter_bytes()):
                    yield frame
        except HTTPStatusError as e:
            message_text = error_message_from_body(e.response_text, e.status_code or 0)
            logger.warning("Chat request rejected: %s", message_text)
            yield error_frame(message_text)
        except APIError as e:
            logger.warning("Chat transport error: %s", e.message)
            yield error_frame(e.message)
        except httpx.HTTPError as e:
            # Read errors raised by httpx once the body is already streaming.
            logger.warning("Chat stream interrupted: %s: %s", type(e).__name__, e)
            yield error_frame(str(e) or type(e).__name__)


def _json_body(raw: bytes) -> object:
    try:
        return json.loads(raw.decode("utf-8", errors="replace"))
    except (json.JSONDecodeError, ValueError):
        logger.debug("Fallback JSON body could not be parsed")
        return {}


class ChatSession:
    """
    One conversation seen from the client.

    Holds the message list, the conversation id assigned by the server and at
    most one in-flight reply.
    """

    def __init__(
        self,
        client: ChatStreamClient,
        conversation_id: Optional[str] = None,
        user_id: Optional[str] = None,
        messages: Optional[Iterable[Message]] = None,
    ):
        self.client = client
        self.conversation_id = conversation_id
        self.user_id = user_id
        self.messages: list[Message] = list(messages or [])
        self.live_state: Optional[ReplyState] = None
        self._task: Optional[asyncio.Task] = None

    @property
    def in_flight(self) -> bool:
        return self._task is not None and not self._task.done()

    def _outgoing_text(self, content: str) -> str:
        # The backend needs the user id on the first turn of a new conversation.
        if not self.conversation_id and self.user_id:
            return with_system_context(content, self.user_id)
        return content

    async def submit(
        self,
        text: str,
        attachments: Iterable[Attachment] = (),
        on_update: Optional[ReplyListener] = None,
    ) -> Message:
        """Send one user turn and return the finished assistant message.

        Raises:
            TurnInProgressError: a reply for this conversation is still streaming
        """
        if self.in_flight:
            raise TurnInProgressError("A reply is still streaming for this conversation")

        user_message = build_user_message(text, attachments)
        if not user_message.raw_content:
            raise ChatError("Nothing to send: empty message without attachments")

        self.messages.append(user_message)
        self._task = asyncio.ensure_future(
            self._run_turn(self._outgoing_text(user_message.raw_content), on_update)
        )
        try:
            return await self._task
        finally:
            self._task = None

    def cancel(self) -> bool:
        """Abort the in-flight turn. The partial reply stays in ``live_state``."""
        if not self.in_flight:
            return False
        assert self._task is not None
        self._task.cancel()
        return True

    async def _run_turn(self, outgoing: str, on_update: Optional[ReplyListener]) -> Message:
        state = new_reply_state(self.conversation_id)
        self.live_state = state
        try:
            async for frame in self.client.send_message(outgoing, self.conversation_id):
                state = apply_frame(state, frame)
                self.live_state = state
                if state.conversation_id and state.conversation_id != self.conversation_id:
                    self.conversation_id = state.conversation_id
                if on_update is not None:
                    on_update(state)
        except asyncio.CancelledError:
            logger.info("Reply cancelled after %d chars", len(state.accumulated_text))
            raise

        state = finish_reply(state)
        self.live_state = state
        reply = build_assistant_message(state)
        self.messages.append(reply)
        return reply
