"""
Replay stored conversations through the live reply pipeline.

Stored assistant messages are turned back into the frames the server would
have streamed, then reduced and extracted exactly like a live reply. A loaded
conversation therefore renders the same media and documents it showed when it
was first received.
"""

from __future__ import annotations

from typing import Optional

from promomo.core.logger import get_logger
from promomo.schemas.chat import Conversation, Frame, Message, StoredMessage
from promomo.services.conversation_store import ConversationStore
from promomo.services.message_builder import build_assistant_message, build_user_message
from promomo.services.reply_assembler import assemble

logger = get_logger("promomo.history_adapter")

REPLAYED_ROLES = ("user", "assistant")


def frames_for_stored_message(msg: StoredMessage, conversation_id: Optional[str] = None) -> list[Frame]:
    """Synthesize the event frames of one stored assistant message."""
    frames = [Frame(event="start", data={"conversationId": conversation_id})]
    for call in msg.tool_calls:
        frames.append(Frame(event="tool_call", data={"name": call.name, "args": call.args}))
        if call.result is not None:
            frames.append(Frame(event="tool_result", data={"name": call.name, "result": call.result}))
    if msg.content:
        frames.append(Frame(event="chunk", data={"content": msg.content}))
    frames.append(
        Frame(
            event="done",
            data={
                "conversationId": conversation_id,
                "toolsUsed": [call.name for call in msg.tool_calls],
            },
        )
    )
    return frames


def replay_conversation(conversation: Conversation) -> list[Message]:
    messages: list[Message] = []
    replayed = [stored for stored in conversation.messages if stored.role in REPLAYED_ROLES]
    # Numbered after dropping system and tool messages.
    for index, stored in enumerate(replayed):
        message_id = f"{conversation.id}-{index}"
        if stored.role == "user":
            messages.append(build_user_message(stored.content, message_id=message_id, timestamp=stored.timestamp))
            continue

        state = assemble(frames_for_stored_message(stored, conversation.id), conversation.id)
        messages.append(
            build_assistant_message(state, message_id=message_id, timestamp=stored.timestamp, empty_placeholder=False)
        )
    return messages


def load_conversation(store: ConversationStore, conversation_id: str) -> Optional[list[Message]]:
    conversation = store.get(conversation_id)
    if conversation is None:
        return None
    logger.info("Replaying %d stored messages of %s", len(conversation.messages), conversation_id)
    return replay_conversation(conversation)
