"""Turn finished reply states and user input into renderable messages."""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Iterable, Optional

from promomo.schemas.chat import Attachment, Message, ReplyState
from promomo.services.artifact_extraction import extract_artifacts
from promomo.services.reply_assembler import visible_text

ATTACHMENT_ONLY_TEMPLATE = "Enviei {count} imagem(ns): {names}"


def _new_id() -> str:
    return f"msg_{uuid.uuid4().hex}"


def user_content_for(text: str, attachments: Iterable[Attachment] = ()) -> str:
    """Text of a user turn, describing the attachments when nothing was typed."""
    attachments = list(attachments)
    text = (text or "").strip()
    if text or not attachments:
        return text
    return ATTACHMENT_ONLY_TEMPLATE.format(
        count=len(attachments),
        names=", ".join(attachment.name for attachment in attachments),
    )


def build_user_message(
    text: str,
    attachments: Iterable[Attachment] = (),
    message_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
) -> Message:
    attachments = list(attachments)
    content = user_content_for(text, attachments)
    return Message(
        id=message_id or _new_id(),
        role="user",
        raw_content=content,
        cleaned_text=content,
        uploaded_attachments=attachments,
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def build_assistant_message(
    state: ReplyState,
    message_id: Optional[str] = None,
    timestamp: Optional[datetime] = None,
    empty_placeholder: bool = True,
) -> Message:
    """Run extraction over a reply state and freeze it into a ``Message``.

    Also used for live snapshots: a still-streaming state produces a message
    with whatever content has arrived so far. Replayed history passes
    ``empty_placeholder=False`` so a stored empty reply stays empty.
    """
    text = visible_text(state, empty_placeholder)
    is_error = state.terminal == "error"
    if is_error:
        extraction = extract_artifacts("", state.tool_results, state.documents)
        extraction.cleaned_text = text
    else:
        extraction = extract_artifacts(text, state.tool_results, state.documents)

    return Message(
        id=message_id or _new_id(),
        role="assistant",
        raw_content=text,
        cleaned_text=extraction.cleaned_text,
        tool_results=list(state.tool_results),
        tools_used=list(state.tools_used),
        extracted_media=extraction.media,
        extracted_documents=extraction.documents,
        is_error=is_error,
        timestamp=timestamp or datetime.now(timezone.utc),
    )
