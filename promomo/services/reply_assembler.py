"""
Streaming reply assembler.

``apply_frame`` is a pure reducer ``(ReplyState, Frame) -> ReplyState``; the
interactive layer applies it once per decoded frame and re-renders. Nothing in
here touches the transport, so replies can be rebuilt from recorded frames.
"""

from __future__ import annotations

from typing import Any, Callable, Iterable, Optional

from promomo.core.logger import get_logger
from promomo.schemas.chat import (
    DocumentArtifact,
    DocumentPayload,
    DonePayload,
    ErrorPayload,
    Frame,
    ReplyState,
    StartPayload,
    ToolCallPayload,
)

logger = get_logger("promomo.reply_assembler")

NO_RESPONSE_PLACEHOLDER = "Não recebi resposta do servidor. Tente novamente."
DEFAULT_ERROR_TEXT = "Algo correu mal"
ERROR_TEMPLATE = "Erro: {error}"


# ============================================================================
# Chunk text extraction
# ============================================================================
#
# The backend has emitted chunk text in several shapes over time. The
# extractors below are tried in order and the first non-empty result wins:
#   1. the payload is the text itself          data: Hello
#   2. {"content": "..."}                      data: {"content": "Hello"}
#   3. {"text": "..."}
#   4. {"delta": "..."}
#
# Only the "content" field has been seen carrying the whole reply so far
# instead of a delta; every other shape is always appended.


def _plain_string(data: Any) -> str:
    return data if isinstance(data, str) else ""


def _field(name: str) -> Callable[[Any], str]:
    def extract(data: Any) -> str:
        if isinstance(data, dict):
            value = data.get(name)
            if isinstance(value, str):
                return value
        return ""

    extract.__name__ = f"_{name}_field"
    return extract


# (extractor, may carry cumulative text)
CHUNK_TEXT_EXTRACTORS: tuple[tuple[Callable[[Any], str], bool], ...] = (
    (_plain_string, False),
    (_field("content"), True),
    (_field("text"), False),
    (_field("delta"), False),
)


def _chunk_text(data: Any) -> tuple[str, bool]:
    for extractor, may_be_cumulative in CHUNK_TEXT_EXTRACTORS:
        text = extractor(data)
        if text:
            return text, may_be_cumulative
    return "", False


def extract_chunk_text(data: Any) -> str:
    return _chunk_text(data)[0]


def _merge_text(total: str, incoming: str, may_be_cumulative: bool = False) -> str:
    """Append ``incoming`` to ``total``, tolerating cumulative ``content`` resends."""
    if may_be_cumulative and total and len(incoming) > len(total) and incoming.startswith(total):
        return incoming
    return total + incoming


# ============================================================================
# Reducer
# ============================================================================


def new_reply_state(conversation_id: Optional[str] = None) -> ReplyState:
    return ReplyState(conversation_id=conversation_id)


def _on_start(state: ReplyState, frame: Frame) -> ReplyState:
    payload = frame.typed()
    if isinstance(payload, StartPayload) and payload.conversation_id:
        return state.model_copy(update={"conversation_id": payload.conversation_id})
    return state


def _on_chunk(state: ReplyState, frame: Frame) -> ReplyState:
    text, may_be_cumulative = _chunk_text(frame.data)
    if not text:
        return state
    return state.model_copy(
        update={"accumulated_text": _merge_text(state.accumulated_text, text, may_be_cumulative)}
    )


def _on_tool_call(state: ReplyState, frame: Frame) -> ReplyState:
    payload = frame.typed()
    if not isinstance(payload, ToolCallPayload):
        return state
    tool_name = payload.name or payload.tool
    if not tool_name:
        return state
    return state.model_copy(update={"active_tool_name": tool_name})


def _on_tool_result(state: ReplyState, frame: Frame) -> ReplyState:
    update: dict[str, Any] = {"active_tool_name": None}
    if frame.data:
        update["tool_results"] = state.tool_results + (frame.data,)
    return state.model_copy(update=update)


def document_from_payload(payload: DocumentPayload, position: int = 0) -> DocumentArtifact:
    # Fallback ids stay deterministic so replaying frames reproduces the state.
    return DocumentArtifact(
        id=payload.document_id or payload.drive_link or f"document-{position + 1}",
        kind=payload.type or "generic",
        title=payload.title or "Documento",
        source_link=payload.drive_link,
        content=payload.content,
        pdf_file_name=payload.pdf_file_name,
    )


def _on_document(state: ReplyState, frame: Frame) -> ReplyState:
    payload = frame.typed()
    if not isinstance(payload, DocumentPayload):
        logger.debug("Ignoring malformed document frame: %r", frame.data)
        return state
    document = document_from_payload(payload, position=len(state.documents))
    return state.model_copy(update={"documents": state.documents + (document,)})


def _on_done(state: ReplyState, frame: Frame) -> ReplyState:
    update: dict[str, Any] = {"terminal": "done", "active_tool_name": None}
    payload = frame.typed()
    if isinstance(payload, DonePayload):
        if payload.tools_used:
            update["tools_used"] = tuple(payload.tools_used)
        if payload.conversation_id and not state.conversation_id:
            update["conversation_id"] = payload.conversation_id
    return state.model_copy(update=update)


def _error_text(frame: Frame) -> str:
    if isinstance(frame.data, str) and frame.data:
        return frame.data
    payload = frame.typed()
    if isinstance(payload, ErrorPayload):
        return payload.error or payload.message or DEFAULT_ERROR_TEXT
    return DEFAULT_ERROR_TEXT


def _on_error(state: ReplyState, frame: Frame) -> ReplyState:
    return state.model_copy(
        update={
            "terminal": "error",
            "error_text": _error_text(frame),
            "active_tool_name": None,
        }
    )


_HANDLERS: dict[str, Callable[[ReplyState, Frame], ReplyState]] = {
    "start": _on_start,
    "chunk": _on_chunk,
    "token": _on_chunk,
    "tool_call": _on_tool_call,
    "tool_result": _on_tool_result,
    "document": _on_document,
    "done": _on_done,
    "error": _on_error,
}


def apply_frame(state: ReplyState, frame: Frame) -> ReplyState:
    """Return the state that results from applying ``frame`` to ``state``."""
    if state.is_terminal:
        logger.debug("Frame %r after terminal state %r ignored", frame.event, state.terminal)
        return state

    handler = _HANDLERS.get(frame.event)
    if handler is None:
        logger.debug("Unknown frame event %r ignored", frame.event)
        return state
    return handler(state, frame)


def assemble(frames: Iterable[Frame], conversation_id: Optional[str] = None) -> ReplyState:
    """Fold a complete frame sequence into a finished reply state."""
    state = new_reply_state(conversation_id)
    for frame in frames:
        state = apply_frame(state, frame)
    return finish_reply(state)


def finish_reply(state: ReplyState) -> ReplyState:
    """Close a reply whose stream ended without an explicit ``done`` frame."""
    if state.terminal == "streaming":
        return state.model_copy(update={"terminal": "done", "active_tool_name": None})
    return state


def visible_text(state: ReplyState, empty_placeholder: bool = True) -> str:
    """Text shown for the reply, including the error and empty-reply fallbacks."""
    if state.terminal == "error":
        return ERROR_TEMPLATE.format(error=state.error_text or DEFAULT_ERROR_TEXT)
    if empty_placeholder and not state.accumulated_text and state.is_terminal:
        return NO_RESPONSE_PLACEHOLDER
    return state.accumulated_text
