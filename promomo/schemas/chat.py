from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError


ReplyStatus = Literal["streaming", "done", "error"]
MediaKind = Literal["image", "video"]
LinkClass = Literal["image", "video", "document", "plain"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# Stream frames
# ============================================================================


class StartPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    conversation_id: str | None = Field(default=None, alias="conversationId")


class ChunkPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    content: str | None = None
    text: str | None = None
    delta: str | None = None


class ToolCallPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    tool: str | None = None
    args: dict[str, Any] = Field(default_factory=dict)


class ToolResultPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str | None = None
    result: Any = None


class DocumentPayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    document_id: str | None = Field(default=None, alias="documentId")
    type: str | None = None
    title: str | None = None
    content: str | None = None
    drive_link: str | None = Field(default=None, alias="driveLink")
    pdf_file_name: str | None = Field(default=None, alias="pdfFileName")


class DonePayload(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    message_id: str | None = Field(default=None, alias="messageId")
    conversation_id: str | None = Field(default=None, alias="conversationId")
    tools_used: list[str] | None = Field(default=None, alias="toolsUsed")


class ErrorPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    error: str | None = None
    message: str | None = None


class UnknownPayload(BaseModel):
    """Anything that does not fit the shape registered for its event name."""

    event: str
    raw: Any = None


FramePayload = Union[
    StartPayload,
    ChunkPayload,
    ToolCallPayload,
    ToolResultPayload,
    DocumentPayload,
    DonePayload,
    ErrorPayload,
    UnknownPayload,
]

# Known event names and the payload shape each one carries. Plain-string
# payloads are only meaningful for chunk/token and error frames; they are
# handled by the reducer before shape validation.
EVENT_PAYLOADS: dict[str, type[BaseModel]] = {
    "start": StartPayload,
    "chunk": ChunkPayload,
    "token": ChunkPayload,
    "tool_call": ToolCallPayload,
    "tool_result": ToolResultPayload,
    "document": DocumentPayload,
    "done": DonePayload,
    "error": ErrorPayload,
}


class Frame(BaseModel):
    """One decoded ``(event, data)`` record of the event stream."""

    model_config = ConfigDict(frozen=True)

    event: str = "chunk"
    data: Any = None

    def typed(self) -> FramePayload:
        model = EVENT_PAYLOADS.get(self.event)
        if model is None or not isinstance(self.data, dict):
            return UnknownPayload(event=self.event, raw=self.data)
        try:
            return model.model_validate(self.data)  # type: ignore[return-value]
        except ValidationError:
            return UnknownPayload(event=self.event, raw=self.data)


# ============================================================================
# Artifacts
# ============================================================================


class MediaArtifact(BaseModel):
    id: str
    kind: MediaKind
    display_url: str
    title: str
    source_title: str | None = None
    thumbnail: str | None = None


class DocumentArtifact(BaseModel):
    id: str
    kind: str
    title: str
    source_link: str | None = None
    content: str | None = None
    pdf_file_name: str | None = None
    created_at: datetime | None = None


class LinkRef(BaseModel):
    id: str
    kind: str
    title: str


class ExtractionResult(BaseModel):
    cleaned_text: str = ""
    media: list[MediaArtifact] = Field(default_factory=list)
    documents: list[DocumentArtifact] = Field(default_factory=list)


class Attachment(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    url: str
    name: str
    drive_link: str | None = Field(default=None, alias="driveLink")


# ============================================================================
# Reply state and messages
# ============================================================================


class ReplyState(BaseModel):
    """Live state of one in-flight assistant turn."""

    model_config = ConfigDict(frozen=True)

    conversation_id: str | None = None
    accumulated_text: str = ""
    active_tool_name: str | None = None
    tool_results: tuple[Any, ...] = ()
    documents: tuple[DocumentArtifact, ...] = ()
    tools_used: tuple[str, ...] = ()
    terminal: ReplyStatus = "streaming"
    error_text: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.terminal != "streaming"


class Message(BaseModel):
    id: str
    role: Literal["user", "assistant"]
    raw_content: str = ""
    cleaned_text: str = ""
    tool_results: list[Any] = Field(default_factory=list)
    tools_used: list[str] = Field(default_factory=list)
    extracted_media: list[MediaArtifact] = Field(default_factory=list)
    extracted_documents: list[DocumentArtifact] = Field(default_factory=list)
    uploaded_attachments: list[Attachment] = Field(default_factory=list)
    is_error: bool = False
    timestamp: datetime = Field(default_factory=_utcnow)


# ============================================================================
# Backend wire shapes
# ============================================================================


class ChatRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message: str
    conversation_id: str | None = Field(default=None, alias="conversationId")


class ToolCall(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: Any = None


class StoredMessage(BaseModel):
    model_config = ConfigDict(extra="allow")

    role: Literal["user", "assistant", "system", "tool"]
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    timestamp: datetime | None = None


class ConversationSummary(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(alias="_id")
    title: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    last_message: str | None = Field(default=None, alias="lastMessage")


class Conversation(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str = Field(alias="_id")
    user_id: str | None = None
    business_id: str | None = None
    title: str = ""
    messages: list[StoredMessage] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
