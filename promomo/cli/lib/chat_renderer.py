"""Unified CLI renderer for streamed chat replies.

Live updates print the reply text as it grows plus a progress line while a
tool runs; the finished message is printed again as a block with the
extracted media and documents listed under the cleaned text.
"""

from __future__ import annotations

from promomo.cli.lib.safe_output import emoji, safe_print
from promomo.schemas.chat import DocumentArtifact, MediaArtifact, Message, ReplyState
from promomo.services.chat_helpers import get_tool_friendly_name, sanitize_content

SEPARATOR = "-" * 60


class ChatRenderer:
    """Render reply states and finished messages with a stable block structure."""

    _MEDIA_MARK = {
        "image": emoji("🖼️", "[IMG]"),
        "video": emoji("🎬", "[VIDEO]"),
    }

    _DOCUMENT_NAME = {
        "market_research": "Pesquisa de mercado",
        "strategic_plan": "Plano estratégico",
        "campaign": "Campanha",
        "pdf_document": "PDF",
    }

    def __init__(self) -> None:
        self._printed_chars = 0
        self._active_tool: str | None = None

    def reset(self) -> None:
        """Forget live progress before a new turn."""
        self._printed_chars = 0
        self._active_tool = None

    def render_token(self, content: str) -> None:
        """Render incremental text without newline."""
        safe_print(content, end="", flush=True)

    def render_tool(self, tool_name: str) -> None:
        safe_print(f"\n{emoji('⏳', '[LOADING]')} {get_tool_friendly_name(tool_name)}...")

    def render_update(self, state: ReplyState) -> None:
        """Print whatever changed since the previous state of the same turn."""
        if state.active_tool_name and state.active_tool_name != self._active_tool:
            self.render_tool(state.active_tool_name)
        self._active_tool = state.active_tool_name

        text = state.accumulated_text
        if len(text) > self._printed_chars:
            self.render_token(text[self._printed_chars:])
            self._printed_chars = len(text)

    def render_message(self, message: Message) -> None:
        """Render the finished assistant message block with separators."""
        if message.is_error:
            self.render_error(message.cleaned_text)
            return

        safe_print("\n" + SEPARATOR)
        content = sanitize_content(message.cleaned_text)
        if content:
            safe_print(content)

        if message.extracted_media:
            safe_print("\n[Multimédia]")
            for media in message.extracted_media:
                self._render_media(media)

        if message.extracted_documents:
            safe_print("\n[Documentos]")
            for document in message.extracted_documents:
                self._render_document(document)

        if message.tools_used:
            tools = ", ".join(message.tools_used)
            safe_print(f"\n{emoji('🛠️', '[TOOLS]')} Ferramentas: {tools}")
        safe_print(SEPARATOR)

    def _render_media(self, media: MediaArtifact) -> None:
        mark = self._MEDIA_MARK.get(media.kind, "")
        safe_print(f"  {mark} {media.title}")
        safe_print(f"    {media.display_url}")

    def _render_document(self, document: DocumentArtifact) -> None:
        kind = self._DOCUMENT_NAME.get(document.kind, document.kind)
        safe_print(f"  {emoji('📄', '[DOC]')} {document.title} ({kind})")
        if document.source_link:
            safe_print(f"    {document.source_link}")

    def render_user_message(self, message: Message) -> None:
        safe_print(f"\nTu: {sanitize_content(message.cleaned_text)}")
        for attachment in message.uploaded_attachments:
            safe_print(f"  {emoji('📎', '[ANEXO]')} {attachment.name}")

    def render_error(self, error_msg: str) -> None:
        """Render error block."""
        safe_print(f"\n{emoji('❌', '[ERROR]')} {error_msg}")
