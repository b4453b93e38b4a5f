"""
Artifact extraction from an assistant reply.

Two sources describe the same artifacts:
- tool results (structured, authoritative), and
- the narrative markdown written by the model, which often repeats the links.

Both are merged into one deduplicated media list and one document list. A
source link ends up in exactly one place: media, documents, or the remaining
narrative text.
"""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any, Iterable, Optional

from promomo.core.logger import get_logger
from promomo.schemas.chat import (
    DocumentArtifact,
    ExtractionResult,
    LinkRef,
    MediaArtifact,
)
from promomo.services.link_classifier import classify_link, normalize

logger = get_logger("promomo.artifact_extraction")

MARKDOWN_LINK_RE = re.compile(r"(!)?\[(.*?)\]\((https?://[^)]+)\)", re.IGNORECASE)

MEDIA_LINK_FIELDS = ("driveLink", "drive_web_link", "url")
MEDIA_TITLE_FIELDS = ("title", "name", "content_name")
DOCUMENT_LINK_FIELDS = ("driveLink", "drive_link")
MEDIA_KINDS = {"image", "video"}

DEFAULT_MEDIA_TITLE = "Conteúdo Gerado"
DEFAULT_DOCUMENT_TITLE = "Documento"
GENERIC_MEDIA_LABELS = {"Ver Imagem", "Ver Vídeo"}
DEFAULT_IMAGE_TITLE = "Imagem gerada"
DEFAULT_VIDEO_TITLE = "Vídeo gerado"


# ============================================================================
# Tool result helpers
# ============================================================================


def _decode_tool_result(result: Any) -> Any:
    if isinstance(result, str):
        try:
            return json.loads(result)
        except (json.JSONDecodeError, ValueError):
            logger.debug("Tool result is not JSON, skipped: %r", result[:80])
            return None
    return result


def _first(item: dict[str, Any], fields: Iterable[str]) -> Any:
    for field in fields:
        value = item.get(field)
        if value:
            return value
    return None


def _nested_result(data: dict[str, Any]) -> Any:
    # tool_result frames carry {"name": ..., "result": ...}; the result may be JSON text.
    return _decode_tool_result(data.get("result"))


def _media_entries(data: Any) -> list[Any]:
    """Media list of a tool result: contents, result.contents, images, videos."""
    if not isinstance(data, dict):
        return []
    nested = _nested_result(data)
    if not isinstance(nested, dict):
        nested = {}
    for candidate in (data.get("contents"), nested.get("contents"), data.get("images"), data.get("videos")):
        if candidate:
            return candidate if isinstance(candidate, list) else []
    return []


def _document_entries(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []
    items = data.get("documents") or data.get("campaigns")
    if items:
        return items if isinstance(items, list) else []
    if data.get("campaign_name"):
        return [data]
    nested = _nested_result(data)
    return _document_entries(nested) if nested is not None else []


def _link_index_entries(data: Any) -> list[Any]:
    if isinstance(data, list):
        return data
    if not isinstance(data, dict):
        return []
    items = data.get("documents") or data.get("campaigns") or data.get("contents")
    if items:
        return items if isinstance(items, list) else []
    nested = _nested_result(data)
    return _link_index_entries(nested) if nested is not None else []


def _media_kind(item: dict[str, Any]) -> str:
    item_type = str(item.get("type") or item.get("content_type") or "").lower()
    if "video" in item_type or item_type == "mp4":
        return "video"
    return "image"


def _document_kind(item: dict[str, Any]) -> Optional[str]:
    if item.get("type"):
        return str(item["type"])
    if item.get("campaign_name"):
        return "campaign"
    title = str(item.get("title") or "").lower()
    if "pesquisa" in title:
        return "market_research"
    if "plano" in title:
        return "strategic_plan"
    return None


def _text(value: Any) -> Optional[str]:
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


def _parse_timestamp(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def media_from_tool_item(item: dict[str, Any]) -> Optional[MediaArtifact]:
    link = _first(item, MEDIA_LINK_FIELDS)
    if not link or not isinstance(link, str):
        return None
    return MediaArtifact(
        id=link,
        kind=_media_kind(item),  # type: ignore[arg-type]
        display_url=normalize(link),
        title=_text(_first(item, MEDIA_TITLE_FIELDS)) or DEFAULT_MEDIA_TITLE,
        thumbnail=_text(item.get("thumbnail")),
    )


def document_from_tool_item(item: dict[str, Any]) -> Optional[DocumentArtifact]:
    doc_id = item.get("id") or item.get("_id")
    link = _text(_first(item, DOCUMENT_LINK_FIELDS))
    if not doc_id or not (link or item.get("campaign_name") or item.get("title")):
        return None
    kind = _document_kind(item)
    if not kind:
        return None
    return DocumentArtifact(
        id=str(doc_id),
        kind=kind,
        title=_text(item.get("title") or item.get("campaign_name")) or DEFAULT_DOCUMENT_TITLE,
        source_link=link,
        content=_text(item.get("content") or item.get("description")) or "",
        pdf_file_name=_text(item.get("pdfFileName") or item.get("pdf_file_name")),
        created_at=_parse_timestamp(item.get("createdAt") or item.get("created_at")),
    )


def build_link_index(tool_results: Iterable[Any]) -> dict[str, LinkRef]:
    """Map each linked document in the tool results to its id, kind and title."""
    index: dict[str, LinkRef] = {}
    for result in tool_results:
        for item in _link_index_entries(_decode_tool_result(result)):
            if not isinstance(item, dict):
                continue
            link = _text(_first(item, DOCUMENT_LINK_FIELDS))
            doc_id = item.get("id") or item.get("_id")
            kind = item.get("type") or ("campaign" if item.get("campaign_name") else None)
            if link and doc_id and kind:
                index[link] = LinkRef(
                    id=str(doc_id),
                    kind=str(kind),
                    title=_text(item.get("title") or item.get("campaign_name")) or DEFAULT_DOCUMENT_TITLE,
                )
    return index


# ============================================================================
# Extraction
# ============================================================================


class _ArtifactCollector:
    """Ordered, deduplicated media and document lists for one message."""

    def __init__(self) -> None:
        self.media: list[MediaArtifact] = []
        self.documents: list[DocumentArtifact] = []
        self._media_links: set[str] = set()
        self._document_ids: set[str] = set()
        self._document_links: set[str] = set()

    def claims(self, link: str) -> bool:
        return link in self._media_links or link in self._document_links

    def add_media(self, artifact: MediaArtifact) -> bool:
        if self.claims(artifact.id):
            return False
        self._media_links.add(artifact.id)
        self.media.append(artifact)
        return True

    def add_document(self, document: DocumentArtifact) -> bool:
        if document.id in self._document_ids:
            return False
        if document.source_link and self.claims(document.source_link):
            return False
        self._document_ids.add(document.id)
        if document.source_link:
            self._document_links.add(document.source_link)
        self.documents.append(document)
        return True


def _collect_from_tool_results(collector: _ArtifactCollector, tool_results: Iterable[Any]) -> None:
    decoded = [_decode_tool_result(result) for result in tool_results]

    for data in decoded:
        for item in _media_entries(data):
            if isinstance(item, dict):
                artifact = media_from_tool_item(item)
                if artifact is not None:
                    collector.add_media(artifact)

    for data in decoded:
        for item in _document_entries(data):
            if isinstance(item, dict):
                document = document_from_tool_item(item)
                if document is not None:
                    collector.add_document(document)


def _media_title(line: str, matched: str, label: str, kind: str) -> str:
    title = line.replace(matched, "", 1).strip()
    title = re.sub(r"^[*-]\s*", "", title)
    title = re.sub(r":\s*$", "", title).strip()
    if title:
        return title
    if label and label not in GENERIC_MEDIA_LABELS:
        return label
    return DEFAULT_VIDEO_TITLE if kind == "video" else DEFAULT_IMAGE_TITLE


def _narrative_document(link: str, label: str, link_index: dict[str, LinkRef]) -> DocumentArtifact:
    ref = link_index.get(link)
    if ref is not None:
        return DocumentArtifact(id=ref.id, kind=ref.kind, title=ref.title, source_link=link, content="")
    kind = "pdf_document" if ".pdf" in link.lower() else "generic"
    return DocumentArtifact(id=link, kind=kind, title=label or link, source_link=link, content="")


def _consume_line(
    line: str,
    collector: _ArtifactCollector,
    link_index: dict[str, LinkRef],
) -> bool:
    """Return True when the line was turned into (or duplicates) an artifact."""
    match = MARKDOWN_LINK_RE.search(line)
    if not match:
        return False

    is_markdown_image = bool(match.group(1))
    label = match.group(2)
    link = match.group(3)

    # Already extracted from a tool result: never show it twice.
    if collector.claims(link):
        return True

    link_class = classify_link(label, is_markdown_image, link)
    indexed = link_index.get(link)
    if indexed is not None and indexed.kind not in MEDIA_KINDS:
        link_class = "document"

    if link_class == "plain":
        return False

    if link_class == "document":
        # Refused when its id is already taken under another link; the line stays as text.
        return collector.add_document(_narrative_document(link, label, link_index))

    collector.add_media(
        MediaArtifact(
            id=link,
            kind=link_class,  # type: ignore[arg-type]
            display_url=normalize(link),
            title=_media_title(line, match.group(0), label, link_class),
            source_title=label or None,
        )
    )
    return True


def extract_artifacts(
    text: str,
    tool_results: Iterable[Any] = (),
    documents: Iterable[DocumentArtifact] = (),
) -> ExtractionResult:
    """Split a reply into cleaned narrative text, media and documents.

    Args:
        text: Accumulated reply text (final or a live snapshot)
        tool_results: Raw tool result payloads collected during the reply
        documents: Documents already surfaced by ``document`` frames

    Returns:
        ExtractionResult with artifacts in first-encounter order
    """
    tool_results = list(tool_results)
    collector = _ArtifactCollector()

    for document in documents:
        collector.add_document(document)
    _collect_from_tool_results(collector, tool_results)

    if not text:
        return ExtractionResult(cleaned_text="", media=collector.media, documents=collector.documents)

    link_index = build_link_index(tool_results)
    remaining = [line for line in text.split("\n") if not _consume_line(line, collector, link_index)]

    return ExtractionResult(
        cleaned_text="\n".join(remaining),
        media=collector.media,
        documents=collector.documents,
    )
