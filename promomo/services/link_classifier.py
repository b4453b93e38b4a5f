"""Link classification and Google Drive URL normalization."""

from __future__ import annotations

import re
from typing import Optional

from promomo.schemas.chat import LinkClass

EMBED_URL_TEMPLATE = "https://lh3.googleusercontent.com/d/{file_id}"

_FILE_ID = r"([a-zA-Z0-9_-]+)"

# Shareable link shapes handed out by Google Drive, e.g.
#   https://drive.google.com/file/d/<id>/view?usp=sharing
#   https://drive.google.com/open?id=<id>
#   https://drive.google.com/uc?export=download&id=<id>
DRIVE_LINK_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(rf"drive\.google\.com/file/d/{_FILE_ID}"),
    re.compile(rf"drive\.google\.com/open\?(?:[^#\s]*&)?id={_FILE_ID}"),
    re.compile(rf"(?:drive|docs)\.google\.com/uc\?(?:[^#\s]*&)?id={_FILE_ID}"),
)

VIDEO_KEYWORDS = ("vídeo", "video", "assistir")
# Substring matches, as in the web dashboard: "ver" also hits labels such as
# "Conversar" or "Verificar", and those links are shown as images.
IMAGE_KEYWORDS = ("imagem", "image", "foto", "photo", "ver")
DOCUMENT_HOST_MARKERS = ("drive.google.com", "docs.google.com")


def extract_drive_file_id(link: str) -> Optional[str]:
    for pattern in DRIVE_LINK_PATTERNS:
        match = pattern.search(link)
        if match:
            return match.group(1)
    return None


def normalize(link: str) -> str:
    """Rewrite a Drive sharing link into a directly embeddable image URL.

    Unrecognized links are returned unchanged, so the function is idempotent.
    """
    file_id = extract_drive_file_id(link)
    if not file_id:
        return link
    return EMBED_URL_TEMPLATE.format(file_id=file_id)


def is_document_link(link: str) -> bool:
    lowered = link.lower()
    if ".pdf" in lowered:
        return True
    return any(marker in lowered for marker in DOCUMENT_HOST_MARKERS)


def classify_link(label: str, is_markdown_image: bool, link: Optional[str] = None) -> LinkClass:
    """Classify a labelled link as image, video, document or plain hyperlink."""
    if is_markdown_image:
        return "image"

    lowered = (label or "").lower()
    if any(keyword in lowered for keyword in VIDEO_KEYWORDS):
        return "video"
    if any(keyword in lowered for keyword in IMAGE_KEYWORDS):
        return "image"
    if link and is_document_link(link):
        return "document"
    return "plain"
