"""Image attachments: local validation and upload to the product-assets endpoint."""

from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import Iterable, Sequence

from promomo.cli.client import APIClient, APIError
from promomo.core.logger import get_logger
from promomo.schemas.chat import Attachment

logger = get_logger("promomo.asset_upload")

MAX_ATTACHMENTS = 5
MAX_ATTACHMENT_BYTES = 10 * 1024 * 1024
ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/gif", "image/webp")
DEFAULT_ASSET_TYPE = "product"


class AttachmentError(Exception):
    """An attachment was rejected before or during upload."""


_EXTENSION_MIME_TYPES = {
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".gif": "image/gif",
    ".webp": "image/webp",
}


def guess_mime_type(path: Path) -> str:
    # mimetypes only knows webp on recent interpreters.
    known = _EXTENSION_MIME_TYPES.get(path.suffix.lower())
    if known:
        return known
    mime_type, _ = mimetypes.guess_type(path.name)
    return mime_type or "application/octet-stream"


def validate_attachment(path: Path) -> None:
    """
    Raises:
        AttachmentError: missing file, unsupported type or file over 10 MB
    """
    if not path.is_file():
        raise AttachmentError(f"Ficheiro não encontrado: {path}")
    if guess_mime_type(path) not in ALLOWED_MIME_TYPES:
        raise AttachmentError(f"Tipo de arquivo não suportado: {path.name}. Use JPEG, PNG, GIF ou WebP.")
    if path.stat().st_size > MAX_ATTACHMENT_BYTES:
        raise AttachmentError(f"Arquivo muito grande: {path.name}. Máximo 10MB.")


def validate_attachments(paths: Sequence[Path], already_selected: int = 0) -> None:
    if already_selected + len(paths) > MAX_ATTACHMENTS:
        raise AttachmentError(f"Máximo de {MAX_ATTACHMENTS} imagens permitido.")
    for path in paths:
        validate_attachment(path)


class AssetUploader:
    """Uploads local images as business product assets."""

    def __init__(self, api: APIClient, asset_type: str = DEFAULT_ASSET_TYPE):
        self.api = api
        self.asset_type = asset_type

    def upload(self, business_id: str, path: Path) -> Attachment:
        """Upload one file and return the attachment reference sent with the message.

        Raises:
            AttachmentError: validation failed, the upload was rejected or no link came back
        """
        path = Path(path)
        validate_attachment(path)

        try:
            with path.open("rb") as fh:
                body = self.api.post_form(
                    f"/product-assets/{business_id}",
                    data={"assetType": self.asset_type},
                    files={"file": (path.name, fh, guess_mime_type(path))},
                )
        except APIError as e:
            logger.warning("Upload of %s failed: %s", path.name, e.message)
            raise AttachmentError(f"Falha ao enviar {path.name}: {e.message}") from e

        data = body.get("data") if isinstance(body, dict) else None
        if not isinstance(data, dict) or body.get("success") is False:
            raise AttachmentError(f"Falha ao enviar {path.name}")

        drive_link = data.get("driveWebLink")
        url = drive_link or data.get("localPath")
        if not url:
            raise AttachmentError(f"O servidor não devolveu um link para {path.name}")

        logger.info("Uploaded %s as asset %s", path.name, data.get("assetId"))
        return Attachment(url=url, name=path.name, drive_link=drive_link)

    def upload_all(self, business_id: str, paths: Iterable[Path]) -> list[Attachment]:
        paths = [Path(p) for p in paths]
        validate_attachments(paths)
        return [self.upload(business_id, path) for path in paths]
