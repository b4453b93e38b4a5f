"""Unit tests for link classification and Drive URL normalization."""

import pytest

from promomo.services.link_classifier import (
    classify_link,
    extract_drive_file_id,
    is_document_link,
    normalize,
)

DRIVE_LINKS = [
    "https://drive.google.com/file/d/ABC123/view",
    "https://drive.google.com/file/d/ABC123/view?usp=sharing",
    "https://drive.google.com/open?id=ABC123",
    "https://drive.google.com/uc?export=download&id=ABC123",
    "https://docs.google.com/uc?id=ABC123",
]


class TestNormalize:
    @pytest.mark.parametrize("link", DRIVE_LINKS)
    def test_drive_shapes_rewritten(self, link: str) -> None:
        assert normalize(link) == "https://lh3.googleusercontent.com/d/ABC123"

    @pytest.mark.parametrize(
        "link",
        DRIVE_LINKS + ["https://example.com/image.png", "https://lh3.googleusercontent.com/d/XYZ"],
    )
    def test_idempotent(self, link: str) -> None:
        assert normalize(normalize(link)) == normalize(link)

    def test_unknown_link_unchanged(self) -> None:
        assert normalize("https://cdn.example.com/a.jpg") == "https://cdn.example.com/a.jpg"

    def test_file_id_with_dash_and_underscore(self) -> None:
        assert extract_drive_file_id("https://drive.google.com/file/d/a-B_9/view") == "a-B_9"


class TestClassifyLink:
    def test_markdown_image_always_image(self) -> None:
        assert classify_link("Vídeo promocional", True) == "image"

    @pytest.mark.parametrize("label", ["Ver Vídeo", "video da campanha", "Assistir agora"])
    def test_video_keywords(self, label: str) -> None:
        assert classify_link(label, False) == "video"

    @pytest.mark.parametrize("label", ["Ver Imagem", "Foto do produto", "image", "Photo"])
    def test_image_keywords(self, label: str) -> None:
        assert classify_link(label, False) == "image"

    @pytest.mark.parametrize("label", ["Conversar", "Verificar"])
    def test_ver_matches_inside_words(self, label: str) -> None:
        assert classify_link(label, False, "https://example.com") == "image"

    def test_document_host(self) -> None:
        assert classify_link("Relatório", False, "https://docs.google.com/document/d/1/edit") == "document"

    def test_pdf_link(self) -> None:
        assert classify_link("Relatório", False, "https://files.example.com/plano.pdf") == "document"

    def test_plain_link(self) -> None:
        assert classify_link("site oficial", False, "https://example.com") == "plain"

    def test_is_document_link(self) -> None:
        assert is_document_link("https://drive.google.com/file/d/X/view")
        assert not is_document_link("https://example.com/page")
