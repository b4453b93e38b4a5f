"""Tests for shared chat text helpers."""

import pytest

from promomo.services.chat_helpers import get_tool_friendly_name, sanitize_content, with_system_context


@pytest.mark.parametrize(
    "tool,label",
    [
        ("generate_campaign_images", "a gerar imagens da campanha"),
        ("run_market_research", "a fazer pesquisa de mercado"),
        ("get_drive_links", "a obter links do Google Drive"),
        ("publish_to_instagram", "a executar publish to instagram"),
    ],
)
def test_tool_friendly_name(tool: str, label: str) -> None:
    assert get_tool_friendly_name(tool) == label


def test_with_system_context_prefixes_user_id() -> None:
    message = with_system_context("Olá", "u-7")

    assert message.startswith('[SYSTEM: The current User ID is "u-7".')
    assert message.endswith("]\n\nOlá")


def test_sanitize_removes_injected_context() -> None:
    assert sanitize_content(with_system_context("Quero uma campanha", "u-7")) == "Quero uma campanha"


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("Campanha criada (ID: 65f0c0ffee0000000000cafe).", "Campanha criada ."),
        ("Negócio (65f0c0ffee0000000000cafe) registado", "Negócio registado"),
        ("ID: 65F0C0FFEE0000000000CAFE pronto", "pronto"),
        ("Sem ids aqui", "Sem ids aqui"),
        ("", ""),
    ],
)
def test_sanitize_removes_object_ids(raw: str, expected: str) -> None:
    assert sanitize_content(raw) == expected


def test_sanitize_keeps_line_breaks() -> None:
    assert sanitize_content("Linha  um\n\nLinha\t\tdois") == "Linha um\n\nLinha dois"


def test_sanitize_leaves_short_hex_alone() -> None:
    assert sanitize_content("Cor (ff00aa)") == "Cor (ff00aa)"
