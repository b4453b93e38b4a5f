"""Runs the SSE replay acceptance script against its built-in capture."""

import importlib.util
from pathlib import Path

import pytest

SCRIPT = Path(__file__).resolve().parents[1] / "scripts" / "sse_replay_acceptance.py"


@pytest.fixture(scope="module")
def replay():
    spec = importlib.util.spec_from_file_location("sse_replay_acceptance", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_builtin_capture(replay) -> None:
    message = replay.run(replay.SAMPLE_CAPTURE.encode("utf-8"))

    assert [(m.kind, m.title) for m in message.extracted_media] == [
        ("video", "Promo"),
        ("image", "E a imagem"),
    ]
    assert "https://example.com" in message.cleaned_text
    assert message.tools_used == ["generate_campaign_videos"]


def test_main_reads_capture_file(replay, tmp_path, capsys) -> None:
    capture = tmp_path / "reply.sse"
    capture.write_bytes('event: chunk\ndata: {"content": "Olá"}\n\nevent: done\ndata: {}\n\n'.encode("utf-8"))

    replay.main([str(capture)])

    assert "SSE replay checks passed: 0 media, 0 documents, 1 text lines." in capsys.readouterr().out
