"""Tests for the chat CLI renderer."""

from promomo.cli.lib.chat_renderer import ChatRenderer
from promomo.schemas.chat import Attachment, DocumentArtifact, MediaArtifact, Message, ReplyState


def test_render_update_prints_only_new_text(capsys):
    renderer = ChatRenderer()
    renderer.render_update(ReplyState(accumulated_text="Olá"))
    renderer.render_update(ReplyState(accumulated_text="Olá, mundo"))
    out = capsys.readouterr().out

    assert out == "Olá, mundo"


def test_render_update_shows_tool_once(capsys):
    renderer = ChatRenderer()
    state = ReplyState(active_tool_name="run_market_research")
    renderer.render_update(state)
    renderer.render_update(state)
    out = capsys.readouterr().out

    assert out.count("a fazer pesquisa de mercado...") == 1


def test_reset_starts_a_new_turn(capsys):
    renderer = ChatRenderer()
    renderer.render_update(ReplyState(accumulated_text="um"))
    renderer.reset()
    renderer.render_update(ReplyState(accumulated_text="dois"))

    assert capsys.readouterr().out == "umdois"


def test_render_message_with_artifacts(capsys):
    renderer = ChatRenderer()
    message = Message(
        id="m1",
        role="assistant",
        cleaned_text="Campanha pronta (ID: 65f0c0ffee0000000000cafe)\nSegunda linha",
        tools_used=["generate_campaign"],
        extracted_media=[
            MediaArtifact(
                id="https://drive.google.com/file/d/A/view",
                kind="image",
                display_url="https://lh3.googleusercontent.com/d/A",
                title="Banner",
            )
        ],
        extracted_documents=[
            DocumentArtifact(
                id="d1",
                kind="strategic_plan",
                title="Plano 2025",
                source_link="https://drive.google.com/file/d/P/view",
            )
        ],
    )

    renderer.render_message(message)
    out = capsys.readouterr().out

    assert "Campanha pronta" in out
    assert "Segunda linha" in out
    assert "65f0c0ffee" not in out
    assert "[Multimédia]" in out
    assert "Banner" in out
    assert "https://lh3.googleusercontent.com/d/A" in out
    assert "[Documentos]" in out
    assert "Plano 2025 (Plano estratégico)" in out
    assert "generate_campaign" in out
    assert "-" * 60 in out


def test_render_error_message(capsys):
    renderer = ChatRenderer()
    renderer.render_message(Message(id="m2", role="assistant", cleaned_text="Erro: timeout", is_error=True))
    out = capsys.readouterr().out

    assert "Erro: timeout" in out
    assert "-" * 60 not in out


def test_render_user_message_hides_system_context(capsys):
    renderer = ChatRenderer()
    message = Message(
        id="u1",
        role="user",
        cleaned_text='[SYSTEM: The current User ID is "u1".]\n\nOlá',
        uploaded_attachments=[Attachment(url="https://x.test/a.png", name="a.png")],
    )

    renderer.render_user_message(message)
    out = capsys.readouterr().out

    assert "SYSTEM" not in out
    assert "Olá" in out
    assert "a.png" in out
