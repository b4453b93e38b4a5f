"""
Unit tests for CLI command routing.

Covers the chat REPL in promomo/cli/commands/chat.py:
- Slash commands (/help, /attach, /clear, /new)
- Escape sequence (//)
- Exit command variants and EOF
- One full streamed turn against a mocked backend

and the history sub-commands through typer's CliRunner.
"""

import json

import httpx
import pytest
from typer.testing import CliRunner

from promomo.cli.client import APIClient, AsyncAPIClient
from promomo.cli.commands import chat as chat_cmd
from promomo.cli.commands import history as history_cmd
from promomo.cli.config import CLIConfig
from promomo.cli.lib.state_manager import get_state_value
from promomo.cli.main import app
from promomo.schemas.chat import Attachment
from promomo.services.conversation_store import ConversationStore

REPLY = (
    'event: start\ndata: {"conversationId": "conv-7"}\n\n'
    'event: chunk\ndata: {"content": "Olá! Aqui está: [Ver Imagem](https://drive.google.com/file/d/IMG/view)"}\n\n'
    'event: done\ndata: {}\n\n'
).encode("utf-8")


@pytest.fixture(autouse=True)
def state_dir(monkeypatch, tmp_path):
    monkeypatch.setenv("PROMOMO_STATE_DIR", str(tmp_path / "state"))


def _repl(handler=None, **config) -> chat_cmd.ChatRepl:
    handler = handler or (lambda request: httpx.Response(200, headers={"content-type": "text/event-stream"}, content=REPLY))
    transport = httpx.MockTransport(handler)
    api = APIClient(base_url="http://api.test/api/v1", transport=transport)
    stream_api = AsyncAPIClient(base_url="http://api.test/api/v1", transport=transport)
    return chat_cmd.ChatRepl(CLIConfig(**config), api, stream_api)


def _feed_input(monkeypatch, lines):
    pending = iter(lines)

    def fake_input(prompt=""):
        try:
            return next(pending)
        except StopIteration:
            raise EOFError

    monkeypatch.setattr("builtins.input", fake_input)


class TestReplRouting:
    """Input routing of ``ChatRepl.run``."""

    @pytest.mark.asyncio
    async def test_escape_and_plain_messages_are_sent(self, monkeypatch) -> None:
        repl = _repl()
        sent = []

        async def fake_send(text: str) -> None:
            sent.append(text)

        monkeypatch.setattr(repl, "send", fake_send)
        _feed_input(monkeypatch, ["Olá", "", "//help não é comando", "/help", "/desconhecido", "sair?", "quit"])

        await repl.run()

        assert sent == ["Olá", "/help não é comando", "sair?"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("exit_word", ["/exit", "/sair", "quit", "EXIT"])
    async def test_exit_variants(self, monkeypatch, capsys, exit_word: str) -> None:
        repl = _repl()
        _feed_input(monkeypatch, [exit_word, "nunca enviado"])

        await repl.run()

        assert "Conversa terminada" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_eof_ends_conversation(self, monkeypatch, capsys) -> None:
        _feed_input(monkeypatch, [])

        await _repl().run()

        assert "Conversa terminada" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_clear_and_new(self, monkeypatch) -> None:
        repl = _repl()
        repl.pending = [Attachment(url="u", name="a.png")]
        old_session = repl.session
        _feed_input(monkeypatch, ["/clear", "/new"])

        await repl.run()

        assert repl.pending == []
        assert repl.session is not old_session

    @pytest.mark.asyncio
    async def test_attach_requires_business(self, tmp_path, capsys) -> None:
        image = tmp_path / "a.png"
        image.write_bytes(b"\x89PNG")
        repl = _repl()

        await repl.attach([image])

        assert repl.pending == []
        assert "PROMOMO_BUSINESS_ID" in capsys.readouterr().err


class TestReplTurn:
    @pytest.mark.asyncio
    async def test_send_renders_reply_and_remembers_conversation(self, capsys) -> None:
        repl = _repl()

        await repl.send("Olá")
        out = capsys.readouterr().out

        assert "Olá! Aqui está:" in out
        assert "[Multimédia]" in out
        assert "https://lh3.googleusercontent.com/d/IMG" in out
        assert get_state_value("last_conversation_id") == "conv-7"
        assert [m.role for m in repl.session.messages] == ["user", "assistant"]

    @pytest.mark.asyncio
    async def test_open_replays_history(self, capsys) -> None:
        conversation = {
            "_id": "conv-3",
            "messages": [
                {"role": "user", "content": "Olá"},
                {"role": "assistant", "content": "Bem-vindo de volta"},
            ],
        }

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"data": conversation})

        repl = _repl(handler)
        repl.open("conv-3")

        assert repl.session.conversation_id == "conv-3"
        assert len(repl.session.messages) == 2
        assert "Bem-vindo de volta" in capsys.readouterr().out


class TestHistoryCommands:
    """``promomo history`` through the root app."""

    @pytest.fixture
    def calls(self, monkeypatch):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append((request.method, request.url.path))
            if request.method == "GET" and request.url.path.endswith("/conversations"):
                return httpx.Response(200, json={"data": [{"_id": "c1", "title": "Campanha de verão"}]})
            if request.method == "GET":
                return httpx.Response(
                    200,
                    json={"data": {"_id": "c1", "title": "Campanha de verão", "messages": [{"role": "assistant", "content": "Olá"}]}},
                )
            return httpx.Response(200, json={"success": True})

        def fake_store() -> ConversationStore:
            return ConversationStore(APIClient(base_url="http://api.test/api/v1", transport=httpx.MockTransport(handler)))

        monkeypatch.setattr(history_cmd, "_store", fake_store)
        return seen

    def test_list_text(self, calls) -> None:
        result = CliRunner().invoke(app, ["history", "list"])

        assert result.exit_code == 0
        assert "c1" in result.stdout
        assert "Campanha de verão" in result.stdout

    def test_list_json(self, calls) -> None:
        result = CliRunner().invoke(app, ["--json", "history", "list"])

        assert result.exit_code == 0
        assert json.loads(result.stdout)[0]["_id"] == "c1"

    def test_show(self, calls) -> None:
        result = CliRunner().invoke(app, ["history", "show", "c1"])

        assert result.exit_code == 0
        assert "Campanha de verão" in result.stdout
        assert ("GET", "/api/v1/chat/conversations/c1") in calls

    def test_delete_with_yes(self, calls) -> None:
        result = CliRunner().invoke(app, ["history", "delete", "c1", "--yes"])

        assert result.exit_code == 0
        assert calls == [("DELETE", "/api/v1/chat/conversations/c1")]

    def test_show_without_id_or_state(self, calls) -> None:
        result = CliRunner().invoke(app, ["history", "show"])

        assert result.exit_code == 1
        assert calls == []
