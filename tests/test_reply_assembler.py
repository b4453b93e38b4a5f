"""Unit tests for the streaming reply reducer."""

import pytest

from promomo.schemas.chat import Frame
from promomo.services.reply_assembler import (
    NO_RESPONSE_PLACEHOLDER,
    apply_frame,
    assemble,
    extract_chunk_text,
    finish_reply,
    new_reply_state,
    visible_text,
)
from promomo.services.sse_decoder import fallback_frames


def _frames(*pairs) -> list[Frame]:
    return [Frame(event=event, data=data) for event, data in pairs]


class TestChunkText:
    """Chunk payload shapes, tried in a fixed order."""

    @pytest.mark.parametrize(
        "data,expected",
        [
            ("Hello", "Hello"),
            ({"content": "a"}, "a"),
            ({"text": "b"}, "b"),
            ({"delta": "c"}, "c"),
            ({"content": "", "text": "t", "delta": "d"}, "t"),
            ({"content": 42}, ""),
            (None, ""),
            ([1, 2], ""),
        ],
    )
    def test_extract_chunk_text(self, data, expected: str) -> None:
        assert extract_chunk_text(data) == expected


class TestReducer:
    def test_hello_world(self) -> None:
        state = assemble(
            _frames(
                ("start", {"conversationId": "c1"}),
                ("chunk", {"content": "Hello"}),
                ("chunk", {"content": " world"}),
                ("done", {}),
            )
        )

        assert state.accumulated_text == "Hello world"
        assert state.terminal == "done"
        assert state.conversation_id == "c1"

    def test_token_event_is_a_chunk(self) -> None:
        state = assemble(_frames(("token", "Olá"), ("token", {"delta": "!"})))

        assert state.accumulated_text == "Olá!"

    def test_cumulative_resend_not_duplicated(self) -> None:
        state = assemble(
            _frames(
                ("chunk", {"content": "Olá"}),
                ("chunk", {"content": "Olá, tudo"}),
                ("chunk", {"content": " bem?"}),
            )
        )

        assert state.accumulated_text == "Olá, tudo bem?"

    def test_repeated_delta_is_appended(self) -> None:
        state = assemble(_frames(("chunk", "ha"), ("chunk", "ha")))

        assert state.accumulated_text == "haha"

    @pytest.mark.parametrize(
        "chunks,expected",
        [
            (["-", "--"], "---"),
            (["ha", "haha"], "hahaha"),
            ([{"delta": "ha"}, {"delta": "haha"}], "hahaha"),
            ([{"text": "-"}, {"text": "--"}], "---"),
        ],
    )
    def test_delta_extending_the_total_is_appended(self, chunks, expected: str) -> None:
        state = assemble([Frame(event="chunk", data=chunk) for chunk in chunks])

        assert state.accumulated_text == expected

    def test_tool_lifecycle(self) -> None:
        state = new_reply_state()
        state = apply_frame(state, Frame(event="tool_call", data={"name": "generate_content"}))
        assert state.active_tool_name == "generate_content"

        state = apply_frame(state, Frame(event="tool_result", data={"name": "generate_content", "result": {"ok": 1}}))
        assert state.active_tool_name is None
        assert state.tool_results == ({"name": "generate_content", "result": {"ok": 1}},)

    def test_tool_call_accepts_tool_field(self) -> None:
        state = apply_frame(new_reply_state(), Frame(event="tool_call", data={"tool": "get_drive_links"}))

        assert state.active_tool_name == "get_drive_links"

    def test_done_records_tools_used(self) -> None:
        state = assemble(_frames(("chunk", "ok"), ("done", {"toolsUsed": ["a", "b"], "conversationId": "c7"})))

        assert state.tools_used == ("a", "b")
        assert state.conversation_id == "c7"

    def test_document_frame_surfaces_immediately(self) -> None:
        state = apply_frame(
            new_reply_state(),
            Frame(
                event="document",
                data={
                    "documentId": "d1",
                    "type": "market_research",
                    "title": "Pesquisa de mercado",
                    "driveLink": "https://drive.google.com/file/d/D1/view",
                },
            ),
        )

        assert state.terminal == "streaming"
        assert len(state.documents) == 1
        assert state.documents[0].id == "d1"
        assert state.documents[0].kind == "market_research"

    def test_unknown_event_ignored(self) -> None:
        state = new_reply_state()

        assert apply_frame(state, Frame(event="heartbeat", data={})) == state

    def test_frames_after_terminal_ignored(self) -> None:
        state = assemble(_frames(("chunk", "fim"), ("done", {}), ("chunk", " extra"), ("error", {"error": "x"})))

        assert state.accumulated_text == "fim"
        assert state.terminal == "done"

    def test_state_is_not_mutated(self) -> None:
        state = new_reply_state("c1")
        apply_frame(state, Frame(event="chunk", data="abc"))

        assert state.accumulated_text == ""


class TestDeterminism:
    def test_same_frames_same_state(self) -> None:
        frames = _frames(
            ("start", {"conversationId": "c1"}),
            ("tool_call", {"name": "run_market_research"}),
            ("tool_result", {"name": "run_market_research", "result": "{\"documents\": []}"}),
            ("document", {"type": "strategic_plan", "title": "Plano"}),
            ("chunk", {"content": "Pronto"}),
            ("done", {"toolsUsed": ["run_market_research"]}),
        )

        assert assemble(frames) == assemble(frames)


class TestTerminalText:
    def test_immediate_error(self) -> None:
        state = assemble(_frames(("error", {"error": "timeout"})))

        assert state.terminal == "error"
        assert visible_text(state) == "Erro: timeout"

    def test_error_without_detail(self) -> None:
        state = assemble(_frames(("error", {})))

        assert visible_text(state) == "Erro: Algo correu mal"

    def test_error_string_payload(self) -> None:
        state = assemble(_frames(("error", "Serviço indisponível")))

        assert visible_text(state) == "Erro: Serviço indisponível"

    def test_empty_reply_gets_placeholder(self) -> None:
        state = assemble(_frames(("start", {}), ("done", {})))

        assert visible_text(state) == NO_RESPONSE_PLACEHOLDER

    def test_stream_end_without_done_finishes(self) -> None:
        state = finish_reply(apply_frame(new_reply_state(), Frame(event="chunk", data="parcial")))

        assert state.terminal == "done"
        assert visible_text(state) == "parcial"

    def test_streaming_snapshot_has_no_placeholder(self) -> None:
        assert visible_text(new_reply_state()) == ""

    def test_fallback_json_equals_streamed_reply(self) -> None:
        streamed = assemble(_frames(("chunk", {"content": "Hi"}), ("done", {})))

        assert assemble(fallback_frames({"response": "Hi"})) == streamed
