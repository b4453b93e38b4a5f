"""Tests for CLI safe output handling with encoding fallback."""

import io
from unittest import mock

from promomo.cli.lib.safe_output import (
    _encodable,
    emoji,
    safe_print,
    safe_print_err,
    supports_unicode,
)


class TestUnicodeSupport:
    """Test unicode/emoji support detection."""

    def test_emoji_provides_fallback(self):
        """Test emoji always returns either unicode or ascii fallback."""
        result = emoji("❌", "[ERROR]")
        assert result in ["❌", "[ERROR]"]

    def test_utf8_stream_supports_unicode(self):
        stream = io.TextIOWrapper(io.BytesIO(), encoding="utf-8")
        assert supports_unicode(stream) is True

    def test_legacy_code_page_does_not(self):
        stream = io.TextIOWrapper(io.BytesIO(), encoding="cp1252")
        assert supports_unicode(stream) is False

    def test_unknown_encoding_does_not(self):
        stream = mock.Mock(encoding="no-such-codec")
        assert supports_unicode(stream) is False


class TestEncodable:
    def test_accents_survive_cp1252(self):
        stream = mock.Mock(encoding="cp1252")
        assert _encodable("Olá, campanha pronta", stream) == "Olá, campanha pronta"

    def test_emoji_replaced_on_cp1252(self):
        stream = mock.Mock(encoding="cp1252")
        assert _encodable("Vídeo 🎬", stream) == "Vídeo ?"

    def test_unknown_encoding_falls_back_to_ascii(self):
        stream = mock.Mock(encoding="no-such-codec")
        assert _encodable("ação", stream) == "a??o"


class TestSafePrint:
    def test_prints_text(self, capsys):
        safe_print("Olá 🎬")
        assert capsys.readouterr().out == "Olá 🎬\n"

    def test_end_and_flush(self, capsys):
        safe_print("a", end="", flush=True)
        safe_print("b", end="")
        assert capsys.readouterr().out == "ab"

    def test_encode_error_retries_with_replacement(self):
        calls = []

        def fake_print(text, end="\n", flush=False):
            calls.append(text)
            if len(calls) == 1:
                raise UnicodeEncodeError("cp1252", text, 0, 1, "cannot encode")

        with mock.patch("builtins.print", side_effect=fake_print):
            safe_print("🎬 Promo")

        assert len(calls) == 2

    def test_err_goes_to_stderr(self, capsys):
        safe_print("falhou", err=True)
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "falhou" in captured.err

    def test_control_chars_dont_crash(self):
        """Test that control characters don't crash output."""
        with mock.patch("builtins.print"):
            safe_print("Normal\x00\x01\x02text")


class TestSafePrintErr:
    def test_error_message_with_emoji(self):
        with mock.patch("typer.echo") as echo:
            safe_print_err(f"{emoji('❌', '[ERROR]')} Ficheiro não encontrado")

        echo.assert_called_once()
        assert echo.call_args.kwargs == {"err": True, "nl": True}

    def test_without_newline(self):
        with mock.patch("typer.echo") as echo:
            safe_print_err("sem quebra", end="")

        assert echo.call_args.kwargs["nl"] is False
