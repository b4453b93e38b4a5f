"""
Terminal-safe output for the CLI.

Replies contain Portuguese accents and emoji. Terminals with a legacy code
page (cp1252, cp850) cannot encode all of them, so printing falls back to
replacement characters instead of crashing the REPL mid-reply.
"""

import sys
from typing import TextIO

import typer


def supports_unicode(stream: TextIO = sys.stdout) -> bool:
    """True when the stream encoding can render emoji."""
    try:
        "✅".encode(getattr(stream, "encoding", None) or "utf-8")
        return True
    except (UnicodeEncodeError, LookupError):
        return False


_UNICODE_SUPPORT = supports_unicode()


def emoji(unicode_char: str, ascii_fallback: str) -> str:
    """
    Return emoji if supported, otherwise ASCII fallback.

    Args:
        unicode_char: Unicode emoji character
        ascii_fallback: ASCII fallback (e.g., '[ERROR]')
    """
    return unicode_char if _UNICODE_SUPPORT else ascii_fallback


def _encodable(text: str, stream: TextIO) -> str:
    encoding = getattr(stream, "encoding", None) or "utf-8"
    try:
        return text.encode(encoding, errors="replace").decode(encoding, errors="replace")
    except LookupError:
        return text.encode("ascii", errors="replace").decode("ascii")


def safe_print(text: str, end: str = "\n", flush: bool = False, err: bool = False) -> None:
    """
    Print text, replacing characters the terminal encoding cannot represent.

    Args:
        text: Text to print
        end: String appended after the text (default: newline)
        flush: Whether to flush the stream
        err: Print to stderr instead of stdout
    """
    if err:
        safe_print_err(text, end=end, flush=flush)
        return
    try:
        print(text, end=end, flush=flush)
    except UnicodeEncodeError:
        print(_encodable(text, sys.stdout), end=end, flush=flush)


def safe_print_err(text: str, end: str = "\n", flush: bool = False) -> None:
    """Print to stderr through ``typer.echo`` with the same encoding fallback."""
    try:
        typer.echo(text, err=True, nl=(end == "\n"))
    except UnicodeEncodeError:
        typer.echo(_encodable(text, sys.stderr), err=True, nl=(end == "\n"))
    if flush:
        sys.stderr.flush()
