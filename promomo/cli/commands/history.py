"""History command - List, show, rename and delete conversations."""

import json
import sys
from datetime import datetime
from typing import Optional

import typer

from promomo.cli._globals import get_global_config
from promomo.cli.client import APIClient
from promomo.cli.lib.chat_renderer import ChatRenderer
from promomo.cli.lib.safe_output import emoji, safe_print, safe_print_err
from promomo.cli.lib.state_manager import get_state_value
from promomo.services.conversation_store import ConversationStore
from promomo.services.history_adapter import replay_conversation


def _format_timestamp(ts: Optional[datetime]) -> str:
    if ts is None:
        return "-"
    return ts.strftime("%Y-%m-%d %H:%M")


def _truncate_text(text: str, max_len: int = 50) -> str:
    """Truncate text to max length."""
    text = " ".join(text.split())
    if len(text) > max_len:
        return text[:max_len] + "..."
    return text


def _store() -> ConversationStore:
    config = get_global_config()
    api = APIClient(
        base_url=config.api_base,
        timeout=config.timeout,
        retry_times=config.retry_times,
        token_provider=lambda: config.api_token,
    )
    return ConversationStore(api)


def _json_output(format_type: Optional[str]) -> bool:
    if format_type:
        return format_type == "json"
    return get_global_config().output_format == "json"


history_app = typer.Typer(help="Manage saved conversations", no_args_is_help=True)


@history_app.command("list")
def list_history(
    page: int = typer.Option(1, "--page", "-p", help="Page number"),
    limit: int = typer.Option(20, "--limit", "-l", help="Number of conversations to show"),
    format_type: Optional[str] = typer.Option(None, "--format", help="Output format: text or json"),
) -> None:
    """List recent conversations."""
    store = _store()
    try:
        conversations = store.list(page=page, limit=limit)
    finally:
        store.api.close()

    if _json_output(format_type):
        safe_print(
            json.dumps(
                [c.model_dump(mode="json", by_alias=True) for c in conversations],
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    if not conversations:
        safe_print(emoji("📭", "[EMPTY]") + " Ainda não há conversas")
        return

    safe_print(f"\n{emoji('📋', '[LIST]')} Conversas ({len(conversations)})\n")
    safe_print(f"{'#':<4} {'ID':<26} {'Atualizada':<17} {'Título'}")
    safe_print("-" * 90)
    for idx, conversation in enumerate(conversations, 1):
        updated = _format_timestamp(conversation.updated_at or conversation.created_at)
        title = _truncate_text(conversation.title or conversation.last_message or "Sem título")
        safe_print(f"{idx:<4} {conversation.id:<26} {updated:<17} {title}")

    safe_print("")
    safe_print(emoji("💡", "[TIP]") + " Use 'promomo history show <id>' para ver uma conversa")
    safe_print(emoji("💡", "[TIP]") + " Use 'promomo chat -c <id>' para a continuar\n")


@history_app.command("show")
def show_history(
    conversation_id: Optional[str] = typer.Argument(None, help="Conversation ID (defaults to the last one)"),
    format_type: Optional[str] = typer.Option(None, "--format", help="Output format: text or json"),
) -> None:
    """Show a conversation with its media and documents."""
    if not conversation_id:
        conversation_id = get_state_value("last_conversation_id")

    if not conversation_id:
        safe_print_err(f"{emoji('❌', '[ERROR]')} Falta o ID. Uso: promomo history show <id>")
        sys.exit(1)

    store = _store()
    try:
        conversation = store.get(conversation_id)
    finally:
        store.api.close()

    if conversation is None:
        safe_print_err(f"{emoji('❌', '[ERROR]')} Conversa não encontrada: {conversation_id}")
        sys.exit(1)

    messages = replay_conversation(conversation)
    if _json_output(format_type):
        safe_print(
            json.dumps(
                [m.model_dump(mode="json") for m in messages],
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    safe_print(f"\n{emoji('💬', '[CHAT]')} {conversation.title or 'Sem título'} ({conversation.id})")
    renderer = ChatRenderer()
    for message in messages:
        if message.role == "user":
            renderer.render_user_message(message)
        else:
            renderer.render_message(message)
    safe_print("")


@history_app.command("rename")
def rename_history(
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
    title: str = typer.Argument(..., help="New title"),
) -> None:
    """Rename a conversation."""
    store = _store()
    try:
        ok = store.rename(conversation_id, title)
    finally:
        store.api.close()

    if not ok:
        safe_print_err(f"\n{emoji('❌', '[ERROR]')} Não foi possível mudar o nome\n")
        sys.exit(1)
    safe_print(f"\n{emoji('✅', '[SUCCESS]')} Nome alterado\n")


@history_app.command("delete")
def delete_history(
    conversation_id: str = typer.Argument(..., help="Conversation ID"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Delete a conversation."""
    if not yes and not typer.confirm(f"Eliminar a conversa {conversation_id}?"):
        raise typer.Exit(0)

    store = _store()
    try:
        ok = store.delete(conversation_id)
    finally:
        store.api.close()

    if not ok:
        safe_print_err(f"\n{emoji('❌', '[ERROR]')} Não foi possível eliminar a conversa\n")
        sys.exit(1)
    safe_print(f"\n{emoji('✅', '[SUCCESS]')} Conversa eliminada\n")
