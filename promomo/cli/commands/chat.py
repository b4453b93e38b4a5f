"""Chat command - Interactive conversation with the marketing assistant."""

import asyncio
import signal
import sys
from pathlib import Path
from typing import List, Optional

import typer

from promomo.cli._globals import get_global_config
from promomo.cli.client import APIClient, AsyncAPIClient
from promomo.cli.config import CLIConfig
from promomo.cli.lib.chat_renderer import ChatRenderer
from promomo.cli.lib.safe_output import emoji, safe_print, safe_print_err
from promomo.cli.lib.state_manager import get_state_value, update_state
from promomo.core.logger import get_logger
from promomo.schemas.chat import Attachment, Message
from promomo.services.asset_upload import (
    MAX_ATTACHMENTS,
    AssetUploader,
    AttachmentError,
    validate_attachments,
)
from promomo.services.chat_stream import ChatError, ChatSession, ChatStreamClient
from promomo.services.conversation_store import ConversationStore
from promomo.services.history_adapter import load_conversation

logger = get_logger("promomo.cli.chat")

EXIT_COMMANDS = {"/exit", "/sair", "quit", "exit"}


def _print_repl_help() -> None:
    safe_print("\n[Ajuda]\n")
    safe_print("  - Escreva a mensagem e carregue Enter para enviar")
    safe_print(f"  - /attach <ficheiro>: anexar uma imagem à próxima mensagem (máx. {MAX_ATTACHMENTS})")
    safe_print("  - /clear: remover os anexos pendentes")
    safe_print("  - /new: começar uma nova conversa")
    safe_print("  - Ctrl+C durante uma resposta: interromper a resposta")
    safe_print("  - /exit, quit, Ctrl+D: sair\n")


def _token_provider(config: CLIConfig):
    return lambda: config.api_token


def _render_history(renderer: ChatRenderer, messages: List[Message]) -> None:
    for message in messages:
        if message.role == "user":
            renderer.render_user_message(message)
        else:
            renderer.render_message(message)


class ChatRepl:
    """Read-eval-print loop around one ``ChatSession``."""

    def __init__(self, config: CLIConfig, api: APIClient, stream_api: AsyncAPIClient):
        self.config = config
        self.api = api
        self.renderer = ChatRenderer()
        self.uploader = AssetUploader(api)
        self.client = ChatStreamClient(stream_api)
        self.session = ChatSession(self.client, user_id=config.user_id)
        self.pending: List[Attachment] = []

    def open(self, conversation_id: Optional[str]) -> None:
        if not conversation_id:
            return
        messages = load_conversation(ConversationStore(self.api), conversation_id)
        if messages is None:
            safe_print_err(f"{emoji('⚠️', '[WARN]')} Não foi possível carregar a conversa {conversation_id}")
            return
        self.session = ChatSession(
            self.client,
            conversation_id=conversation_id,
            user_id=self.config.user_id,
            messages=messages,
        )
        safe_print(f"{emoji('🔄', '[LOADING]')} A continuar a conversa: {conversation_id}")
        _render_history(self.renderer, messages)

    async def attach(self, paths: List[Path]) -> None:
        if not self.config.business_id:
            safe_print_err(f"{emoji('❌', '[ERROR]')} Defina PROMOMO_BUSINESS_ID para anexar imagens")
            return
        try:
            validate_attachments(paths, already_selected=len(self.pending))
            for path in paths:
                attachment = await asyncio.to_thread(self.uploader.upload, self.config.business_id, path)
                self.pending.append(attachment)
                safe_print(f"{emoji('📎', '[ANEXO]')} {attachment.name} anexado")
        except AttachmentError as e:
            safe_print_err(f"{emoji('❌', '[ERROR]')} {e}")

    async def send(self, text: str) -> None:
        self.renderer.reset()
        loop = asyncio.get_running_loop()
        interrupt_installed = _install_interrupt(loop, self.session)
        try:
            reply = await self.session.submit(text, self.pending, on_update=self.renderer.render_update)
        except ChatError as e:
            safe_print_err(f"{emoji('❌', '[ERROR]')} {e}")
            return
        except asyncio.CancelledError:
            safe_print(f"\n{emoji('⏹️', '[STOP]')} Resposta interrompida")
            self.pending = []
            return
        finally:
            if interrupt_installed:
                loop.remove_signal_handler(signal.SIGINT)

        self.pending = []
        self.renderer.render_message(reply)
        if self.session.conversation_id:
            update_state("last_conversation_id", self.session.conversation_id)

    async def run(self) -> None:
        while True:
            try:
                raw_input = (await asyncio.to_thread(input, "\nTu: ")).strip()
            except EOFError:
                safe_print("\n[EXIT] Conversa terminada")
                return

            if not raw_input:
                continue

            if raw_input.lower() in EXIT_COMMANDS:
                safe_print("\n[EXIT] Conversa terminada")
                return

            if raw_input.startswith("//"):
                await self.send(raw_input[1:])
                continue

            if raw_input.startswith("/"):
                cmd, _, arg = raw_input.partition(" ")
                cmd = cmd.lower()
                if cmd == "/help":
                    _print_repl_help()
                elif cmd == "/attach" and arg.strip():
                    await self.attach([Path(arg.strip()).expanduser()])
                elif cmd == "/clear":
                    self.pending = []
                    safe_print("Anexos removidos")
                elif cmd == "/new":
                    self.session = ChatSession(self.client, user_id=self.config.user_id)
                    self.pending = []
                    update_state("last_conversation_id", None)
                    safe_print(f"{emoji('✨', '[NEW]')} Nova conversa")
                else:
                    safe_print("Comando desconhecido. Use /help")
                continue

            await self.send(raw_input)


def _install_interrupt(loop: asyncio.AbstractEventLoop, session: ChatSession) -> bool:
    """Route Ctrl+C to ``session.cancel`` while a reply streams."""
    try:
        loop.add_signal_handler(signal.SIGINT, session.cancel)
    except (NotImplementedError, RuntimeError):
        # Windows event loops do not support signal handlers.
        return False
    return True


async def _run_chat(
    config: CLIConfig,
    conversation_id: Optional[str],
    attach: List[Path],
    message: Optional[str],
) -> None:
    api = APIClient(
        base_url=config.api_base,
        timeout=config.timeout,
        retry_times=config.retry_times,
        token_provider=_token_provider(config),
    )
    async with AsyncAPIClient(
        base_url=config.api_base,
        timeout=config.timeout,
        token_provider=_token_provider(config),
    ) as stream_api:
        try:
            repl = ChatRepl(config, api, stream_api)
            repl.open(conversation_id)
            if attach:
                await repl.attach(attach)

            if message is not None:
                await repl.send(message)
                return

            safe_print("=" * 60)
            safe_print("PromoMo - Assistente de marketing")
            safe_print("=" * 60)
            safe_print(emoji("💡", "[TIP]") + " Escreva /help para ver os comandos")
            await repl.run()
        finally:
            api.close()


def chat(
    conversation_id: Optional[str] = typer.Option(
        None,
        "--conversation-id",
        "-c",
        help="Continue an existing conversation",
    ),
    resume: bool = typer.Option(
        False,
        "--resume",
        "-r",
        help="Continue the last conversation used from this machine",
    ),
    attach: List[Path] = typer.Option(
        [],
        "--attach",
        "-a",
        help="Image to attach to the first message (repeatable, max 5)",
    ),
    message: Optional[str] = typer.Option(
        None,
        "--message",
        "-m",
        help="Send a single message, print the reply and exit",
    ),
) -> None:
    """
    Interactive chat mode for multi-turn conversations.

    Replies stream as they arrive; generated images, videos and documents are
    listed below each reply.
    """
    config = get_global_config()
    if not conversation_id and resume:
        conversation_id = get_state_value("last_conversation_id") or None

    try:
        asyncio.run(_run_chat(config, conversation_id, list(attach), message))
    except KeyboardInterrupt:
        safe_print("\n\n[EXIT] Conversa terminada", err=True)
        sys.exit(0)
