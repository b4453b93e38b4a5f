"""Small text helpers shared by the chat session and the CLI renderer."""

import re

TOOL_FRIENDLY_NAMES = {
    "describe_business": "a registar o seu negócio",
    "get_business_info": "a obter informações do negócio",
    "update_business": "a atualizar o negócio",
    "run_market_research": "a fazer pesquisa de mercado",
    "get_market_research": "a obter pesquisa de mercado",
    "run_strategic_plan": "a criar plano estratégico",
    "get_strategic_plan": "a obter plano estratégico",
    "generate_campaign": "a criar campanha de marketing",
    "list_campaigns": "a listar campanhas",
    "get_campaign": "a obter detalhes da campanha",
    "generate_content": "a gerar conteúdo",
    "generate_campaign_contents": "a gerar conteúdos da campanha",
    "generate_campaign_images": "a gerar imagens da campanha",
    "generate_campaign_videos": "a gerar vídeos da campanha",
    "list_campaign_contents": "a listar conteúdos da campanha",
    "list_all_business_content": "a listar todos os conteúdos",
    "list_generated_content": "a listar conteúdos gerados",
    "get_drive_links": "a obter links do Google Drive",
}

SYSTEM_CONTEXT_TEMPLATE = (
    '[SYSTEM: The current User ID is "{user_id}". Use this ID automatically for any '
    "tool calls that require a 'userId' parameter. Do NOT ask the user for their ID.]"
)

_SYSTEM_BLOCK_RE = re.compile(r"\[SYSTEM:[^\]]*\]")
_LABELLED_OBJECT_ID_RE = re.compile(r"\(ID:\s*[a-f0-9]{24}\s*\)", re.IGNORECASE)
_BARE_OBJECT_ID_RE = re.compile(r"\([a-f0-9]{24}\)")
_ID_PREFIX_RE = re.compile(r"ID:\s*[a-f0-9]{24}", re.IGNORECASE)
_SPACE_RUN_RE = re.compile(r"[ \t]{2,}")


def get_tool_friendly_name(tool_name: str) -> str:
    """Human readable progress label for a backend tool."""
    return TOOL_FRIENDLY_NAMES.get(tool_name) or f"a executar {tool_name.replace('_', ' ')}"


def with_system_context(message: str, user_id: str) -> str:
    return f"{SYSTEM_CONTEXT_TEMPLATE.format(user_id=user_id)}\n\n{message}"


def sanitize_content(content: str) -> str:
    """Strip the injected system context and raw database ids from reply text."""
    if not content:
        return content

    sanitized = _SYSTEM_BLOCK_RE.sub("", content, count=1)
    sanitized = _LABELLED_OBJECT_ID_RE.sub("", sanitized)
    sanitized = _BARE_OBJECT_ID_RE.sub("", sanitized)
    sanitized = _ID_PREFIX_RE.sub("", sanitized)
    # Newlines are kept, only horizontal runs collapse.
    sanitized = _SPACE_RUN_RE.sub(" ", sanitized)
    return sanitized.strip()
