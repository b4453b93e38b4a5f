"""
Conversation history collaborator.

Thin wrapper over the ``/chat/conversations`` endpoints. The backend wraps
every payload in a ``{"data": ...}`` envelope. Failures never propagate to the
caller: they are logged and mapped to an empty list, ``None`` or ``False`` so
the chat view keeps working when history is unavailable.
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ValidationError

from promomo.cli.client import APIClient, APIError
from promomo.core.logger import get_logger
from promomo.schemas.chat import Conversation, ConversationSummary

logger = get_logger("promomo.conversation_store")

CONVERSATIONS_PATH = "/chat/conversations"


def _unwrap(body: Any) -> Any:
    if isinstance(body, dict) and "data" in body:
        return body["data"]
    return None


class ConversationStore:
    def __init__(self, api: APIClient, path: str = CONVERSATIONS_PATH):
        self.api = api
        self.path = path.rstrip("/")

    def list(self, page: int = 1, limit: int = 20) -> list[ConversationSummary]:
        try:
            body = self.api.get(self.path, params={"page": page, "limit": limit})
        except APIError as e:
            logger.warning("Failed to load conversations: %s", e.message)
            return []

        items = _unwrap(body)
        if not isinstance(items, list):
            return []

        summaries: list[ConversationSummary] = []
        for item in items:
            try:
                summaries.append(ConversationSummary.model_validate(item))
            except ValidationError as e:
                logger.debug("Skipping malformed conversation summary: %s", e)
        return summaries

    def get(self, conversation_id: str) -> Optional[Conversation]:
        try:
            body = self.api.get(f"{self.path}/{conversation_id}")
        except APIError as e:
            logger.warning("Failed to load conversation %s: %s", conversation_id, e.message)
            return None
        return self._conversation(_unwrap(body))

    def create(self, title: Optional[str] = None, business_id: Optional[str] = None) -> Optional[Conversation]:
        payload = {"title": title, "businessId": business_id}
        try:
            body = self.api.post(self.path, json={k: v for k, v in payload.items() if v is not None})
        except APIError as e:
            logger.warning("Failed to create conversation: %s", e.message)
            return None
        return self._conversation(_unwrap(body))

    def rename(self, conversation_id: str, title: str) -> bool:
        try:
            self.api.patch(f"{self.path}/{conversation_id}", json={"title": title})
        except APIError as e:
            logger.warning("Failed to rename conversation %s: %s", conversation_id, e.message)
            return False
        return True

    def delete(self, conversation_id: str) -> bool:
        try:
            self.api.delete(f"{self.path}/{conversation_id}")
        except APIError as e:
            logger.warning("Failed to delete conversation %s: %s", conversation_id, e.message)
            return False
        return True

    @staticmethod
    def _conversation(data: Any) -> Optional[Conversation]:
        if not isinstance(data, dict):
            return None
        try:
            return Conversation.model_validate(data)
        except ValidationError as e:
            logger.warning("Malformed conversation payload: %s", e)
            return None
