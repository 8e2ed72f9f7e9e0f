"""Conversation bookkeeping around telephony sessions."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from . import schemas
from .repository import ConversationRepository

logger = logging.getLogger(__name__)


class CallSessionTracker:
    """Maps a provider session id (call or message thread) to one conversation."""

    def __init__(self, repository: ConversationRepository) -> None:
        self._repository = repository

    def get_or_create_conversation(
        self,
        client_id: UUID,
        agent_id: UUID,
        caller: str,
        external_session_id: str,
        channel: str = "voice",
    ) -> UUID:
        """Return the conversation id for this session, creating it once.

        Repeated or concurrent calls with the same
        ``(client_id, caller, external_session_id)`` yield the same id.
        """

        conversation, created = self._repository.get_or_create(
            client_id=client_id,
            agent_id=agent_id,
            channel=channel,
            phone_number=caller,
            external_session_id=external_session_id,
        )
        if created:
            logger.info(
                "Started %s conversation %s for client %s",
                channel,
                conversation.id,
                client_id,
            )
        return conversation.id

    def append_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        metadata: dict[str, Any] | None = None,
    ) -> schemas.Message:
        return self._repository.add_message(conversation_id, role, content, metadata or {})

    def end_conversation(self, client_id: UUID, caller: str, external_session_id: str) -> bool:
        ended = self._repository.end_conversation(client_id, caller, external_session_id)
        if ended:
            logger.info("Ended conversation for session %s", external_session_id)
        return ended

    def history(self, conversation_id: UUID) -> list[schemas.Message]:
        return self._repository.list_messages(conversation_id)
