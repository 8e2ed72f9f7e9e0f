"""Database repository for conversations."""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol, Tuple
from uuid import UUID, uuid4

from psycopg.rows import dict_row
from psycopg.types.json import Jsonb

from ..core.db import ConnectionFactory, transaction
from . import schemas

ConversationKey = Tuple[UUID, str, str]


class ConversationRepository(Protocol):
    """Abstraction for persisting conversation artefacts."""

    def get_or_create(
        self,
        *,
        client_id: UUID,
        agent_id: UUID,
        channel: str,
        phone_number: str,
        external_session_id: str,
    ) -> Tuple[schemas.Conversation, bool]: ...

    def add_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        metadata: Dict[str, Any],
    ) -> schemas.Message: ...

    def end_conversation(self, client_id: UUID, phone_number: str, external_session_id: str) -> bool: ...

    def get_conversation(self, conversation_id: UUID) -> Optional[schemas.Conversation]: ...

    def list_messages(self, conversation_id: UUID) -> List[schemas.Message]: ...


class PostgresConversationRepository:
    """PostgreSQL implementation of :class:`ConversationRepository`.

    ``get_or_create`` relies on the unique index over
    ``(client_id, phone_number, external_session_id)``: the insert is a no-op
    when a concurrent webhook already created the row, and the existing row is
    selected inside the same transaction.
    """

    def __init__(self, connect: ConnectionFactory) -> None:
        self._connect = connect

    def get_or_create(
        self,
        *,
        client_id: UUID,
        agent_id: UUID,
        channel: str,
        phone_number: str,
        external_session_id: str,
    ) -> Tuple[schemas.Conversation, bool]:
        with transaction(self._connect) as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO conversations
                        (client_id, agent_id, channel, phone_number, external_session_id, status)
                    VALUES (%s, %s, %s, %s, %s, 'active')
                    ON CONFLICT (client_id, phone_number, external_session_id) DO NOTHING
                    RETURNING *
                    """,
                    (client_id, agent_id, channel, phone_number, external_session_id),
                )
                row = cur.fetchone()
                if row:
                    return schemas.Conversation(**row), True
                cur.execute(
                    """
                    SELECT * FROM conversations
                    WHERE client_id = %s AND phone_number = %s AND external_session_id = %s
                    """,
                    (client_id, phone_number, external_session_id),
                )
                row = cur.fetchone()
        if row is None:
            raise RuntimeError("Conversation vanished between insert and select")
        return schemas.Conversation(**row), False

    def add_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        metadata: Dict[str, Any],
    ) -> schemas.Message:
        with transaction(self._connect) as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    INSERT INTO messages (conversation_id, role, content, metadata)
                    VALUES (%s, %s, %s, %s)
                    RETURNING *
                    """,
                    (conversation_id, role, content, Jsonb(metadata)),
                )
                row = cur.fetchone()
        return schemas.Message(**row)

    def end_conversation(self, client_id: UUID, phone_number: str, external_session_id: str) -> bool:
        with transaction(self._connect) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    """
                    UPDATE conversations SET status = 'ended', updated_at = now()
                    WHERE client_id = %s AND phone_number = %s
                      AND external_session_id = %s AND status = 'active'
                    """,
                    (client_id, phone_number, external_session_id),
                )
                return cur.rowcount > 0

    def get_conversation(self, conversation_id: UUID) -> Optional[schemas.Conversation]:
        with transaction(self._connect) as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute("SELECT * FROM conversations WHERE id = %s", (conversation_id,))
                row = cur.fetchone()
        return schemas.Conversation(**row) if row else None

    def list_messages(self, conversation_id: UUID) -> List[schemas.Message]:
        with transaction(self._connect) as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT * FROM messages
                    WHERE conversation_id = %s
                    ORDER BY created_at ASC
                    """,
                    (conversation_id,),
                )
                rows = cur.fetchall()
        return [schemas.Message(**row) for row in rows]


class InMemoryConversationRepository:
    """Thread-safe in-process store (tests and sandbox environments)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._conversations: Dict[UUID, schemas.Conversation] = {}
        self._by_key: Dict[ConversationKey, UUID] = {}
        self._messages: Dict[UUID, List[schemas.Message]] = {}

    def get_or_create(
        self,
        *,
        client_id: UUID,
        agent_id: UUID,
        channel: str,
        phone_number: str,
        external_session_id: str,
    ) -> Tuple[schemas.Conversation, bool]:
        key = (client_id, phone_number, external_session_id)
        with self._lock:
            existing = self._by_key.get(key)
            if existing is not None:
                return self._conversations[existing], False
            conversation = schemas.Conversation(
                id=uuid4(),
                client_id=client_id,
                agent_id=agent_id,
                channel=channel,
                phone_number=phone_number,
                external_session_id=external_session_id,
                created_at=datetime.now(timezone.utc),
            )
            self._conversations[conversation.id] = conversation
            self._by_key[key] = conversation.id
            self._messages[conversation.id] = []
            return conversation, True

    def add_message(
        self,
        conversation_id: UUID,
        role: str,
        content: str,
        metadata: Dict[str, Any],
    ) -> schemas.Message:
        message = schemas.Message(
            id=uuid4(),
            conversation_id=conversation_id,
            role=role,
            content=content,
            metadata=dict(metadata),
            created_at=datetime.now(timezone.utc),
        )
        with self._lock:
            if conversation_id not in self._conversations:
                raise KeyError(f"Conversation {conversation_id} not found")
            self._messages[conversation_id].append(message)
        return message

    def end_conversation(self, client_id: UUID, phone_number: str, external_session_id: str) -> bool:
        with self._lock:
            conversation_id = self._by_key.get((client_id, phone_number, external_session_id))
            if conversation_id is None:
                return False
            conversation = self._conversations[conversation_id]
            if conversation.status == "ended":
                return False
            self._conversations[conversation_id] = conversation.model_copy(
                update={"status": "ended"}
            )
            return True

    def get_conversation(self, conversation_id: UUID) -> Optional[schemas.Conversation]:
        return self._conversations.get(conversation_id)

    def list_messages(self, conversation_id: UUID) -> List[schemas.Message]:
        with self._lock:
            return list(self._messages.get(conversation_id, []))

    def count(self) -> int:
        return len(self._conversations)
