"""Read-side persistence for clients, agents and channel bindings."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol
from uuid import UUID

from psycopg.rows import dict_row

from ..core.db import ConnectionFactory, transaction
from . import schemas


class AgentRepository(Protocol):
    """Persistence abstraction used by :class:`ConfigurationResolver`."""

    def get_client(self, client_id: UUID) -> Optional[schemas.Client]: ...

    def get_agent(self, agent_id: UUID) -> Optional[schemas.Agent]: ...

    def get_default_agent(self, client_id: UUID) -> Optional[schemas.Agent]: ...

    def find_active_bindings(self, phone_number: str) -> List[schemas.ChannelBinding]: ...


# ---------------------------------------------------------------------------
# Postgres repository implementation

_AGENT_COLUMNS = """
    id, client_id, name, system_prompt, completion_api_key, is_default, voice_settings
"""


class PostgresAgentRepository:
    """PostgreSQL-backed agent repository."""

    def __init__(self, connect: ConnectionFactory) -> None:
        self._connect = connect

    def _fetchone(self, query: str, params: tuple) -> Optional[Dict[str, Any]]:
        with transaction(self._connect) as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(query, params)
                return cur.fetchone()

    def get_client(self, client_id: UUID) -> Optional[schemas.Client]:
        row = self._fetchone("SELECT id, name FROM clients WHERE id = %s", (client_id,))
        return schemas.Client(**row) if row else None

    def get_agent(self, agent_id: UUID) -> Optional[schemas.Agent]:
        row = self._fetchone(
            f"SELECT {_AGENT_COLUMNS} FROM agents WHERE id = %s", (agent_id,)
        )
        return self._row_to_agent(row) if row else None

    def get_default_agent(self, client_id: UUID) -> Optional[schemas.Agent]:
        row = self._fetchone(
            f"""
            SELECT {_AGENT_COLUMNS} FROM agents
            WHERE client_id = %s AND is_default
            ORDER BY created_at
            LIMIT 1
            """,
            (client_id,),
        )
        return self._row_to_agent(row) if row else None

    def find_active_bindings(self, phone_number: str) -> List[schemas.ChannelBinding]:
        with transaction(self._connect) as conn:
            with conn.cursor(row_factory=dict_row) as cur:
                cur.execute(
                    """
                    SELECT id, phone_number, client_id, agent_id, is_active,
                           voice_enabled, sms_enabled, voice_settings
                    FROM channel_bindings
                    WHERE phone_number = %s AND is_active
                    """,
                    (phone_number,),
                )
                rows = cur.fetchall()
        return [self._row_to_binding(row) for row in rows]

    def _row_to_agent(self, row: Dict[str, Any]) -> schemas.Agent:
        return schemas.Agent(
            id=row["id"],
            client_id=row["client_id"],
            name=row["name"],
            system_prompt=row.get("system_prompt"),
            completion_api_key=row.get("completion_api_key"),
            is_default=bool(row.get("is_default")),
            voice=schemas.VoiceSettings.from_json(row.get("voice_settings")),
        )

    def _row_to_binding(self, row: Dict[str, Any]) -> schemas.ChannelBinding:
        return schemas.ChannelBinding(
            id=row["id"],
            phone_number=row["phone_number"],
            client_id=row["client_id"],
            agent_id=row["agent_id"],
            is_active=row["is_active"],
            voice_enabled=row["voice_enabled"],
            sms_enabled=row.get("sms_enabled", False),
            voice_settings=schemas.VoiceSettings.from_json(row.get("voice_settings")),
        )


# ---------------------------------------------------------------------------
# In-memory repository (useful for testing and sandbox environments)


class InMemoryAgentRepository:
    def __init__(self) -> None:
        self._clients: Dict[UUID, schemas.Client] = {}
        self._agents: Dict[UUID, schemas.Agent] = {}
        self._bindings: Dict[UUID, schemas.ChannelBinding] = {}

    def add_client(self, client: schemas.Client) -> schemas.Client:
        self._clients[client.id] = client
        return client

    def add_agent(self, agent: schemas.Agent) -> schemas.Agent:
        if agent.is_default:
            for other in self._agents.values():
                if other.client_id == agent.client_id and other.is_default:
                    raise ValueError(f"Client {agent.client_id} already has a default agent")
        self._agents[agent.id] = agent
        return agent

    def add_binding(self, binding: schemas.ChannelBinding) -> schemas.ChannelBinding:
        if binding.is_active and self.find_active_bindings(binding.phone_number):
            raise ValueError(f"{binding.phone_number} already has an active binding")
        self._bindings[binding.id] = binding
        return binding

    def get_client(self, client_id: UUID) -> Optional[schemas.Client]:
        return self._clients.get(client_id)

    def get_agent(self, agent_id: UUID) -> Optional[schemas.Agent]:
        return self._agents.get(agent_id)

    def get_default_agent(self, client_id: UUID) -> Optional[schemas.Agent]:
        for agent in self._agents.values():
            if agent.client_id == client_id and agent.is_default:
                return agent
        return None

    def find_active_bindings(self, phone_number: str) -> List[schemas.ChannelBinding]:
        return [
            b
            for b in self._bindings.values()
            if b.phone_number == phone_number and b.is_active
        ]
