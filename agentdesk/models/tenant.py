"""Clients, their agents and the phone numbers bound to them."""

from __future__ import annotations

import datetime as dt
import uuid
from typing import Any, List

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, String, Text, func, text
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column, relationship

from . import Base
from ._types import JsonType, utcnow, uuid_pk


class Client(Base):
    """A business (tenant) owning agents, numbers and a knowledge base."""

    __tablename__ = "clients"

    id: Mapped[uuid.UUID] = uuid_pk()
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    agents: Mapped[List["Agent"]] = relationship(
        back_populates="client",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class Agent(Base):
    """One AI persona of a client.

    At most one agent per client carries ``is_default``.
    """

    __tablename__ = "agents"
    __table_args__ = (
        Index("ix_agents_client_id", "client_id"),
        Index(
            "ux_agents_default_per_client",
            "client_id",
            unique=True,
            postgresql_where=text("is_default"),
            sqlite_where=text("is_default = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = uuid_pk()
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(String(length=255), nullable=False)
    system_prompt: Mapped[str | None] = mapped_column(Text(), nullable=True)
    completion_api_key: Mapped[str | None] = mapped_column(String(length=255), nullable=True)
    is_default: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    voice_settings: Mapped[dict[str, Any]] = mapped_column(
        JsonType, nullable=False, default=dict, server_default=text("'{}'")
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )

    client: Mapped[Client] = relationship(back_populates="agents")


class ChannelBinding(Base):
    """Maps a telephone number to one client and agent.

    The partial unique index keeps at most one active binding per number and
    serves the lookup by number.
    """

    __tablename__ = "channel_bindings"
    __table_args__ = (
        Index("ix_channel_bindings_phone_number", "phone_number"),
        Index(
            "ux_channel_bindings_active_phone",
            "phone_number",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )

    id: Mapped[uuid.UUID] = uuid_pk()
    phone_number: Mapped[str] = mapped_column(String(length=32), nullable=False)
    client_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False,
    )
    agent_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True),
        ForeignKey("agents.id", ondelete="CASCADE"),
        nullable=False,
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    voice_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, server_default=text("true")
    )
    sms_enabled: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default=text("false")
    )
    voice_settings: Mapped[dict[str, Any]] = mapped_column(
        JsonType, nullable=False, default=dict, server_default=text("'{}'")
    )
    created_at: Mapped[dt.datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now()
    )
