"""SQLAlchemy declarative base and table models.

The models mirror the DDL in ``agentdesk/migrations`` and are used to create
schemas in tests. Request handling goes through the psycopg repositories.
"""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy declarative models."""


from .tenant import Agent, ChannelBinding, Client  # noqa: E402
from .knowledge import KnowledgeChunk, KnowledgeDocument  # noqa: E402
from .conversation import Conversation, Message  # noqa: E402
from .session import get_engine  # noqa: E402


__all__ = [
    "Agent",
    "Base",
    "ChannelBinding",
    "Client",
    "Conversation",
    "KnowledgeChunk",
    "KnowledgeDocument",
    "Message",
    "get_engine",
]
