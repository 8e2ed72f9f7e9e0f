"""Pydantic schemas for conversations and their messages."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from pydantic import BaseModel, Field

Channel = Literal["voice", "sms", "chat", "widget"]
Role = Literal["user", "assistant"]


class Conversation(BaseModel):
    id: UUID
    client_id: UUID
    agent_id: UUID
    channel: Channel
    phone_number: str
    external_session_id: str
    status: Literal["active", "ended"] = "active"
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class Message(BaseModel):
    id: UUID
    conversation_id: UUID
    role: Role
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime
