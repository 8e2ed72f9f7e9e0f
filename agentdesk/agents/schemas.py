"""Pydantic schemas for clients, agents and channel bindings."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field


class Client(BaseModel):
    id: UUID
    name: str


class VoiceSettings(BaseModel):
    """Partial voice configuration; unset fields defer to the next source."""

    voice: str | None = None
    language: str | None = None
    speed: float | None = Field(default=None, gt=0, le=4)
    tts_voice_id: str | None = None

    @classmethod
    def from_json(cls, data: dict[str, Any] | None) -> "VoiceSettings":
        return cls(**{k: v for k, v in (data or {}).items() if k in cls.model_fields})


class EffectiveVoice(BaseModel):
    """Fully resolved voice configuration used to render a call turn."""

    voice: str
    language: str
    speed: float
    tts_voice_id: str


class Agent(BaseModel):
    id: UUID
    client_id: UUID
    name: str
    system_prompt: str | None = None
    completion_api_key: str | None = Field(default=None, repr=False)
    is_default: bool = False
    voice: VoiceSettings = Field(default_factory=VoiceSettings)


class ChannelBinding(BaseModel):
    id: UUID
    phone_number: str
    client_id: UUID
    agent_id: UUID
    is_active: bool = True
    voice_enabled: bool = True
    sms_enabled: bool = False
    voice_settings: VoiceSettings = Field(default_factory=VoiceSettings)


class ResolvedAgentConfig(BaseModel):
    """Everything the pipeline needs to answer on behalf of one agent."""

    client: Client
    agent: Agent
    system_prompt: str
    completion_api_key: str | None = Field(default=None, repr=False)
    voice: EffectiveVoice
    binding: ChannelBinding | None = None
