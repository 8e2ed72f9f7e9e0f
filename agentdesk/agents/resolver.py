"""Resolve the effective agent configuration for an inbound turn.

Every optional setting is resolved from an explicit precedence list:

- completion key: agent override (if plausible) -> process default
- system prompt: request override -> agent prompt -> channel default persona
- voice: binding override -> agent voice -> process defaults
"""

from __future__ import annotations

import logging
from uuid import UUID

from ..config import Settings
from ..errors import ConfigNotFoundError
from . import schemas
from .prompts import PromptTemplateStore
from .providers import KeyCandidate, ProviderKeyPolicy
from .repository import AgentRepository

logger = logging.getLogger(__name__)

DEFAULT_VOICE = schemas.VoiceSettings(voice="alice", language="en-US", speed=1.0)

CHANNEL_CAPABILITIES = {"voice": "voice_enabled", "sms": "sms_enabled"}


class ConfigurationResolver:
    def __init__(
        self,
        repository: AgentRepository,
        settings: Settings,
        *,
        prompt_store: PromptTemplateStore | None = None,
        key_policy: ProviderKeyPolicy | None = None,
    ) -> None:
        self._repository = repository
        self._settings = settings
        self._prompts = prompt_store or PromptTemplateStore()
        self._keys = key_policy or ProviderKeyPolicy(
            prefix=settings.openai_key_prefix,
            min_length=settings.openai_key_min_length,
        )

    # ------------------------------------------------------------------
    # Lookups

    def resolve_phone(self, phone_number: str, channel: str = "voice") -> schemas.ResolvedAgentConfig:
        """Resolve the single active binding for ``phone_number`` on ``channel``."""

        capability = CHANNEL_CAPABILITIES[channel]
        bindings = [
            b
            for b in self._repository.find_active_bindings(phone_number)
            if getattr(b, capability)
        ]
        if not bindings:
            raise ConfigNotFoundError(f"No active {channel} binding for {phone_number}")
        if len(bindings) > 1:
            logger.error(
                "%d active %s bindings for %s; refusing to guess",
                len(bindings),
                channel,
                phone_number,
            )
            raise ConfigNotFoundError(f"Ambiguous {channel} binding for {phone_number}")
        binding = bindings[0]
        client = self._repository.get_client(binding.client_id)
        agent = self._repository.get_agent(binding.agent_id)
        if client is None or agent is None:
            raise ConfigNotFoundError(f"Binding {binding.id} points to a missing client or agent")
        return self._build(client, agent, channel, binding=binding)

    def resolve_agent(
        self,
        *,
        client_id: UUID | None = None,
        agent_id: UUID | None = None,
        channel: str = "chat",
        prompt_override: str | None = None,
    ) -> schemas.ResolvedAgentConfig:
        """Resolve an explicit agent, or the client's default agent."""

        if agent_id is not None:
            agent = self._repository.get_agent(agent_id)
            if agent is None:
                raise ConfigNotFoundError(f"Agent {agent_id} not found")
            if client_id is not None and agent.client_id != client_id:
                raise ConfigNotFoundError(f"Agent {agent_id} does not belong to client {client_id}")
        elif client_id is not None:
            agent = self._repository.get_default_agent(client_id)
            if agent is None:
                raise ConfigNotFoundError(f"Client {client_id} has no default agent")
        else:
            raise ConfigNotFoundError("Either an agent or a client must be specified")
        client = self._repository.get_client(agent.client_id)
        if client is None:
            raise ConfigNotFoundError(f"Client {agent.client_id} not found")
        return self._build(client, agent, channel, prompt_override=prompt_override)

    # ------------------------------------------------------------------
    # Helpers

    def _build(
        self,
        client: schemas.Client,
        agent: schemas.Agent,
        channel: str,
        *,
        binding: schemas.ChannelBinding | None = None,
        prompt_override: str | None = None,
    ) -> schemas.ResolvedAgentConfig:
        credentials = self._keys.resolve(
            [
                KeyCandidate(f"agent:{agent.id}", agent.completion_api_key),
                KeyCandidate("environment", self._settings.openai_api_key, checked=False),
            ]
        )
        system_prompt = self._prompts.resolve(
            [prompt_override, agent.system_prompt], channel, client.name
        )
        return schemas.ResolvedAgentConfig(
            client=client,
            agent=agent,
            system_prompt=system_prompt,
            completion_api_key=credentials.api_key,
            voice=self._resolve_voice(agent, binding),
            binding=binding,
        )

    def _resolve_voice(
        self, agent: schemas.Agent, binding: schemas.ChannelBinding | None
    ) -> schemas.EffectiveVoice:
        defaults = DEFAULT_VOICE.model_copy(
            update={"tts_voice_id": self._settings.elevenlabs_voice_id}
        )
        sources = [binding.voice_settings if binding else None, agent.voice, defaults]
        resolved = {}
        for field_name in schemas.VoiceSettings.model_fields:
            for source in sources:
                value = getattr(source, field_name) if source is not None else None
                if value is not None:
                    resolved[field_name] = value
                    break
        return schemas.EffectiveVoice(**resolved)
