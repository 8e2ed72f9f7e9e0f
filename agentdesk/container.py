"""Explicit wiring of repositories, providers and channel adapters."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .agents.repository import (
    AgentRepository,
    InMemoryAgentRepository,
    PostgresAgentRepository,
)
from .agents.resolver import ConfigurationResolver
from .channels import ChannelAdapter, get_adapter
from .config import Settings
from .conversations.repository import (
    ConversationRepository,
    InMemoryConversationRepository,
    PostgresConversationRepository,
)
from .conversations.service import CallSessionTracker
from .core.db import connection_factory
from .knowledge.ingestion import KnowledgeIngestor
from .knowledge.repository import (
    InMemoryKnowledgeRepository,
    KnowledgeRepository,
    PostgresKnowledgeRepository,
)
from .knowledge.retriever import KnowledgeRetriever
from .llm.generator import CompletionClient, OpenAICompletionClient, ResponseGenerator
from .pipeline import ConversationPipeline
from .speech.synthesizer import ElevenLabsSynthesizer, SpeechSynthesizer

logger = logging.getLogger(__name__)


@dataclass
class ServiceContainer:
    settings: Settings
    agents: AgentRepository
    knowledge: KnowledgeRepository
    conversations: ConversationRepository
    resolver: ConfigurationResolver
    retriever: KnowledgeRetriever
    ingestor: KnowledgeIngestor
    generator: ResponseGenerator
    synthesizer: SpeechSynthesizer
    tracker: CallSessionTracker
    pipeline: ConversationPipeline
    channels: dict[str, ChannelAdapter] = field(default_factory=dict)

    def channel(self, name: str) -> Any:
        return self.channels[name]


def build_container(
    settings: Settings,
    *,
    agents: AgentRepository | None = None,
    knowledge: KnowledgeRepository | None = None,
    conversations: ConversationRepository | None = None,
    completion_client: CompletionClient | None = None,
    synthesizer: SpeechSynthesizer | None = None,
) -> ServiceContainer:
    """Build every component from ``settings``.

    PostgreSQL repositories are used when ``DATABASE_URL`` is configured,
    otherwise in-memory stores. Any collaborator can be passed explicitly.
    """

    if settings.database_url:
        connect = connection_factory(settings.database_url)
        agents = agents or PostgresAgentRepository(connect)
        knowledge = knowledge or PostgresKnowledgeRepository(connect)
        conversations = conversations or PostgresConversationRepository(connect)
    else:
        logger.warning("DATABASE_URL not set; using in-memory stores")
        agents = agents or InMemoryAgentRepository()
        knowledge = knowledge or InMemoryKnowledgeRepository()
        conversations = conversations or InMemoryConversationRepository()

    resolver = ConfigurationResolver(agents, settings)
    retriever = KnowledgeRetriever(knowledge, default_limit=settings.knowledge_result_limit)
    generator = ResponseGenerator(
        completion_client or OpenAICompletionClient(timeout=settings.completion_timeout),
        model=settings.openai_model,
    )
    synthesizer = synthesizer or ElevenLabsSynthesizer(
        settings.elevenlabs_api_key,
        model=settings.elevenlabs_model,
        timeout=settings.tts_timeout,
    )
    tracker = CallSessionTracker(conversations)
    pipeline = ConversationPipeline(
        resolver, retriever, generator, max_workers=settings.pipeline_workers
    )

    adapter_kwargs: dict[str, dict[str, Any]] = {
        "voice": {
            "pipeline": pipeline,
            "tracker": tracker,
            "synthesizer": synthesizer,
            "settings": settings,
        },
        "sms": {
            "pipeline": pipeline,
            "tracker": tracker,
            "auth_token": settings.twilio_auth_token,
        },
        "widget": {"pipeline": pipeline, "settings": settings},
        "chat": {"pipeline": pipeline, "settings": settings},
    }
    channels = {name: get_adapter(name)(**kwargs) for name, kwargs in adapter_kwargs.items()}

    return ServiceContainer(
        settings=settings,
        agents=agents,
        knowledge=knowledge,
        conversations=conversations,
        resolver=resolver,
        retriever=retriever,
        ingestor=KnowledgeIngestor(knowledge, chunk_size=settings.chunk_size),
        generator=generator,
        synthesizer=synthesizer,
        tracker=tracker,
        pipeline=pipeline,
        channels=channels,
    )
