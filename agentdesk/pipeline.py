"""Orchestrates one conversational turn: resolve, retrieve, generate."""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List
from uuid import UUID

from .agents.resolver import ConfigurationResolver
from .agents.schemas import ResolvedAgentConfig
from .knowledge.retriever import KnowledgeRetriever
from .knowledge.schemas import KnowledgeChunk
from .llm.generator import ResponseGenerator

logger = logging.getLogger(__name__)


@dataclass
class PipelineReply:
    text: str
    config: ResolvedAgentConfig
    chunks: List[KnowledgeChunk] = field(default_factory=list)


class ConversationPipeline:
    """Run the resolve -> retrieve -> generate pipeline for a single turn.

    When the client is known up front, configuration resolution and knowledge
    retrieval have no dependency on each other and are submitted to a thread
    pool together; generation waits for both. The pool is shared by every
    request in the process and sized by ``Settings.pipeline_workers``.
    """

    def __init__(
        self,
        resolver: ConfigurationResolver,
        retriever: KnowledgeRetriever,
        generator: ResponseGenerator,
        *,
        max_workers: int = 16,
    ) -> None:
        self.resolver = resolver
        self.retriever = retriever
        self.generator = generator
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="agentdesk-pipeline"
        )

    def answer(
        self,
        config: ResolvedAgentConfig,
        utterance: str,
        *,
        channel: str,
    ) -> PipelineReply:
        """Answer with an already resolved configuration (telephony path)."""

        context, chunks = self.retriever.build_context(config.client.id, utterance)
        return self._generate(config, context, chunks, utterance, channel)

    def answer_for_agent(
        self,
        utterance: str,
        *,
        channel: str,
        client_id: UUID | None = None,
        agent_id: UUID | None = None,
        prompt_override: str | None = None,
    ) -> PipelineReply:
        """Resolve the agent and answer (widget and chat paths).

        Raises :class:`~agentdesk.errors.ConfigNotFoundError` or
        :class:`~agentdesk.errors.UpstreamUnavailableError`.
        """

        if client_id is None:
            config = self.resolver.resolve_agent(
                agent_id=agent_id, channel=channel, prompt_override=prompt_override
            )
            return self.answer(config, utterance, channel=channel)

        config_future = self._executor.submit(
            self.resolver.resolve_agent,
            client_id=client_id,
            agent_id=agent_id,
            channel=channel,
            prompt_override=prompt_override,
        )
        context_future = self._executor.submit(
            self.retriever.build_context, client_id, utterance
        )
        try:
            config = config_future.result()
        except Exception:
            context_future.cancel()
            raise
        context, chunks = context_future.result()
        return self._generate(config, context, chunks, utterance, channel)

    def _generate(
        self,
        config: ResolvedAgentConfig,
        context: str,
        chunks: List[KnowledgeChunk],
        utterance: str,
        channel: str,
    ) -> PipelineReply:
        text = self.generator.generate(
            config.system_prompt,
            context,
            utterance,
            channel=channel,
            api_key=config.completion_api_key,
        )
        logger.info(
            "Generated %s reply for agent %s (%d knowledge chunk(s))",
            channel,
            config.agent.id,
            len(chunks),
        )
        return PipelineReply(text=text, config=config, chunks=chunks)

    def shutdown(self) -> None:
        self._executor.shutdown(wait=False)
