"""Keyword retrieval over a client's knowledge base.

The retriever is the only consumer of :class:`KnowledgeRepository` on the
request path. It returns the most relevant chunks for a free-text query,
strictly scoped to one client, and turns store outages into an empty result so
that reply generation can still answer from general knowledge.
"""

from __future__ import annotations

import logging
from typing import List, Tuple
from uuid import UUID

from ..errors import RetrievalDegradedError
from .repository import KnowledgeRepository
from .schemas import KnowledgeChunk

logger = logging.getLogger(__name__)

CONTEXT_SEPARATOR = "\n\n---\n\n"
MAX_CONTEXT_CHARS = 2000


class KnowledgeRetriever:
    """Return top-N chunks for ``(client_id, query)``, most relevant first."""

    def __init__(
        self,
        repository: KnowledgeRepository,
        *,
        default_limit: int = 3,
        max_context_chars: int = MAX_CONTEXT_CHARS,
    ) -> None:
        self._repository = repository
        self._default_limit = default_limit
        self._max_context_chars = max_context_chars

    def search_strict(
        self, client_id: UUID, query: str, limit: int | None = None
    ) -> List[KnowledgeChunk]:
        """Search and let :class:`RetrievalDegradedError` propagate."""

        effective = self._default_limit if limit is None else limit
        if effective <= 0 or not query or not query.strip():
            return []
        chunks = self._repository.search_chunks(client_id, query, effective)
        # Never hand out chunks owned by another client.
        scoped = [c for c in chunks if c.client_id == client_id]
        if len(scoped) != len(chunks):
            logger.error(
                "Knowledge store returned %d chunk(s) outside client %s",
                len(chunks) - len(scoped),
                client_id,
            )
        return scoped[:effective]

    def search(
        self, client_id: UUID, query: str, limit: int | None = None
    ) -> List[KnowledgeChunk]:
        try:
            chunks = self.search_strict(client_id, query, limit)
        except RetrievalDegradedError as exc:
            logger.warning("Knowledge search degraded for client %s: %s", client_id, exc)
            return []
        logger.debug("Knowledge search for client %s returned %d chunk(s)", client_id, len(chunks))
        return chunks

    def build_context(
        self, client_id: UUID, query: str, limit: int | None = None
    ) -> Tuple[str, List[KnowledgeChunk]]:
        """Return ``(context, chunks)`` where context is ready for a prompt."""

        chunks = self.search(client_id, query, limit)
        return self.format_context(chunks), chunks

    def format_context(self, chunks: List[KnowledgeChunk]) -> str:
        context = CONTEXT_SEPARATOR.join(c.content for c in chunks)
        return context[: self._max_context_chars]
