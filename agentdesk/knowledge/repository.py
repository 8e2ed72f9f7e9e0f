"""Persistence for knowledge documents and keyword search over their chunks."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Dict, List, Protocol, Sequence
from uuid import UUID, uuid4

import psycopg
from psycopg.rows import dict_row
from psycopg.types.json import Jsonb
from rank_bm25 import BM25Okapi

from ..core.db import ConnectionFactory, transaction
from ..errors import RetrievalDegradedError
from . import schemas

logger = logging.getLogger(__name__)


# Subset of PostgreSQL's ``english`` stop list, so both stores ignore the same
# function words.
STOPWORDS = frozenset(
    """
    a about above after again against all am an and any are as at be because
    been before being below between both but by can could did do does doing
    down during each few for from further had has have having he her here hers
    herself him himself his how i if in into is it its itself just me more most
    my myself no nor not now of off on once only or other our ours ourselves out
    over own same she should so some such than that the their theirs them
    themselves then there these they this those through to too under until up
    very was we were what when where which while who whom why will with would
    you your yours yourself yourselves
    """.split()
)


def tokenize(text: str) -> List[str]:
    """Very small tokenizer: lowercase and keep only alpha-numerics."""
    return [
        t.lower()
        for t in "".join(c if c.isalnum() else " " for c in text).split()
        if t
    ]


def search_terms(text: str) -> List[str]:
    """Tokens of ``text`` that carry meaning for keyword search."""
    return [t for t in tokenize(text) if t not in STOPWORDS]


class KnowledgeRepository(Protocol):
    """Abstraction over the knowledge store used by the retriever."""

    def add_document(
        self, document: schemas.KnowledgeDocument, chunks: Sequence[schemas.KnowledgeChunk]
    ) -> None: ...

    def search_chunks(
        self, client_id: UUID, query: str, limit: int
    ) -> List[schemas.KnowledgeChunk]: ...


class PostgresKnowledgeRepository:
    """PostgreSQL full-text search over ``knowledge_chunks``.

    The query terms are OR-ed together (``term | term``) and ranked with
    ``ts_rank``; rows are always filtered by ``client_id`` first. Stopwords are
    dropped before the query is built, matching the in-memory store.
    """

    _SEARCH_SQL = """
        SELECT c.client_id, c.document_id, c.chunk_index, c.content, c.metadata,
               d.title,
               ts_rank(to_tsvector('english', c.content), q.query) AS rank
        FROM knowledge_chunks c
        JOIN knowledge_documents d ON d.id = c.document_id
        CROSS JOIN to_tsquery('english', %s) AS q(query)
        WHERE c.client_id = %s
          AND to_tsvector('english', c.content) @@ q.query
        ORDER BY rank DESC, c.chunk_index ASC
        LIMIT %s
    """

    def __init__(self, connect: ConnectionFactory) -> None:
        self._connect = connect

    def add_document(
        self, document: schemas.KnowledgeDocument, chunks: Sequence[schemas.KnowledgeChunk]
    ) -> None:
        try:
            with transaction(self._connect) as conn, conn.cursor() as cur:
                cur.execute(
                    """
                    INSERT INTO knowledge_documents
                        (id, client_id, title, content, size, source_type, source_url)
                    VALUES (%s, %s, %s, %s, %s, %s, %s)
                    """,
                    (
                        document.id,
                        document.client_id,
                        document.title,
                        document.content,
                        document.size,
                        document.source_type,
                        document.source_url,
                    ),
                )
                cur.executemany(
                    """
                    INSERT INTO knowledge_chunks
                        (client_id, document_id, chunk_index, content, metadata)
                    VALUES (%s, %s, %s, %s, %s)
                    """,
                    [
                        (c.client_id, c.document_id, c.chunk_index, c.content, Jsonb(c.metadata))
                        for c in chunks
                    ],
                )
        except psycopg.Error as exc:
            raise RetrievalDegradedError(str(exc)) from exc

    def search_chunks(
        self, client_id: UUID, query: str, limit: int
    ) -> List[schemas.KnowledgeChunk]:
        terms = search_terms(query)
        if not terms:
            return []
        try:
            with transaction(self._connect) as conn:
                with conn.cursor(row_factory=dict_row) as cur:
                    cur.execute(self._SEARCH_SQL, (" | ".join(terms), client_id, limit))
                    rows = cur.fetchall()
        except psycopg.Error as exc:
            raise RetrievalDegradedError(str(exc)) from exc
        return [
            schemas.KnowledgeChunk(
                client_id=row["client_id"],
                document_id=row["document_id"],
                chunk_index=row["chunk_index"],
                content=row["content"],
                metadata=row.get("metadata") or {},
                title=row.get("title"),
            )
            for row in rows
        ]


class InMemoryKnowledgeRepository:
    """Process-local store ranking chunks with BM25 (tests and sandboxes)."""

    def __init__(self) -> None:
        self._documents: Dict[UUID, schemas.KnowledgeDocument] = {}
        self._chunks: List[schemas.KnowledgeChunk] = []
        self._lock = threading.Lock()

    def add_document(
        self, document: schemas.KnowledgeDocument, chunks: Sequence[schemas.KnowledgeChunk]
    ) -> None:
        with self._lock:
            stored = document.model_copy(
                update={"created_at": document.created_at or datetime.now(timezone.utc)}
            )
            self._documents[document.id] = stored
            self._chunks.extend(
                c.model_copy(update={"title": c.title or document.title}) for c in chunks
            )

    def add_text(self, client_id: UUID, content: str, *, title: str = "Untitled") -> UUID:
        """Shortcut storing ``content`` as a single-chunk document."""

        document = schemas.KnowledgeDocument(
            id=uuid4(), client_id=client_id, title=title, content=content, size=len(content)
        )
        chunk = schemas.KnowledgeChunk(
            client_id=client_id, document_id=document.id, chunk_index=0, content=content
        )
        self.add_document(document, [chunk])
        return document.id

    def search_chunks(
        self, client_id: UUID, query: str, limit: int
    ) -> List[schemas.KnowledgeChunk]:
        terms = search_terms(query)
        if not terms:
            return []
        with self._lock:
            corpus = [c for c in self._chunks if c.client_id == client_id]
        if not corpus:
            return []
        tokenized = [search_terms(c.content) for c in corpus]
        if not any(tokenized):
            return []
        scores = BM25Okapi(tokenized).get_scores(terms)
        wanted = set(terms)
        matches = [
            (score, chunk)
            for score, chunk, tokens in zip(scores, corpus, tokenized)
            if wanted.intersection(tokens)
        ]
        matches.sort(key=lambda item: (-item[0], item[1].chunk_index))
        return [chunk for _, chunk in matches[:limit]]
