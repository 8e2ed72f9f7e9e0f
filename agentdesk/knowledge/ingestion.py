"""Document ingestion: persist a document and its fixed-size chunks."""

from __future__ import annotations

import logging
from uuid import uuid4

from .chunking import DEFAULT_CHUNK_SIZE, chunk_text
from . import schemas
from .repository import KnowledgeRepository

logger = logging.getLogger(__name__)


class KnowledgeIngestor:
    def __init__(
        self, repository: KnowledgeRepository, *, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> None:
        self._repository = repository
        self._chunk_size = chunk_size

    def ingest(self, payload: schemas.DocumentCreate) -> schemas.DocumentIngestResponse:
        document = schemas.KnowledgeDocument(
            id=uuid4(),
            client_id=payload.client_id,
            title=payload.title,
            content=payload.content,
            size=len(payload.content),
            source_type=payload.source_type,
            source_url=payload.source_url,
        )
        pieces = chunk_text(payload.content, chunk_size=self._chunk_size)
        chunks = [
            schemas.KnowledgeChunk(
                client_id=document.client_id,
                document_id=document.id,
                chunk_index=index,
                content=piece,
                metadata={
                    "title": document.title,
                    "source_url": document.source_url,
                    "chunk_size": len(piece),
                },
            )
            for index, piece in enumerate(pieces)
        ]
        self._repository.add_document(document, chunks)
        logger.info(
            "Ingested document %s for client %s (%d chars, %d chunks)",
            document.id,
            document.client_id,
            document.size,
            len(chunks),
        )
        return schemas.DocumentIngestResponse(
            document_id=document.id,
            title=document.title,
            content_length=document.size,
            chunks_created=len(chunks),
        )
