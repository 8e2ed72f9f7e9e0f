"""Pydantic schemas for the knowledge base."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class KnowledgeDocument(BaseModel):
    id: UUID
    client_id: UUID
    title: str
    content: str
    size: int
    source_type: str = "upload"
    source_url: str | None = None
    created_at: datetime | None = None


class KnowledgeChunk(BaseModel):
    client_id: UUID
    document_id: UUID
    chunk_index: int
    content: str
    metadata: dict[str, Any] = Field(default_factory=dict)
    title: str | None = None


class DocumentCreate(BaseModel):
    """Payload used to ingest a document into a client's knowledge base."""

    client_id: UUID
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1)
    source_type: str = "upload"
    source_url: str | None = None


class DocumentIngestResponse(BaseModel):
    document_id: UUID
    title: str
    content_length: int
    chunks_created: int


class KnowledgeSearchRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    client_id: UUID | None = Field(default=None, alias="clientId")
    query: str | None = None
    limit: int = Field(default=3, ge=1, le=20)


class KnowledgeSearchResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    content: str
    source: str
    chunk_index: int = Field(serialization_alias="chunkIndex")


class KnowledgeSearchResponse(BaseModel):
    results: list[KnowledgeSearchResult]
    context: str
    count: int
