"""Client knowledge base: chunking, ingestion and keyword retrieval."""

from . import schemas
from .chunking import chunk_text
from .ingestion import KnowledgeIngestor
from .repository import InMemoryKnowledgeRepository, PostgresKnowledgeRepository
from .retriever import KnowledgeRetriever

__all__ = [
    "InMemoryKnowledgeRepository",
    "KnowledgeIngestor",
    "KnowledgeRetriever",
    "PostgresKnowledgeRepository",
    "chunk_text",
    "schemas",
]
