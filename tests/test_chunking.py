import math
import uuid

import pytest

from agentdesk.knowledge import InMemoryKnowledgeRepository, KnowledgeIngestor, chunk_text
from agentdesk.knowledge.schemas import DocumentCreate


@pytest.mark.parametrize("length,size", [(1, 1000), (999, 1000), (1000, 1000), (2501, 1000), (37, 5)])
def test_chunk_count_and_reassembly(length, size):
    text = "".join(chr(ord("a") + i % 26) for i in range(length))
    chunks = chunk_text(text, chunk_size=size)
    assert len(chunks) == math.ceil(length / size)
    assert "".join(chunks) == text
    assert all(len(c) == size for c in chunks[:-1])


def test_empty_text_has_no_chunks():
    assert chunk_text("") == []


def test_chunk_size_must_be_positive():
    with pytest.raises(ValueError):
        chunk_text("abc", chunk_size=0)


def test_ingestor_stores_indexed_chunks_for_client():
    repository = InMemoryKnowledgeRepository()
    ingestor = KnowledgeIngestor(repository, chunk_size=10)
    client_id = uuid.uuid4()
    content = "Returns are accepted within thirty days."

    result = ingestor.ingest(
        DocumentCreate(client_id=client_id, title="Policy", content=content)
    )

    assert result.chunks_created == math.ceil(len(content) / 10)
    assert result.content_length == len(content)
    stored = sorted(
        (c for c in repository._chunks if c.document_id == result.document_id),
        key=lambda c: c.chunk_index,
    )
    assert [c.chunk_index for c in stored] == list(range(result.chunks_created))
    assert "".join(c.content for c in stored) == content
    assert {c.client_id for c in stored} == {client_id}
    assert stored[0].metadata["title"] == "Policy"
