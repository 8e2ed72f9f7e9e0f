import uuid

import pytest

from agentdesk.errors import RetrievalDegradedError
from agentdesk.knowledge import InMemoryKnowledgeRepository, KnowledgeRetriever
from agentdesk.knowledge.repository import search_terms, tokenize
from agentdesk.knowledge.retriever import CONTEXT_SEPARATOR
from agentdesk.knowledge.schemas import KnowledgeChunk, KnowledgeDocument


def _doc(repository, client_id, pieces, title="Doc"):
    document = KnowledgeDocument(
        id=uuid.uuid4(),
        client_id=client_id,
        title=title,
        content="".join(pieces),
        size=sum(len(p) for p in pieces),
    )
    chunks = [
        KnowledgeChunk(
            client_id=client_id, document_id=document.id, chunk_index=i, content=p
        )
        for i, p in enumerate(pieces)
    ]
    repository.add_document(document, chunks)
    return document


def test_tokenize_lowercases_and_strips_punctuation():
    assert tokenize("What are your HOURS?") == ["what", "are", "your", "hours"]


def test_search_terms_drop_stopwords():
    assert search_terms("What are your HOURS?") == ["hours"]
    assert search_terms("when are you") == []


def test_stopwords_alone_never_match():
    repository = InMemoryKnowledgeRepository()
    client_id = uuid.uuid4()
    repository.add_text(client_id, "We are open 9-5 Mon-Fri.")
    retriever = KnowledgeRetriever(repository)

    assert retriever.search(client_id, "What are your hours?") == []
    assert retriever.search(client_id, "when are you") == []
    assert retriever.search(client_id, "when are you open")


def test_search_never_returns_other_clients_chunks():
    repository = InMemoryKnowledgeRepository()
    acme, globex = uuid.uuid4(), uuid.uuid4()
    repository.add_text(acme, "We are open 9-5 Mon-Fri.")
    retriever = KnowledgeRetriever(repository)

    for query in ["hours", "open", "we are open 9-5 Mon-Fri", "*"]:
        assert retriever.search(globex, query) == []

    results = retriever.search(acme, "when are you open")
    assert results and all(c.client_id == acme for c in results)


def test_empty_query_and_no_match_return_empty():
    repository = InMemoryKnowledgeRepository()
    client_id = uuid.uuid4()
    repository.add_text(client_id, "Shipping takes three days.")
    retriever = KnowledgeRetriever(repository)

    assert retriever.search(client_id, "") == []
    assert retriever.search(client_id, "   ") == []
    assert retriever.search(client_id, "refund policy") == []


def test_most_relevant_first_and_ties_by_chunk_index():
    repository = InMemoryKnowledgeRepository()
    client_id = uuid.uuid4()
    _doc(
        repository,
        client_id,
        [
            "billing questions go to accounts",
            "parking is free",
            "billing billing billing invoices",
            "billing questions go to accounts",
        ],
    )
    retriever = KnowledgeRetriever(repository, default_limit=5)

    results = retriever.search(client_id, "billing")

    assert results[0].chunk_index == 2
    tied = [c.chunk_index for c in results if c.content == "billing questions go to accounts"]
    assert tied == [0, 3]
    assert all("parking" not in c.content for c in results)


def test_limit_is_respected():
    repository = InMemoryKnowledgeRepository()
    client_id = uuid.uuid4()
    _doc(repository, client_id, [f"store number {i}" for i in range(6)])
    retriever = KnowledgeRetriever(repository)

    assert len(retriever.search(client_id, "store")) == 3
    assert len(retriever.search(client_id, "store", limit=5)) == 5
    assert len(retriever.search(client_id, "store", limit=None)) == 3
    assert retriever.search(client_id, "store", limit=0) == []


class _BrokenRepository:
    def search_chunks(self, client_id, query, limit):
        raise RetrievalDegradedError("connection refused")


class _LeakyRepository:
    def __init__(self, chunks):
        self.chunks = chunks

    def search_chunks(self, client_id, query, limit):
        return self.chunks


def test_store_failure_is_soft(caplog):
    retriever = KnowledgeRetriever(_BrokenRepository())

    with caplog.at_level("WARNING"):
        assert retriever.search(uuid.uuid4(), "hours") == []
        context, chunks = retriever.build_context(uuid.uuid4(), "hours")

    assert context == "" and chunks == []
    assert "degraded" in caplog.text


def test_search_strict_propagates_store_failure():
    retriever = KnowledgeRetriever(_BrokenRepository())
    with pytest.raises(RetrievalDegradedError):
        retriever.search_strict(uuid.uuid4(), "hours")


def test_rows_from_other_clients_are_dropped():
    client_id, other = uuid.uuid4(), uuid.uuid4()
    leaked = KnowledgeChunk(
        client_id=other, document_id=uuid.uuid4(), chunk_index=0, content="secret"
    )
    own = KnowledgeChunk(
        client_id=client_id, document_id=uuid.uuid4(), chunk_index=0, content="public"
    )
    retriever = KnowledgeRetriever(_LeakyRepository([leaked, own]))

    assert retriever.search(client_id, "anything") == [own]


def test_context_is_joined_and_capped():
    client_id = uuid.uuid4()
    chunks = [
        KnowledgeChunk(
            client_id=client_id, document_id=uuid.uuid4(), chunk_index=i, content=letter * 1500
        )
        for i, letter in enumerate("ab")
    ]
    retriever = KnowledgeRetriever(InMemoryKnowledgeRepository(), max_context_chars=2000)

    context = retriever.format_context(chunks)

    assert len(context) == 2000
    assert context.startswith("a" * 1500 + CONTEXT_SEPARATOR + "b")
