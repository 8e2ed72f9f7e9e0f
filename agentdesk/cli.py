"""``agentdesk-ingest``: load text documents into a client's knowledge base.

Markdown and plain-text files are read as UTF-8 and chunked into fixed-size
slices. ``--search`` runs a keyword query against the same store, which is
handy to check what the voice and chat channels will retrieve.
"""

from __future__ import annotations

import argparse
import logging
import sys
import uuid
from pathlib import Path

from .config import Settings
from .core.db import connection_factory
from .errors import RetrievalDegradedError
from .knowledge import (
    KnowledgeIngestor,
    KnowledgeRetriever,
    PostgresKnowledgeRepository,
)
from .knowledge.repository import KnowledgeRepository
from .knowledge.schemas import DocumentCreate

DOC_EXTENSIONS = {".md", ".txt"}


def _echo(message: str) -> None:
    sys.stdout.write(f"{message}\n")


def _iter_docs(doc_path: Path) -> list[Path]:
    """Return Markdown and text files under ``doc_path`` (recursively)."""

    if doc_path.is_file():
        return [doc_path] if doc_path.suffix.lower() in DOC_EXTENSIONS else []
    return [
        p
        for p in sorted(doc_path.rglob("*"))
        if p.is_file() and p.suffix.lower() in DOC_EXTENSIONS
    ]


def ingest_paths(
    repository: KnowledgeRepository,
    client_id: uuid.UUID,
    paths: list[Path],
    *,
    chunk_size: int,
    source_url: str | None = None,
) -> int:
    """Ingest every file in ``paths``; return the number of chunks created."""

    log = logging.getLogger("agentdesk.ingest")
    ingestor = KnowledgeIngestor(repository, chunk_size=chunk_size)
    total = 0
    for path in paths:
        content = path.read_text(encoding="utf-8")
        if not content.strip():
            log.warning("skipping empty file %s", path)
            continue
        result = ingestor.ingest(
            DocumentCreate(
                client_id=client_id,
                title=path.stem,
                content=content,
                source_type="file",
                source_url=source_url or path.as_posix(),
            )
        )
        log.info("ingested %s (%d chunks)", path, result.chunks_created)
        total += result.chunks_created
    return total


def main(argv: list[str] | None = None, *, repository: KnowledgeRepository | None = None) -> int:
    """Parse CLI arguments and execute the requested ingestion tasks."""

    parser = argparse.ArgumentParser(description="Ingest documents into a knowledge base")
    parser.add_argument("--client-id", required=True, help="Client identifier (UUID)")
    parser.add_argument(
        "--docs",
        help="File or directory containing Markdown/text files",
    )
    parser.add_argument(
        "--file",
        dest="files",
        action="append",
        default=[],
        help="File to ingest (may be specified multiple times)",
    )
    parser.add_argument("--source-url", help="Source URL recorded on every document")
    parser.add_argument("--search", help="Run a keyword search instead of ingesting")
    parser.add_argument("--limit", type=int, default=3, help="Number of search results")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(message)s")
    log = logging.getLogger("agentdesk.ingest")

    try:
        client_id = uuid.UUID(args.client_id)
    except ValueError:
        parser.error("--client-id must be a valid UUID")

    settings = Settings.from_env()
    if repository is None:
        if not settings.database_url:
            parser.error("DATABASE_URL is not configured")
        repository = PostgresKnowledgeRepository(connection_factory(settings.database_url))

    try:
        if args.search:
            retriever = KnowledgeRetriever(repository)
            for chunk in retriever.search_strict(client_id, args.search, args.limit):
                _echo(f"[{chunk.title or 'Unknown'} #{chunk.chunk_index}] {chunk.content}")
            return 0

        paths = [Path(p) for p in args.files]
        if args.docs:
            paths.extend(_iter_docs(Path(args.docs)))
        if not paths:
            parser.error("nothing to ingest: pass --docs or --file")
        total = ingest_paths(
            repository,
            client_id,
            paths,
            chunk_size=settings.chunk_size,
            source_url=args.source_url,
        )
    except RetrievalDegradedError as exc:
        log.error("knowledge store unavailable: %s", exc)
        return 1
    _echo(f"{total} chunk(s) created")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI execution
    sys.exit(main())
