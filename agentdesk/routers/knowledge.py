"""Knowledge base search and document ingestion endpoints."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from ..container import ServiceContainer
from ..errors import RetrievalDegradedError
from ..knowledge import schemas
from . import get_container

logger = logging.getLogger(__name__)

router = APIRouter(tags=["knowledge"])


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


async def _payload(request: Request) -> dict[str, Any] | None:
    try:
        body = await request.json()
    except ValueError:
        return None
    return body if isinstance(body, dict) else None


@router.post("/api/knowledge/search")
async def search_knowledge(
    request: Request, container: ServiceContainer = Depends(get_container)
) -> JSONResponse:
    """Keyword search over one client's chunks."""
    body = await _payload(request)
    if body is None:
        return _error(400, "Request body must be a JSON object")
    try:
        req = schemas.KnowledgeSearchRequest.model_validate(body)
    except ValidationError as exc:
        return _error(400, exc.errors()[0]["msg"])
    if req.client_id is None or not (req.query and req.query.strip()):
        return _error(400, "Missing clientId or query")

    retriever = container.retriever
    try:
        chunks = await run_in_threadpool(
            retriever.search_strict, req.client_id, req.query, req.limit
        )
    except RetrievalDegradedError as exc:
        logger.error("Knowledge search failed for client %s: %s", req.client_id, exc)
        return _error(500, "Failed to search knowledge base")

    response = schemas.KnowledgeSearchResponse(
        results=[
            schemas.KnowledgeSearchResult(
                content=c.content,
                source=c.title or c.metadata.get("title") or "Unknown",
                chunk_index=c.chunk_index,
            )
            for c in chunks
        ],
        context=retriever.format_context(chunks),
        count=len(chunks),
    )
    return JSONResponse(content=response.model_dump(mode="json", by_alias=True))


@router.post("/api/knowledge/documents", status_code=201)
async def ingest_document(
    request: Request, container: ServiceContainer = Depends(get_container)
) -> JSONResponse:
    """Chunk a text document into the client's knowledge base."""
    body = await _payload(request)
    if body is None:
        return _error(400, "Request body must be a JSON object")
    try:
        payload = schemas.DocumentCreate.model_validate(body)
    except ValidationError as exc:
        first = exc.errors()[0]
        field = ".".join(str(p) for p in first["loc"])
        return _error(400, f"{field}: {first['msg']}")
    try:
        result = await run_in_threadpool(container.ingestor.ingest, payload)
    except RetrievalDegradedError as exc:
        logger.error("Document ingestion failed for client %s: %s", payload.client_id, exc)
        return _error(500, "Failed to store document")
    return JSONResponse(status_code=201, content=result.model_dump(mode="json"))
