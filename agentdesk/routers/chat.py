"""Widget and agent-chat JSON endpoints."""

import json
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from slowapi import Limiter

from ..container import ServiceContainer
from . import get_container


async def _json_body(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return json.loads(body)
    except ValueError:
        return None


async def _dispatch(container: ServiceContainer, channel: str, request: Request) -> JSONResponse:
    payload = await _json_body(request)
    reply = await run_in_threadpool(container.channel(channel).handle, payload)
    return JSONResponse(status_code=reply.status_code, content=reply.body)


def build_router(limiter: Limiter, rate_limit: str) -> APIRouter:
    """Return the chat router; the public widget route is rate limited per IP."""

    router = APIRouter(tags=["chat"])

    @router.post("/api/widget/chat")
    @limiter.limit(rate_limit)
    async def widget_chat(
        request: Request, container: ServiceContainer = Depends(get_container)
    ) -> JSONResponse:
        """Answer a widget message; a session id is generated when absent."""
        return await _dispatch(container, "widget", request)

    @router.post("/api/agents/chat")
    async def agent_chat(
        request: Request, container: ServiceContainer = Depends(get_container)
    ) -> JSONResponse:
        """Answer as an explicit agent, or as the client's default agent."""
        return await _dispatch(container, "chat", request)

    return router
