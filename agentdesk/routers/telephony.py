"""Telephony webhooks (voice and SMS).

Both routes answer HTTP 200 with ``text/xml`` call-control markup; the
adapters turn every failure into a spoken or texted apology. Requests whose
signature does not verify are rejected with 401 before any work is done.
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool

from ..container import ServiceContainer
from . import get_container

logger = logging.getLogger(__name__)

router = APIRouter(tags=["telephony"])


async def _form_params(request: Request) -> dict[str, str]:
    try:
        form = await request.form()
    except Exception as exc:
        logger.warning("Unreadable telephony webhook body: %s", exc)
        return {}
    return {key: value for key, value in form.items() if isinstance(value, str)}


def _signed_url(request: Request, container: ServiceContainer) -> str:
    """URL the provider signed: the public base URL when one is configured."""
    base_url = container.settings.public_base_url
    if not base_url:
        return str(request.url)
    query = request.url.query
    return f"{base_url}{request.url.path}" + (f"?{query}" if query else "")


async def _dispatch(request: Request, container: ServiceContainer, channel: str) -> Response:
    adapter = container.channel(channel)
    form = await _form_params(request)
    if not adapter.verify_signature(_signed_url(request, container), form, request.headers):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature")
    params: dict[str, Any] = dict(request.query_params)
    params.update(form)
    twiml = await run_in_threadpool(adapter.handle, params)
    return Response(content=twiml, media_type="text/xml")


@router.post("/api/telephony/voice")
async def voice_webhook(
    request: Request, container: ServiceContainer = Depends(get_container)
) -> Response:
    """Advance the call by one turn and return the next TwiML document."""
    return await _dispatch(request, container, "voice")


@router.post("/api/telephony/sms")
async def sms_webhook(
    request: Request, container: ServiceContainer = Depends(get_container)
) -> Response:
    """Answer an inbound SMS with a ``<Message>`` reply."""
    return await _dispatch(request, container, "sms")
