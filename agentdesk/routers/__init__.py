"""HTTP routers for the telephony, chat and knowledge endpoints."""

from __future__ import annotations

from fastapi import Request

from ..container import ServiceContainer


def get_container(request: Request) -> ServiceContainer:
    """FastAPI dependency returning the container built by ``create_app``."""
    return request.app.state.container
