"""FastAPI application wiring for agentdesk.

``create_app`` builds the service container from :class:`Settings`, installs
logging, optional CORS for the widget origins, Prometheus metrics and
rate limiting, and mounts the telephony, chat and knowledge routers.
Run with ``uvicorn agentdesk.main:app``.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from .__version__ import __build_date__, __commit_sha__, __version__
from .app_logging import init_logging
from .config import Settings
from .container import ServiceContainer, build_container
from .routers import chat, knowledge, telephony

logger = logging.getLogger(__name__)


def get_client_ip(request: Request) -> str:
    """Extract a best-effort client IP for rate limiting.

    Prefer ``X-Forwarded-For`` (first hop) if present, otherwise use the
    socket peer address.
    """
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def create_app(
    settings: Settings | None = None, container: ServiceContainer | None = None
) -> FastAPI:
    settings = settings or (container.settings if container else Settings.from_env())
    container = container or build_container(settings)

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        container.pipeline.shutdown()

    app = FastAPI(title="agentdesk", version=__version__, lifespan=lifespan)
    init_logging(app)
    app.state.container = container

    limiter = Limiter(key_func=get_client_ip)
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.cors_origins),
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(telephony.router)
    app.include_router(chat.build_router(limiter, settings.chat_rate_limit))
    app.include_router(knowledge.router)

    @app.get("/api/health")
    async def health():
        """Liveness/readiness probe with a minimal JSON body."""
        return {"status": "ok"}

    @app.get("/api/version")
    async def version():
        """Return version information for the application."""
        return {
            "version": __version__,
            "build_date": __build_date__,
            "commit_sha": __commit_sha__,
        }

    Instrumentator().instrument(app).expose(
        app, include_in_schema=False, endpoint="/api/metrics"
    )
    logger.info("agentdesk %s started (database=%s)", __version__, bool(settings.database_url))
    return app


app = create_app()
