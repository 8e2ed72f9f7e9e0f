"""Domain errors shared by the orchestration pipeline and the routers."""

from __future__ import annotations


class ConfigNotFoundError(LookupError):
    """Raised when no active binding, client or agent matches a lookup."""


class UpstreamUnavailableError(RuntimeError):
    """Raised when the completion or speech provider fails or times out."""

    def __init__(self, provider: str, message: str, status_code: int | None = None):
        super().__init__(f"{provider}: {message}")
        self.provider = provider
        self.status_code = status_code


class RetrievalDegradedError(RuntimeError):
    """Raised by knowledge stores when the backing database is unreachable."""


class PayloadValidationError(ValueError):
    """Raised when a request is missing required fields."""


__all__ = [
    "ConfigNotFoundError",
    "PayloadValidationError",
    "RetrievalDegradedError",
    "UpstreamUnavailableError",
]
