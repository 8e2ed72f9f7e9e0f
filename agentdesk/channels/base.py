"""Base abstractions for channel adapters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from ..errors import PayloadValidationError

APOLOGY_TEXT = (
    "I apologize, but I'm experiencing technical difficulties. "
    "Please try again in a moment."
)


@dataclass
class InboundTurn:
    """Transport-independent view of one inbound message or utterance."""

    channel: str
    utterance: str
    session_id: str | None = None
    client_id: UUID | None = None
    agent_id: UUID | None = None
    caller: str | None = None
    called: str | None = None
    system_prompt: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


class ChannelAdapter(ABC):
    """Abstract base class encapsulating channel-specific behaviour."""

    #: Lowercase channel identifier used in routes and configuration.
    channel_name: str

    @abstractmethod
    def parse_incoming(self, payload: Mapping[str, Any]) -> InboundTurn:
        """Convert a transport payload into an :class:`InboundTurn`."""

    @abstractmethod
    def handle(self, payload: Mapping[str, Any]) -> Any:
        """Process one inbound request and return the rendered response."""

    def verify_signature(
        self,
        url: str,
        params: Mapping[str, str],
        headers: Mapping[str, str],
    ) -> bool:
        """Validate authenticity of the webhook payload.

        Adapters can override this to implement signature checks. The default
        implementation returns ``True``.
        """

        return True


def optional_uuid(payload: Mapping[str, Any], key: str) -> UUID | None:
    value = payload.get(key)
    if value in (None, ""):
        return None
    try:
        return UUID(str(value))
    except ValueError as exc:
        raise PayloadValidationError(f"{key} must be a valid UUID") from exc


def required_text(payload: Mapping[str, Any], key: str, *, max_length: int) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise PayloadValidationError(f"{key} is required")
    value = value.strip()
    if len(value) > max_length:
        raise PayloadValidationError(f"{key} must be at most {max_length} characters")
    return value


def optional_text(payload: Mapping[str, Any], key: str, *, max_length: int | None = None) -> str | None:
    value = payload.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise PayloadValidationError(f"{key} must be a string")
    value = value.strip()
    if max_length is not None and len(value) > max_length:
        raise PayloadValidationError(f"{key} must be at most {max_length} characters")
    return value or None
