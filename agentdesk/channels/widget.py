"""JSON channels: the embeddable web widget and the direct agent-chat API."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any
from uuid import uuid4

from ..config import Settings
from ..errors import ConfigNotFoundError, PayloadValidationError, UpstreamUnavailableError
from ..pipeline import ConversationPipeline
from .base import (
    APOLOGY_TEXT,
    ChannelAdapter,
    InboundTurn,
    optional_text,
    optional_uuid,
    required_text,
)

logger = logging.getLogger(__name__)


@dataclass
class ChatReply:
    status_code: int
    body: dict[str, Any]


class JsonChatAdapter(ChannelAdapter):
    """Shared request normalization for the JSON chat channels."""

    #: HTTP status used when the completion provider is unavailable.
    upstream_error_status: int = 500

    def __init__(self, *, pipeline: ConversationPipeline, settings: Settings) -> None:
        self._pipeline = pipeline
        self._settings = settings

    def handle(self, payload: Mapping[str, Any]) -> ChatReply:
        if not isinstance(payload, Mapping):
            return ChatReply(400, {"error": "Request body must be a JSON object"})
        try:
            turn = self.parse_incoming(payload)
        except PayloadValidationError as exc:
            return ChatReply(400, {"error": str(exc)})
        try:
            reply = self._pipeline.answer_for_agent(
                turn.utterance,
                channel=self.channel_name,
                client_id=turn.client_id,
                agent_id=turn.agent_id,
                prompt_override=turn.system_prompt,
            )
        except ConfigNotFoundError as exc:
            logger.warning("No %s configuration: %s", self.channel_name, exc)
            return ChatReply(404, {"error": str(exc)})
        except UpstreamUnavailableError as exc:
            logger.error("Completion unavailable on %s channel: %s", self.channel_name, exc)
            return self.render_error(turn, "Completion provider unavailable")
        except Exception:
            logger.exception("Unexpected failure on %s channel", self.channel_name)
            return self.render_error(turn, "Internal server error")
        return self.render_reply(turn, reply.text)

    def render_reply(self, turn: InboundTurn, text: str) -> ChatReply:
        return ChatReply(200, {"response": text})

    def render_error(self, turn: InboundTurn, error: str) -> ChatReply:
        return ChatReply(self.upstream_error_status, {"error": error, "response": APOLOGY_TEXT})


class WidgetAdapter(JsonChatAdapter):
    """Embeddable widget: errors still answer 200 with an apology payload."""

    channel_name = "widget"
    upstream_error_status = 200

    def parse_incoming(self, payload: Mapping[str, Any]) -> InboundTurn:
        message = required_text(
            payload, "message", max_length=self._settings.chat_max_message_length
        )
        client_id = optional_uuid(payload, "client_id")
        if client_id is None:
            raise PayloadValidationError("client_id is required")
        session_id = optional_text(
            payload, "session_id", max_length=self._settings.session_id_max_length
        )
        return InboundTurn(
            channel=self.channel_name,
            utterance=message,
            session_id=session_id or uuid4().hex,
            client_id=client_id,
            agent_id=optional_uuid(payload, "agent_id"),
            system_prompt=optional_text(payload, "system_prompt"),
        )

    def render_reply(self, turn: InboundTurn, text: str) -> ChatReply:
        return ChatReply(200, {"reply": text, "response": text, "session_id": turn.session_id})

    def render_error(self, turn: InboundTurn, error: str) -> ChatReply:
        body = {"error": error, "response": APOLOGY_TEXT, "session_id": turn.session_id}
        return ChatReply(self.upstream_error_status, body)


class AgentChatAdapter(JsonChatAdapter):
    """Direct agent-chat API: errors answer 500 with an apology payload."""

    channel_name = "chat"

    def parse_incoming(self, payload: Mapping[str, Any]) -> InboundTurn:
        message = required_text(
            payload, "message", max_length=self._settings.chat_max_message_length
        )
        agent_id = optional_uuid(payload, "agent_id")
        client_id = optional_uuid(payload, "client_id")
        if agent_id is None and client_id is None:
            raise PayloadValidationError("agent_id or client_id is required")
        return InboundTurn(
            channel=self.channel_name,
            utterance=message,
            session_id=optional_text(
                payload, "conversation_id", max_length=self._settings.session_id_max_length
            ),
            client_id=client_id,
            agent_id=agent_id,
            system_prompt=optional_text(payload, "system_prompt"),
        )
