"""Telephony SMS channel."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from twilio.twiml.messaging_response import MessagingResponse

from ..conversations.service import CallSessionTracker
from ..errors import ConfigNotFoundError, UpstreamUnavailableError
from ..pipeline import ConversationPipeline
from .base import APOLOGY_TEXT, InboundTurn
from .twilio_signature import TwilioWebhookAdapter

logger = logging.getLogger(__name__)


class TwilioSmsAdapter(TwilioWebhookAdapter):
    """Answer inbound text messages with a ``<Message>`` reply.

    All messages exchanged between one sender and one number share a
    conversation keyed by ``sms:<number>``.
    """

    channel_name = "sms"

    def __init__(
        self,
        *,
        pipeline: ConversationPipeline,
        tracker: CallSessionTracker,
        auth_token: str | None = None,
    ) -> None:
        self._pipeline = pipeline
        self._tracker = tracker
        self._auth_token = auth_token

    def parse_incoming(self, payload: Mapping[str, Any]) -> InboundTurn:
        called = (payload.get("To") or "").strip() or None
        return InboundTurn(
            channel=self.channel_name,
            utterance=(payload.get("Body") or "").strip(),
            session_id=f"sms:{called}" if called else None,
            caller=(payload.get("From") or "").strip() or None,
            called=called,
            metadata={"message_sid": payload.get("MessageSid")},
        )

    def handle(self, payload: Mapping[str, Any]) -> str:
        response = MessagingResponse()
        try:
            turn = self.parse_incoming(payload)
            reply = self._reply(turn)
        except Exception:
            logger.exception("SMS webhook failed")
            reply = APOLOGY_TEXT
        if reply:
            response.message(reply)
        return str(response)

    def _reply(self, turn: InboundTurn) -> str | None:
        if not (turn.caller and turn.called and turn.utterance):
            logger.warning("SMS webhook missing From/To/Body")
            return None
        try:
            config = self._pipeline.resolver.resolve_phone(turn.called, self.channel_name)
        except ConfigNotFoundError as exc:
            logger.warning("Ignoring SMS to %s: %s", turn.called, exc)
            return None

        conversation_id = self._tracker.get_or_create_conversation(
            config.client.id,
            config.agent.id,
            turn.caller,
            turn.session_id,
            channel=self.channel_name,
        )
        metadata = {
            "channel": self.channel_name,
            "message_sid": turn.metadata.get("message_sid"),
            "phone_number": turn.caller,
        }
        self._tracker.append_message(conversation_id, "user", turn.utterance, metadata)
        try:
            reply = self._pipeline.answer(config, turn.utterance, channel=self.channel_name)
        except UpstreamUnavailableError as exc:
            logger.error("Completion unavailable for SMS from %s: %s", turn.caller, exc)
            return APOLOGY_TEXT
        self._tracker.append_message(
            conversation_id, "assistant", reply.text, {"channel": self.channel_name}
        )
        return reply.text
