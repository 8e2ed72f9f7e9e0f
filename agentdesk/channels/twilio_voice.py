"""Telephony voice channel: one webhook invocation is one call-state transition.

No call state is kept in process. What the next invocation needs lives in the
provider's ``CallSid`` (keyed to a persisted conversation) and in the
``silence`` counter carried in the ``<Gather>`` action URL.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any
from urllib.parse import urlencode
from uuid import UUID

from twilio.twiml.voice_response import Gather, VoiceResponse

from ..agents.schemas import EffectiveVoice, ResolvedAgentConfig
from ..config import Settings
from ..conversations.service import CallSessionTracker
from ..errors import ConfigNotFoundError, UpstreamUnavailableError
from ..pipeline import ConversationPipeline
from ..speech.synthesizer import SpeechSynthesizer, audio_data_uri
from .base import InboundTurn
from .twilio_signature import TwilioWebhookAdapter

logger = logging.getLogger(__name__)

VOICE_WEBHOOK_PATH = "/api/telephony/voice"

TERMINAL_CALL_STATUSES = frozenset({"completed", "canceled", "failed", "busy", "no-answer"})

FALLBACK_VOICE = "alice"
NOT_CONFIGURED_TEXT = "Sorry, this number is not configured."
BAD_PARAMETERS_TEXT = "I'm sorry, there was an error with the call parameters. Please try again."
APOLOGY_TEXT = (
    "I'm sorry, I'm having technical difficulties. Please try again later. Goodbye!"
)
GREETING_TEMPLATE = "Hello! You've reached {client_name}. I'm your AI assistant. How can I help you today?"
LISTEN_PROMPT = "Please tell me how I can assist you."
REPROMPT_TEXT = "I didn't hear anything. Please tell me how I can help you."
FOLLOW_UP_PROMPT = "Is there anything else I can help you with?"
GOODBYE_TEXT = "Thank you for calling. Goodbye!"


class CallState(str, Enum):
    AWAITING_INPUT = "awaiting_input"
    PROCESSING = "processing"
    RESPONDED = "responded"
    TERMINAL = "terminal"


@dataclass
class VoiceTurnResult:
    state: CallState
    twiml: str
    conversation_id: UUID | None = None


class TwilioVoiceAdapter(TwilioWebhookAdapter):
    channel_name = "voice"

    def __init__(
        self,
        *,
        pipeline: ConversationPipeline,
        tracker: CallSessionTracker,
        synthesizer: SpeechSynthesizer,
        settings: Settings,
    ) -> None:
        self._pipeline = pipeline
        self._tracker = tracker
        self._synthesizer = synthesizer
        self._settings = settings
        self._auth_token = settings.twilio_auth_token

    # ------------------------------------------------------------------
    # ChannelAdapter

    def parse_incoming(self, payload: Mapping[str, Any]) -> InboundTurn:
        speech = (payload.get("SpeechResult") or "").strip()
        digits = (payload.get("Digits") or "").strip()
        silence_raw = payload.get("silence")
        silence: int | None = None
        if silence_raw not in (None, ""):
            try:
                silence = max(int(silence_raw), 0)
            except (TypeError, ValueError):
                silence = 0
        return InboundTurn(
            channel=self.channel_name,
            utterance=speech or digits,
            session_id=(payload.get("CallSid") or "").strip() or None,
            caller=(payload.get("From") or "").strip() or None,
            called=(payload.get("To") or "").strip() or None,
            metadata={
                "call_status": (payload.get("CallStatus") or "").strip().lower() or None,
                "silence": silence,
                "input": "speech" if speech else ("dtmf" if digits else None),
                "confidence": payload.get("Confidence"),
            },
        )

    def handle(self, payload: Mapping[str, Any]) -> str:
        return self.process(payload).twiml

    def process(self, payload: Mapping[str, Any]) -> VoiceTurnResult:
        """Run one transition; always returns well-formed TwiML."""

        try:
            turn = self.parse_incoming(payload)
            return self._transition(turn)
        except Exception:
            logger.exception("Voice webhook failed; ending call with an apology")
            return _apology(APOLOGY_TEXT)

    # ------------------------------------------------------------------
    # State machine

    def _transition(self, turn: InboundTurn) -> VoiceTurnResult:
        if not (turn.caller and turn.called and turn.session_id):
            logger.warning("Voice webhook missing From/To/CallSid")
            return _apology(BAD_PARAMETERS_TEXT)

        call_status = turn.metadata.get("call_status")
        if call_status in TERMINAL_CALL_STATUSES:
            return self._on_hangup(turn, call_status)

        try:
            config = self._pipeline.resolver.resolve_phone(turn.called, "voice")
        except ConfigNotFoundError as exc:
            logger.warning("Rejecting call to %s: %s", turn.called, exc)
            response = VoiceResponse()
            response.say(NOT_CONFIGURED_TEXT, voice=FALLBACK_VOICE)
            response.hangup()
            return VoiceTurnResult(CallState.TERMINAL, str(response))

        conversation_id = self._tracker.get_or_create_conversation(
            config.client.id,
            config.agent.id,
            turn.caller,
            turn.session_id,
            channel=self.channel_name,
        )
        if not turn.utterance:
            return self._on_empty_input(turn, config, conversation_id)
        return self._on_utterance(turn, config, conversation_id)

    def _on_hangup(self, turn: InboundTurn, call_status: str) -> VoiceTurnResult:
        try:
            config = self._pipeline.resolver.resolve_phone(turn.called, "voice")
        except ConfigNotFoundError:
            config = None
        if config is not None:
            self._tracker.end_conversation(config.client.id, turn.caller, turn.session_id)
        logger.info("Call %s finished with status %s", turn.session_id, call_status)
        response = VoiceResponse()
        response.hangup()
        return VoiceTurnResult(CallState.TERMINAL, str(response))

    def _on_empty_input(
        self, turn: InboundTurn, config: ResolvedAgentConfig, conversation_id: UUID
    ) -> VoiceTurnResult:
        voice = config.voice
        response = VoiceResponse()
        silence = turn.metadata.get("silence")
        if silence is None:
            greeting = GREETING_TEMPLATE.format(client_name=config.client.name)
            self._speak(response, greeting, voice)
            response.append(self._gather(voice, LISTEN_PROMPT, empty_turns=0))
            return VoiceTurnResult(CallState.AWAITING_INPUT, str(response), conversation_id)

        empty_turns = silence + 1
        if empty_turns >= self._settings.voice_max_empty_turns:
            logger.info(
                "Ending call %s after %d empty turn(s)", turn.session_id, empty_turns
            )
            response.say(GOODBYE_TEXT, voice=voice.voice, language=voice.language)
            response.hangup()
            self._tracker.end_conversation(config.client.id, turn.caller, turn.session_id)
            return VoiceTurnResult(CallState.TERMINAL, str(response), conversation_id)

        response.append(self._gather(voice, REPROMPT_TEXT, empty_turns=empty_turns))
        return VoiceTurnResult(CallState.AWAITING_INPUT, str(response), conversation_id)

    def _on_utterance(
        self, turn: InboundTurn, config: ResolvedAgentConfig, conversation_id: UUID
    ) -> VoiceTurnResult:
        metadata = {
            "channel": self.channel_name,
            "call_sid": turn.session_id,
            "input": turn.metadata.get("input"),
        }
        self._tracker.append_message(conversation_id, "user", turn.utterance, metadata)
        try:
            reply = self._pipeline.answer(config, turn.utterance, channel=self.channel_name)
        except UpstreamUnavailableError as exc:
            logger.error("Completion unavailable during call %s: %s", turn.session_id, exc)
            self._tracker.append_message(
                conversation_id,
                "assistant",
                APOLOGY_TEXT,
                {"channel": self.channel_name, "call_sid": turn.session_id, "error": True},
            )
            self._tracker.end_conversation(config.client.id, turn.caller, turn.session_id)
            result = _apology(APOLOGY_TEXT)
            result.conversation_id = conversation_id
            return result

        self._tracker.append_message(
            conversation_id,
            "assistant",
            reply.text,
            {"channel": self.channel_name, "call_sid": turn.session_id},
        )
        voice = config.voice
        response = VoiceResponse()
        self._speak(response, reply.text, voice)
        response.append(self._gather(voice, FOLLOW_UP_PROMPT, empty_turns=0))
        return VoiceTurnResult(CallState.RESPONDED, str(response), conversation_id)

    # ------------------------------------------------------------------
    # Rendering helpers

    def _speak(self, response: VoiceResponse, text: str, voice: EffectiveVoice) -> None:
        """Play synthesized audio, or fall back to the provider's own ``<Say>``."""

        if getattr(self._synthesizer, "enabled", True):
            try:
                audio = self._synthesizer.synthesize(text, voice.tts_voice_id, speed=voice.speed)
            except UpstreamUnavailableError as exc:
                logger.warning("Speech synthesis failed, falling back to <Say>: %s", exc)
            else:
                response.play(audio_data_uri(audio))
                return
        response.say(text, voice=voice.voice, language=voice.language)

    def _gather(self, voice: EffectiveVoice, prompt: str, *, empty_turns: int) -> Gather:
        gather = Gather(
            input="speech dtmf",
            action=self._action_url(empty_turns),
            method="POST",
            timeout=self._settings.voice_gather_timeout,
            speech_timeout="auto",
            language=voice.language,
            action_on_empty_result="true",
        )
        gather.say(prompt, voice=voice.voice, language=voice.language)
        return gather

    def _action_url(self, empty_turns: int) -> str:
        query = urlencode({"silence": empty_turns})
        return f"{self._settings.public_base_url or ''}{VOICE_WEBHOOK_PATH}?{query}"


def _apology(text: str) -> VoiceTurnResult:
    response = VoiceResponse()
    response.say(text, voice=FALLBACK_VOICE)
    response.hangup()
    return VoiceTurnResult(CallState.TERMINAL, str(response))
