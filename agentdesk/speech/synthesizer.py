"""ElevenLabs text-to-speech client used by the voice channel."""

from __future__ import annotations

import base64
import logging
from typing import Protocol

import requests

from ..errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)

ELEVENLABS_API_URL = "https://api.elevenlabs.io/v1/text-to-speech/{voice_id}"


class SpeechSynthesizer(Protocol):
    def synthesize(self, text: str, voice_id: str, *, speed: float = 1.0) -> bytes: ...


class ElevenLabsSynthesizer:
    """Convert reply text to MP3 audio.

    Any failure (missing key, non-2xx, timeout, empty body) raises
    :class:`UpstreamUnavailableError`; the caller falls back to the telephony
    provider's own text-to-speech.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        model: str = "eleven_turbo_v2_5",
        timeout: float = 5.0,
        session: requests.Session | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._timeout = timeout
        self._session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self._api_key)

    def synthesize(self, text: str, voice_id: str, *, speed: float = 1.0) -> bytes:
        if not self._api_key:
            raise UpstreamUnavailableError("elevenlabs", "API key not configured")
        payload = {
            "text": text,
            "model_id": self._model,
            "voice_settings": {
                "stability": 0.5,
                "similarity_boost": 0.5,
                "style": 0.0,
                "use_speaker_boost": True,
                "speed": speed,
            },
        }
        try:
            resp = self._session.post(
                ELEVENLABS_API_URL.format(voice_id=voice_id),
                json=payload,
                headers={
                    "Accept": "audio/mpeg",
                    "xi-api-key": self._api_key,
                },
                timeout=self._timeout,
            )
        except requests.RequestException as exc:
            raise UpstreamUnavailableError("elevenlabs", str(exc) or "request failed") from exc
        if not resp.ok:
            raise UpstreamUnavailableError(
                "elevenlabs", f"HTTP {resp.status_code}", resp.status_code
            )
        if not resp.content:
            raise UpstreamUnavailableError("elevenlabs", "empty audio payload")
        logger.debug("Synthesized %d bytes of audio for voice %s", len(resp.content), voice_id)
        return resp.content


def audio_data_uri(audio: bytes, mime_type: str = "audio/mpeg") -> str:
    """Return ``audio`` as an inline ``data:`` URI for a ``<Play>`` directive."""

    return f"data:{mime_type};base64,{base64.b64encode(audio).decode('ascii')}"
