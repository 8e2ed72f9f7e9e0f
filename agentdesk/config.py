"""Process-wide settings loaded once from the environment.

``Settings.from_env`` reads the variables below (after ``load_dotenv``) and the
resulting frozen instance is handed to each component when the service
container is built. Nothing else in the package reads ``os.environ``.

Environment variables: DATABASE_URL, OPENAI_API_KEY, OPENAI_MODEL,
OPENAI_KEY_PREFIX, ELEVENLABS_API_KEY, ELEVENLABS_VOICE_ID, ELEVENLABS_MODEL,
COMPLETION_TIMEOUT_SECONDS, TTS_TIMEOUT_SECONDS, PUBLIC_BASE_URL,
VOICE_MAX_EMPTY_TURNS, VOICE_GATHER_TIMEOUT, KNOWLEDGE_RESULT_LIMIT,
CHUNK_SIZE, CHAT_MAX_MESSAGE_LENGTH, SESSION_ID_MAX_LENGTH, ADMIN_UI_ORIGINS,
CHAT_RATE_LIMIT, TWILIO_AUTH_TOKEN, PIPELINE_WORKERS.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field

from dotenv import load_dotenv


def _int(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    return float(raw)


@dataclass(frozen=True)
class Settings:
    """Credentials and tunables shared by every request."""

    database_url: str | None = None
    openai_api_key: str | None = None
    openai_model: str = "gpt-4o-mini"
    openai_key_prefix: str = "sk-"
    openai_key_min_length: int = 20
    elevenlabs_api_key: str | None = None
    elevenlabs_voice_id: str = "9BWtsMINqrJLrRacOk9x"
    elevenlabs_model: str = "eleven_turbo_v2_5"
    completion_timeout: float = 8.0
    tts_timeout: float = 5.0
    public_base_url: str | None = None
    voice_max_empty_turns: int = 2
    voice_gather_timeout: int = 5
    knowledge_result_limit: int = 3
    chunk_size: int = 1000
    chat_max_message_length: int = 5000
    session_id_max_length: int = 100
    chat_rate_limit: str = "30/minute"
    twilio_auth_token: str | None = None
    pipeline_workers: int = 16
    cors_origins: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "Settings":
        """Build settings from ``env`` (defaults to ``os.environ``)."""

        if env is None:
            load_dotenv()
            env = os.environ
        origins = env.get("ADMIN_UI_ORIGINS") or ""
        return cls(
            database_url=env.get("DATABASE_URL") or None,
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            openai_model=env.get("OPENAI_MODEL") or cls.openai_model,
            openai_key_prefix=env.get("OPENAI_KEY_PREFIX") or cls.openai_key_prefix,
            elevenlabs_api_key=env.get("ELEVENLABS_API_KEY") or None,
            elevenlabs_voice_id=env.get("ELEVENLABS_VOICE_ID") or cls.elevenlabs_voice_id,
            elevenlabs_model=env.get("ELEVENLABS_MODEL") or cls.elevenlabs_model,
            completion_timeout=_float(env, "COMPLETION_TIMEOUT_SECONDS", cls.completion_timeout),
            tts_timeout=_float(env, "TTS_TIMEOUT_SECONDS", cls.tts_timeout),
            public_base_url=(env.get("PUBLIC_BASE_URL") or "").rstrip("/") or None,
            voice_max_empty_turns=_int(env, "VOICE_MAX_EMPTY_TURNS", cls.voice_max_empty_turns),
            voice_gather_timeout=_int(env, "VOICE_GATHER_TIMEOUT", cls.voice_gather_timeout),
            knowledge_result_limit=_int(env, "KNOWLEDGE_RESULT_LIMIT", cls.knowledge_result_limit),
            chunk_size=_int(env, "CHUNK_SIZE", cls.chunk_size),
            chat_max_message_length=_int(
                env, "CHAT_MAX_MESSAGE_LENGTH", cls.chat_max_message_length
            ),
            session_id_max_length=_int(env, "SESSION_ID_MAX_LENGTH", cls.session_id_max_length),
            chat_rate_limit=env.get("CHAT_RATE_LIMIT") or cls.chat_rate_limit,
            twilio_auth_token=env.get("TWILIO_AUTH_TOKEN") or None,
            pipeline_workers=_int(env, "PIPELINE_WORKERS", cls.pipeline_workers),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
        )
