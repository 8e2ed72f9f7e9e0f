import dataclasses

import pytest

from agentdesk.config import Settings


def test_defaults_from_empty_environment():
    settings = Settings.from_env({})

    assert settings.database_url is None
    assert settings.openai_api_key is None
    assert settings.openai_model == "gpt-4o-mini"
    assert settings.voice_max_empty_turns == 2
    assert settings.knowledge_result_limit == 3
    assert settings.chunk_size == 1000
    assert settings.cors_origins == ()


def test_values_are_parsed():
    settings = Settings.from_env(
        {
            "DATABASE_URL": "postgresql://db/agentdesk",
            "OPENAI_API_KEY": "sk-env-key-0123456789abc",
            "COMPLETION_TIMEOUT_SECONDS": "2.5",
            "VOICE_MAX_EMPTY_TURNS": "3",
            "PUBLIC_BASE_URL": "https://voice.example/",
            "ADMIN_UI_ORIGINS": "https://a.example, https://b.example,,",
            "CHAT_RATE_LIMIT": "5/second",
        }
    )

    assert settings.database_url == "postgresql://db/agentdesk"
    assert settings.completion_timeout == 2.5
    assert settings.voice_max_empty_turns == 3
    assert settings.public_base_url == "https://voice.example"
    assert settings.cors_origins == ("https://a.example", "https://b.example")
    assert settings.chat_rate_limit == "5/second"


def test_blank_values_fall_back_to_defaults():
    settings = Settings.from_env({"OPENAI_MODEL": "", "CHUNK_SIZE": "", "PUBLIC_BASE_URL": "/"})

    assert settings.openai_model == "gpt-4o-mini"
    assert settings.chunk_size == 1000
    assert settings.public_base_url is None


def test_invalid_number_is_rejected():
    with pytest.raises(ValueError):
        Settings.from_env({"VOICE_GATHER_TIMEOUT": "soon"})


def test_settings_are_frozen():
    with pytest.raises(dataclasses.FrozenInstanceError):
        Settings().openai_model = "other"


def test_webhook_and_worker_settings():
    settings = Settings.from_env({"TWILIO_AUTH_TOKEN": "tok", "PIPELINE_WORKERS": "32"})

    assert settings.twilio_auth_token == "tok"
    assert settings.pipeline_workers == 32
    assert Settings.from_env({}).twilio_auth_token is None
