import logging
import pathlib
import sys
import uuid
from dataclasses import dataclass, field
from typing import Callable

import pytest
from fastapi import FastAPI, Request

sys.path.append(str(pathlib.Path(__file__).resolve().parents[1]))
from agentdesk.agents import schemas as agent_schemas
from agentdesk.agents.repository import InMemoryAgentRepository
from agentdesk.app_logging import init_logging
from agentdesk.config import Settings
from agentdesk.container import ServiceContainer, build_container
from agentdesk.conversations.repository import InMemoryConversationRepository
from agentdesk.errors import UpstreamUnavailableError
from agentdesk.knowledge.repository import InMemoryKnowledgeRepository

ACME_NUMBER = "+18447890436"
CALLER = "+15555550100"
PROCESS_KEY = "sk-process-default-key-0123456789"
AGENT_KEY = "sk-agent-override-key-0123456789"
HOURS_TEXT = "Our hours: we are open 9-5 Mon-Fri."


class FakeCompletionClient:
    """Records every call; answers via ``responder`` or raises ``error``."""

    def __init__(self, responder: Callable[..., str] | None = None):
        self.calls: list[dict] = []
        self.responder = responder or (lambda **kw: f"Echo: {kw['user_message']}")
        self.error: Exception | None = None

    def complete(self, **kwargs) -> str:
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.responder(**kwargs)

    def fail_with_status(self, status: int = 500) -> None:
        self.error = UpstreamUnavailableError("openai", f"HTTP {status}", status)


class FakeSynthesizer:
    def __init__(self, *, enabled: bool = True, fail: bool = False):
        self.enabled = enabled
        self.fail = fail
        self.calls: list[tuple[str, str, float]] = []

    def synthesize(self, text: str, voice_id: str, *, speed: float = 1.0) -> bytes:
        self.calls.append((text, voice_id, speed))
        if self.fail:
            raise UpstreamUnavailableError("elevenlabs", "HTTP 503", 503)
        return b"ID3-fake-mp3"


def knowledge_aware_responder(**kwargs) -> str:
    """Answer with the hours when the knowledge block carries them."""

    if "9-5 Mon-Fri" in kwargs["system_prompt"]:
        return "We're open 9-5, Monday through Friday."
    return "I'm providing general guidance: please check our website."


@dataclass
class Tenant:
    client: agent_schemas.Client
    agent: agent_schemas.Agent
    binding: agent_schemas.ChannelBinding | None = None
    extra: dict = field(default_factory=dict)


@dataclass
class Harness:
    settings: Settings
    agents: InMemoryAgentRepository
    knowledge: InMemoryKnowledgeRepository
    conversations: InMemoryConversationRepository
    completion: FakeCompletionClient
    synthesizer: FakeSynthesizer
    acme: Tenant
    container: ServiceContainer | None = None

    def build(self) -> ServiceContainer:
        self.container = build_container(
            self.settings,
            agents=self.agents,
            knowledge=self.knowledge,
            conversations=self.conversations,
            completion_client=self.completion,
            synthesizer=self.synthesizer,
        )
        return self.container


def make_settings(**overrides) -> Settings:
    values = {
        "openai_api_key": PROCESS_KEY,
        "public_base_url": "https://agentdesk.example",
        "elevenlabs_voice_id": "voice-default",
    }
    values.update(overrides)
    return Settings(**values)


def seed_acme(
    agents: InMemoryAgentRepository,
    *,
    binding_active: bool = True,
    voice_enabled: bool = True,
    sms_enabled: bool = True,
    agent_key: str | None = None,
) -> Tenant:
    client = agents.add_client(agent_schemas.Client(id=uuid.uuid4(), name="Acme"))
    agent = agents.add_agent(
        agent_schemas.Agent(
            id=uuid.uuid4(),
            client_id=client.id,
            name="Agent A",
            system_prompt="You are Acme support.",
            completion_api_key=agent_key,
            is_default=True,
        )
    )
    binding = agents.add_binding(
        agent_schemas.ChannelBinding(
            id=uuid.uuid4(),
            phone_number=ACME_NUMBER,
            client_id=client.id,
            agent_id=agent.id,
            is_active=binding_active,
            voice_enabled=voice_enabled,
            sms_enabled=sms_enabled,
        )
    )
    return Tenant(client=client, agent=agent, binding=binding)


@pytest.fixture
def harness() -> Harness:
    agents = InMemoryAgentRepository()
    knowledge = InMemoryKnowledgeRepository()
    acme = seed_acme(agents)
    knowledge.add_text(acme.client.id, HOURS_TEXT, title="Opening hours")
    return Harness(
        settings=make_settings(),
        agents=agents,
        knowledge=knowledge,
        conversations=InMemoryConversationRepository(),
        completion=FakeCompletionClient(knowledge_aware_responder),
        synthesizer=FakeSynthesizer(),
        acme=acme,
    )


@pytest.fixture
def api_client(harness, monkeypatch, tmp_path):
    """Return a factory building a ``TestClient`` over the harness."""

    from starlette.testclient import TestClient

    from agentdesk.main import create_app

    monkeypatch.setenv("LOG_DIR", str(tmp_path / "logs"))

    def _client() -> TestClient:
        container = harness.container or harness.build()
        return TestClient(create_app(harness.settings, container))

    return _client


@pytest.fixture
def app_factory(monkeypatch):
    def _create_app(log_dir: str, log_request_bodies: bool = False):
        """Create a FastAPI app with logging initialised."""
        monkeypatch.setenv("LOG_DIR", str(log_dir))
        if log_request_bodies:
            monkeypatch.setenv("LOG_REQUEST_BODIES", "true")
        app = FastAPI()

        @app.post("/echo")
        async def echo(request: Request):
            return await request.json()

        @app.post("/form")
        async def form(request: Request):
            data = await request.form()
            return {"fields": len(data)}

        init_logging(app)
        return app

    return _create_app


@pytest.fixture(autouse=True)
def _reset_agentdesk_logger():
    yield
    logging.getLogger("agentdesk").handlers.clear()
