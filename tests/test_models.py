from __future__ import annotations

import uuid

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from agentdesk.models import (
    Agent,
    Base,
    ChannelBinding,
    Client,
    Conversation,
    KnowledgeChunk,
    KnowledgeDocument,
    Message,
    get_engine,
)


@pytest.fixture
def engine():
    return get_engine("sqlite+pysqlite:///:memory:")


@pytest.fixture
def session(engine):
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    with factory() as session:
        yield session
        session.rollback()
    Base.metadata.drop_all(engine)


def _tenant(session: Session) -> tuple[Client, Agent]:
    client = Client(id=uuid.uuid4(), name="Acme")
    session.add(client)
    session.flush()
    agent = Agent(id=uuid.uuid4(), client_id=client.id, name="Agent A", is_default=True)
    session.add(agent)
    session.flush()
    return client, agent


def test_can_persist_tenant_graph(session: Session) -> None:
    client, agent = _tenant(session)
    binding = ChannelBinding(
        id=uuid.uuid4(), phone_number="+18447890436", client_id=client.id, agent_id=agent.id
    )
    document = KnowledgeDocument(
        id=uuid.uuid4(), client_id=client.id, title="Hours", content="9-5", size=3
    )
    session.add_all([binding, document])
    session.flush()
    session.add(
        KnowledgeChunk(
            id=uuid.uuid4(),
            client_id=client.id,
            document_id=document.id,
            chunk_index=0,
            content="9-5",
        )
    )
    session.flush()

    assert client.agents == [agent]
    assert binding.is_active is True
    assert binding.voice_enabled is True
    assert binding.sms_enabled is False
    assert agent.voice_settings == {}


def test_one_active_binding_per_number(session: Session) -> None:
    client, agent = _tenant(session)
    session.add(
        ChannelBinding(
            id=uuid.uuid4(), phone_number="+18447890436", client_id=client.id, agent_id=agent.id
        )
    )
    session.commit()

    session.add(
        ChannelBinding(
            id=uuid.uuid4(),
            phone_number="+18447890436",
            client_id=client.id,
            agent_id=agent.id,
            is_active=False,
        )
    )
    session.commit()

    with pytest.raises(IntegrityError):
        session.add(
            ChannelBinding(
                id=uuid.uuid4(),
                phone_number="+18447890436",
                client_id=client.id,
                agent_id=agent.id,
            )
        )
        session.commit()
    session.rollback()


def test_one_default_agent_per_client(session: Session) -> None:
    client, _ = _tenant(session)
    session.commit()

    session.add(Agent(id=uuid.uuid4(), client_id=client.id, name="Second"))
    session.commit()

    with pytest.raises(IntegrityError):
        session.add(Agent(id=uuid.uuid4(), client_id=client.id, name="Third", is_default=True))
        session.commit()
    session.rollback()


def test_conversation_session_key_is_unique(session: Session) -> None:
    client, agent = _tenant(session)

    def _conversation() -> Conversation:
        return Conversation(
            id=uuid.uuid4(),
            client_id=client.id,
            agent_id=agent.id,
            channel="voice",
            phone_number="+15555550100",
            external_session_id="CA1",
        )

    first = _conversation()
    session.add(first)
    session.flush()
    session.add(Message(id=uuid.uuid4(), conversation_id=first.id, role="user", content="hi"))
    session.commit()
    assert first.status == "active"

    with pytest.raises(IntegrityError):
        session.add(_conversation())
        session.commit()
    session.rollback()
