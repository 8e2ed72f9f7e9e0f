import dataclasses
import threading
import uuid

import pytest

from agentdesk.errors import ConfigNotFoundError, UpstreamUnavailableError

from conftest import HOURS_TEXT


def test_answer_for_client_uses_knowledge(harness):
    pipeline = harness.build().pipeline

    reply = pipeline.answer_for_agent(
        "What are your hours?", channel="chat", client_id=harness.acme.client.id
    )

    assert reply.text == "We're open 9-5, Monday through Friday."
    assert reply.config.agent.id == harness.acme.agent.id
    assert [c.content for c in reply.chunks] == [HOURS_TEXT]


def test_resolution_and_retrieval_run_concurrently(harness, monkeypatch):
    container = harness.build()
    both_started = threading.Barrier(2, timeout=5)
    resolve_agent = container.resolver.resolve_agent
    build_context = container.retriever.build_context

    def _resolve(**kwargs):
        both_started.wait()
        return resolve_agent(**kwargs)

    def _context(client_id, query):
        both_started.wait()
        return build_context(client_id, query)

    monkeypatch.setattr(container.resolver, "resolve_agent", _resolve)
    monkeypatch.setattr(container.retriever, "build_context", _context)

    reply = container.pipeline.answer_for_agent(
        "hours", channel="widget", client_id=harness.acme.client.id
    )

    assert reply.text


def test_unknown_client_raises_config_not_found(harness):
    pipeline = harness.build().pipeline

    with pytest.raises(ConfigNotFoundError):
        pipeline.answer_for_agent("hi", channel="widget", client_id=uuid.uuid4())
    assert harness.completion.calls == []


def test_agent_only_request_resolves_client_first(harness):
    pipeline = harness.build().pipeline

    reply = pipeline.answer_for_agent(
        "What are your hours?", channel="chat", agent_id=harness.acme.agent.id
    )

    assert "9-5 Mon-Fri" in harness.completion.calls[0]["system_prompt"]
    assert reply.chunks


def test_missing_key_surfaces_as_upstream_error(harness):
    harness.settings = dataclasses.replace(harness.settings, openai_api_key=None)
    pipeline = harness.build().pipeline

    with pytest.raises(UpstreamUnavailableError):
        pipeline.answer_for_agent("hi", channel="chat", client_id=harness.acme.client.id)
    assert harness.completion.calls == []


def test_worker_pool_is_sized_from_settings(harness):
    harness.settings = dataclasses.replace(harness.settings, pipeline_workers=7)

    pipeline = harness.build().pipeline

    assert pipeline._executor._max_workers == 7
