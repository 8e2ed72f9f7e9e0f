from types import SimpleNamespace

import httpx
import pytest
from openai import APIConnectionError, APIStatusError

from agentdesk.agents.prompts import KNOWLEDGE_HEADER, PromptTemplateStore
from agentdesk.errors import UpstreamUnavailableError
from agentdesk.llm import OpenAICompletionClient, ResponseGenerator

from conftest import PROCESS_KEY, FakeCompletionClient


def test_knowledge_block_only_when_context_present():
    client = FakeCompletionClient(lambda **kw: "ok")
    generator = ResponseGenerator(client, model="gpt-test")

    generator.generate("Base prompt.", "We are open 9-5 Mon-Fri.", "hours?", channel="voice", api_key=PROCESS_KEY)
    generator.generate("Base prompt.", "   ", "hours?", channel="voice", api_key=PROCESS_KEY)

    with_context, without_context = (c["system_prompt"] for c in client.calls)
    assert with_context.startswith("Base prompt.\n\n" + KNOWLEDGE_HEADER)
    assert "<<<\nWe are open 9-5 Mon-Fri.\n>>>" in with_context
    assert without_context == "Base prompt."


@pytest.mark.parametrize("channel,max_tokens", [("voice", 150), ("sms", 300), ("widget", 500), ("chat", 500)])
def test_channel_parameters(channel, max_tokens):
    client = FakeCompletionClient()
    ResponseGenerator(client, model="gpt-test").generate(
        "Base.", None, "hello", channel=channel, api_key=PROCESS_KEY
    )

    call = client.calls[0]
    assert call["max_tokens"] == max_tokens
    assert call["temperature"] == 0.7
    assert call["model"] == "gpt-test"
    assert call["user_message"] == "hello"


def test_missing_key_is_upstream_unavailable():
    client = FakeCompletionClient()
    with pytest.raises(UpstreamUnavailableError):
        ResponseGenerator(client, model="gpt-test").generate(
            "Base.", None, "hello", channel="chat", api_key=None
        )
    assert client.calls == []


def test_with_knowledge_is_a_noop_for_empty_context():
    assert PromptTemplateStore.with_knowledge("Base.", None) == "Base."


class _FakeCompletions:
    def __init__(self, outcome):
        self.outcome = outcome
        self.kwargs = None

    def create(self, **kwargs):
        self.kwargs = kwargs
        if isinstance(self.outcome, Exception):
            raise self.outcome
        return self.outcome


class _FakeOpenAI:
    instances: list = []

    def __init__(self, outcome, **kwargs):
        self.kwargs = kwargs
        self.chat = SimpleNamespace(completions=_FakeCompletions(outcome))
        _FakeOpenAI.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False


def _install(monkeypatch, outcome):
    _FakeOpenAI.instances = []
    monkeypatch.setattr(
        "agentdesk.llm.generator.OpenAI", lambda **kw: _FakeOpenAI(outcome, **kw)
    )


def _complete():
    return OpenAICompletionClient(timeout=3.0).complete(
        api_key=PROCESS_KEY,
        model="gpt-test",
        system_prompt="sys",
        user_message="hi",
        max_tokens=150,
        temperature=0.7,
    )


def _completion(content):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


def test_openai_client_returns_stripped_content(monkeypatch):
    _install(monkeypatch, _completion("  Hello there.  "))

    assert _complete() == "Hello there."
    instance = _FakeOpenAI.instances[0]
    assert instance.kwargs["max_retries"] == 0
    assert instance.kwargs["timeout"] == 3.0
    assert instance.chat.completions.kwargs["messages"] == [
        {"role": "system", "content": "sys"},
        {"role": "user", "content": "hi"},
    ]


def test_openai_status_error_is_mapped(monkeypatch):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    response = httpx.Response(500, request=request)
    _install(monkeypatch, APIStatusError("server error", response=response, body=None))

    with pytest.raises(UpstreamUnavailableError) as excinfo:
        _complete()
    assert excinfo.value.status_code == 500
    assert excinfo.value.provider == "openai"


def test_openai_connection_error_is_mapped(monkeypatch):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")
    _install(monkeypatch, APIConnectionError(request=request))

    with pytest.raises(UpstreamUnavailableError):
        _complete()


def test_empty_completion_is_upstream_unavailable(monkeypatch):
    _install(monkeypatch, _completion("   "))

    with pytest.raises(UpstreamUnavailableError):
        _complete()
