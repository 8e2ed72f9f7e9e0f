"""Reply generation against the chat-completion provider."""

from __future__ import annotations

import logging
from typing import Protocol

from openai import APIConnectionError, APIStatusError, OpenAI

from ..agents.prompts import PromptTemplateStore
from ..agents.responses import ResponseParameterStore
from ..errors import UpstreamUnavailableError

logger = logging.getLogger(__name__)


class CompletionClient(Protocol):
    """Minimal chat-completion capability used by :class:`ResponseGenerator`."""

    def complete(
        self,
        *,
        api_key: str,
        model: str,
        system_prompt: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> str: ...


class OpenAICompletionClient:
    """Chat completions through the official OpenAI SDK.

    Retries are disabled: a failed call surfaces immediately as
    :class:`UpstreamUnavailableError` and the channel decides what to do.
    """

    def __init__(self, *, timeout: float, base_url: str | None = None) -> None:
        self._timeout = timeout
        self._base_url = base_url

    def complete(
        self,
        *,
        api_key: str,
        model: str,
        system_prompt: str,
        user_message: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        try:
            with OpenAI(
                api_key=api_key,
                base_url=self._base_url,
                timeout=self._timeout,
                max_retries=0,
            ) as client:
                completion = client.chat.completions.create(
                    model=model,
                    messages=[
                        {"role": "system", "content": system_prompt},
                        {"role": "user", "content": user_message},
                    ],
                    max_tokens=max_tokens,
                    temperature=temperature,
                )
        except APIStatusError as exc:
            raise UpstreamUnavailableError(
                "openai", f"HTTP {exc.status_code}", exc.status_code
            ) from exc
        except APIConnectionError as exc:
            raise UpstreamUnavailableError("openai", str(exc) or "connection failed") from exc
        content = completion.choices[0].message.content if completion.choices else None
        if not content or not content.strip():
            raise UpstreamUnavailableError("openai", "empty completion")
        return content.strip()


class ResponseGenerator:
    def __init__(
        self,
        client: CompletionClient,
        *,
        model: str,
        response_store: ResponseParameterStore | None = None,
    ) -> None:
        self._client = client
        self._model = model
        self._responses = response_store or ResponseParameterStore()

    def generate(
        self,
        system_prompt_base: str,
        retrieved_context: str | None,
        user_utterance: str,
        *,
        channel: str,
        api_key: str | None,
    ) -> str:
        """Return the reply text for ``user_utterance``.

        Raises :class:`UpstreamUnavailableError` when no key is available or
        the provider fails.
        """

        if not api_key:
            raise UpstreamUnavailableError("openai", "API key not configured")
        system_prompt = PromptTemplateStore.with_knowledge(system_prompt_base, retrieved_context)
        params = self._responses.defaults_for_channel(channel)
        logger.info(
            "Requesting %s completion (channel=%s, context=%s, max_tokens=%s)",
            self._model,
            channel,
            bool(retrieved_context),
            params["max_tokens"],
        )
        return self._client.complete(
            api_key=api_key,
            model=self._model,
            system_prompt=system_prompt,
            user_message=user_utterance,
            max_tokens=params["max_tokens"],
            temperature=params["temperature"],
        )
