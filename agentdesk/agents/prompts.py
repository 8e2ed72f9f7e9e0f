"""Prompt template helpers for reply generation."""

from __future__ import annotations

from collections.abc import Iterable, Mapping

KNOWLEDGE_HEADER = "Relevant information from knowledge base:"

KNOWLEDGE_INSTRUCTIONS = (
    "Please use this information to provide accurate, helpful responses. "
    "If the knowledge base doesn't contain relevant information for the user's "
    "question, rely on your general knowledge but mention that you're providing "
    "general guidance."
)


class PromptTemplateStore:
    """Resolve the base system prompt for an agent on a given channel."""

    _DEFAULT_TEMPLATES: Mapping[str, str] = {
        "voice": (
            "You are a helpful AI assistant for {client_name}. Keep responses brief "
            "and conversational for phone calls, under 2 sentences."
        ),
        "sms": (
            "You are a helpful AI customer service agent for {client_name}, replying "
            "via SMS. Keep responses concise (under 160 characters when possible), "
            "polite and accurate."
        ),
        "widget": (
            "You are a helpful AI customer service agent for {client_name}. You assist "
            "customers with their inquiries in a friendly and professional manner.\n\n"
            "Guidelines:\n"
            "- Be polite and helpful\n"
            "- Provide accurate information\n"
            "- Ask clarifying questions when needed\n"
            "- Escalate complex issues when appropriate\n"
            "- Keep responses concise but thorough"
        ),
        "chat": "You are a helpful AI customer service agent for {client_name}.",
    }

    def __init__(self, extra_templates: Mapping[str, str] | None = None):
        self._templates = dict(self._DEFAULT_TEMPLATES)
        if extra_templates:
            self._templates.update(extra_templates)

    def default_for(self, channel: str, client_name: str | None) -> str:
        template = self._templates.get(channel.lower()) or self._templates["chat"]
        return template.format(client_name=client_name or "our company")

    def resolve(
        self, candidates: Iterable[str | None], channel: str, client_name: str | None
    ) -> str:
        """Return the first non-blank prompt in ``candidates`` or the channel default."""

        for candidate in candidates:
            if candidate and candidate.strip():
                return candidate.strip()
        return self.default_for(channel, client_name)

    @staticmethod
    def with_knowledge(base_prompt: str, context: str | None) -> str:
        """Append the delimited knowledge block when ``context`` is non-empty."""

        if not context or not context.strip():
            return base_prompt
        return (
            f"{base_prompt}\n\n{KNOWLEDGE_HEADER}\n<<<\n{context.strip()}\n>>>\n\n"
            f"{KNOWLEDGE_INSTRUCTIONS}"
        )
