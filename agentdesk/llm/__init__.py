"""Completion-provider integration."""

from .generator import CompletionClient, OpenAICompletionClient, ResponseGenerator

__all__ = ["CompletionClient", "OpenAICompletionClient", "ResponseGenerator"]
