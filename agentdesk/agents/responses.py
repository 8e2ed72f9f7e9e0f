"""Response parameter defaults for completion calls."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any


class ResponseParameterStore:
    """Maintain channel specific completion parameters.

    Voice replies are spoken aloud and kept to a few sentences; text channels
    allow longer answers. Temperature is fixed so tone stays consistent.
    """

    _DEFAULTS: Mapping[str, dict[str, Any]] = {
        "voice": {"temperature": 0.7, "max_tokens": 150},
        "sms": {"temperature": 0.7, "max_tokens": 300},
        "widget": {"temperature": 0.7, "max_tokens": 500},
        "chat": {"temperature": 0.7, "max_tokens": 500},
    }

    def __init__(self, overrides: Mapping[str, Mapping[str, Any]] | None = None):
        self._defaults: dict[str, dict[str, Any]] = {
            channel: dict(params) for channel, params in self._DEFAULTS.items()
        }
        if overrides:
            for channel, params in overrides.items():
                merged = self._defaults.setdefault(channel.lower(), {})
                merged.update(params)

    def defaults_for_channel(self, channel: str) -> dict[str, Any]:
        """Return defaults for ``channel``."""

        return dict(self._defaults.get(channel.lower(), self._defaults["chat"]))
