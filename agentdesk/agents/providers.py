"""Completion-provider credential resolution."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeyCandidate:
    """One entry of a credential precedence list."""

    source: str
    api_key: str | None
    #: Operator-provided keys (the process default) are trusted as-is.
    checked: bool = True


@dataclass(frozen=True)
class ProviderCredentials:
    """Container for credentials resolved for a provider."""

    provider: str
    api_key: str | None
    source: str | None = None


class ProviderKeyPolicy:
    """Structural checks for completion-provider API keys.

    A key is plausible when it is non-empty, carries the provider prefix and is
    at least ``min_length`` characters long. No network call is made.
    """

    def __init__(self, provider: str = "openai", *, prefix: str = "sk-", min_length: int = 20):
        self.provider = provider
        self.prefix = prefix
        self.min_length = min_length

    def is_plausible(self, api_key: str | None) -> bool:
        if not api_key:
            return False
        key = api_key.strip()
        return key == api_key and key.startswith(self.prefix) and len(key) >= self.min_length

    def resolve(self, candidates: Iterable[KeyCandidate]) -> ProviderCredentials:
        """Return the first usable key from ``candidates``.

        Checked candidates that are set but malformed are skipped with a
        warning so a typo in an agent override never reaches the provider.
        Unchecked candidates win whenever they are non-empty.
        """

        for candidate in candidates:
            if not candidate.api_key:
                continue
            if not candidate.checked or self.is_plausible(candidate.api_key):
                return ProviderCredentials(self.provider, candidate.api_key, candidate.source)
            logger.warning(
                "Discarding malformed %s API key from %s", self.provider, candidate.source
            )
        return ProviderCredentials(self.provider, None, None)
