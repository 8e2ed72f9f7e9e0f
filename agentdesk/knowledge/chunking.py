"""Utilities for splitting document text into retrieval chunks."""

from __future__ import annotations

from typing import List

DEFAULT_CHUNK_SIZE = 1000


def chunk_text(text: str, *, chunk_size: int = DEFAULT_CHUNK_SIZE) -> List[str]:
    """Split ``text`` into consecutive, non-overlapping slices.

    Every slice holds ``chunk_size`` characters except possibly the last, so a
    text of length ``L`` yields ``ceil(L / chunk_size)`` chunks and
    ``"".join(chunks) == text``.
    """

    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    if not text:
        return []
    return [text[i : i + chunk_size] for i in range(0, len(text), chunk_size)]


__all__ = ["DEFAULT_CHUNK_SIZE", "chunk_text"]
