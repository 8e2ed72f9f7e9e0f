"""Conversation orchestration backend for multi-channel AI support agents."""

from .__version__ import __version__

__all__ = ["__version__"]
