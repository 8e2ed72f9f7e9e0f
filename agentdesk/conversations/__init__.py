"""Conversation persistence for the telephony channels."""

from .repository import (
    ConversationRepository,
    InMemoryConversationRepository,
    PostgresConversationRepository,
)
from .service import CallSessionTracker

__all__ = [
    "CallSessionTracker",
    "ConversationRepository",
    "InMemoryConversationRepository",
    "PostgresConversationRepository",
]
