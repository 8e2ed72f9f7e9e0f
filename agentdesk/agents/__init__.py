"""Client, agent and channel-binding configuration."""

from . import schemas
from .repository import InMemoryAgentRepository, PostgresAgentRepository
from .resolver import ConfigurationResolver

__all__ = [
    "ConfigurationResolver",
    "InMemoryAgentRepository",
    "PostgresAgentRepository",
    "schemas",
]
