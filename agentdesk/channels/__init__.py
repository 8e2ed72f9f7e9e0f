"""Channel adapter registry for the voice, SMS, widget and chat front ends."""

from __future__ import annotations

from .base import ChannelAdapter, InboundTurn
from .twilio_sms import TwilioSmsAdapter
from .twilio_voice import CallState, TwilioVoiceAdapter, VoiceTurnResult
from .widget import AgentChatAdapter, ChatReply, WidgetAdapter

_REGISTRY: dict[str, type[ChannelAdapter]] = {}


def register_adapter(adapter: type[ChannelAdapter]) -> None:
    """Register a channel adapter class in the global registry."""
    _REGISTRY[adapter.channel_name] = adapter


def get_adapter(name: str) -> type[ChannelAdapter]:
    """Retrieve an adapter class for ``name`` or raise ``KeyError``."""
    normalized = name.lower()
    if normalized not in _REGISTRY:
        raise KeyError(f"Channel '{name}' is not configured")
    return _REGISTRY[normalized]


# Pre-register built-in adapters
register_adapter(TwilioVoiceAdapter)
register_adapter(TwilioSmsAdapter)
register_adapter(WidgetAdapter)
register_adapter(AgentChatAdapter)

__all__ = [
    "AgentChatAdapter",
    "CallState",
    "ChannelAdapter",
    "ChatReply",
    "InboundTurn",
    "TwilioSmsAdapter",
    "TwilioVoiceAdapter",
    "VoiceTurnResult",
    "WidgetAdapter",
    "get_adapter",
    "register_adapter",
]
