"""Text-to-speech for the voice channel."""

from .synthesizer import ElevenLabsSynthesizer, SpeechSynthesizer, audio_data_uri

__all__ = ["ElevenLabsSynthesizer", "SpeechSynthesizer", "audio_data_uri"]
