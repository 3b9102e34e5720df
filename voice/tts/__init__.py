"""
Vision Buddy Voice TTS

Remote voice synthesis (ElevenLabs) and local speech (espeak / system).
"""

from .elevenlabs_service import ElevenLabsTTS
from .local_service import LocalBackend, LocalSpeechService, espeak_voice

__all__ = [
    "ElevenLabsTTS",
    "LocalSpeechService",
    "LocalBackend",
    "espeak_voice",
]
