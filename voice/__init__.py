"""
Vision Buddy Voice Output

Speech synthesis backends and audio playback used by the speech output
chain:
- TTS: ElevenLabs remote voice, espeak / system local speech
- Playback: sounddevice output and generated cue sounds
"""

from .playback import AudioCues, AudioPlayer
from .tts import ElevenLabsTTS, LocalSpeechService

__all__ = [
    "AudioCues",
    "AudioPlayer",
    "ElevenLabsTTS",
    "LocalSpeechService",
]
