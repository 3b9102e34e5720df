"""
Vision Buddy Audio Playback

Plays synthesized speech and cue sounds through sounddevice. Playback is
non-blocking: play() starts the sound and returns, and the completion
callback fires once the sound has run its length. stop() cuts the sound
and drops the pending callback.

Also provides the small WAV helpers the voice clients share and the
hazard chime played before a spoken warning.
"""

from __future__ import annotations

import asyncio
import io
import logging
import struct
import wave
from typing import Optional, Tuple

import numpy as np

from visionbuddy.types import CompletionCallback

logger = logging.getLogger("visionbuddy.playback")


__all__ = [
    "AudioPlayer",
    "AudioCues",
    "pcm_to_wav",
    "decode_wav",
]


WAV_HEADER_SIZE = 44


def pcm_to_wav(pcm: bytes, sample_rate: int, channels: int = 1) -> bytes:
    """Wrap raw 16-bit little-endian PCM in a WAV header."""
    data_size = len(pcm)
    header = struct.pack(
        '<4sI4s4sIHHIIHH4sI',
        b'RIFF',
        36 + data_size,
        b'WAVE',
        b'fmt ',
        16,
        1,  # PCM
        channels,
        sample_rate,
        sample_rate * channels * 2,
        channels * 2,
        16,
        b'data',
        data_size,
    )
    return header + pcm


def decode_wav(audio: bytes) -> Tuple[np.ndarray, int]:
    """
    Decode 16-bit WAV bytes into float32 samples in [-1.0, 1.0].

    Returns:
        (samples, sample_rate); multichannel audio is shaped (frames, channels)

    Raises:
        wave.Error: If the bytes are not a WAV file
        ValueError: If the sample width is not 16 bits
    """
    with wave.open(io.BytesIO(audio), 'rb') as wav_file:
        sample_rate = wav_file.getframerate()
        n_channels = wav_file.getnchannels()
        sample_width = wav_file.getsampwidth()
        frames = wav_file.readframes(wav_file.getnframes())

    if sample_width != 2:
        raise ValueError(f"Unsupported sample width: {sample_width * 8} bits")

    samples = np.frombuffer(frames, dtype=np.int16).astype(np.float32) / 32768.0
    if n_channels > 1:
        samples = samples.reshape(-1, n_channels)
    return samples, sample_rate


class AudioCues:
    """Generated cue sounds."""

    SAMPLE_RATE = 22050

    @staticmethod
    def _generate_tone(frequency: float, duration_ms: int, volume: float = 0.5) -> np.ndarray:
        """Sine wave as int16 samples with a short fade at both ends."""
        sample_rate = AudioCues.SAMPLE_RATE
        num_samples = int(sample_rate * duration_ms / 1000)
        t = np.arange(num_samples) / sample_rate
        samples = volume * np.sin(2 * np.pi * frequency * t)

        # Fade in/out to avoid clicks
        fade = min(100, num_samples // 4)
        if fade:
            ramp = np.arange(fade) / fade
            samples[:fade] *= ramp
            samples[-fade:] *= ramp[::-1]

        return (samples * 32767).astype(np.int16)

    @classmethod
    def tone(cls, frequency: float, duration_ms: int, volume: float = 0.5) -> bytes:
        """A single tone as WAV bytes."""
        samples = cls._generate_tone(frequency, duration_ms, volume)
        return pcm_to_wav(samples.astype('<i2').tobytes(), cls.SAMPLE_RATE)

    @classmethod
    def hazard_chime(cls) -> bytes:
        """Two-tone descending chime played before a hazard warning."""
        high = cls._generate_tone(880, 120, 0.5)  # A5
        low = cls._generate_tone(660, 180, 0.5)   # E5
        samples = np.concatenate([high, low])
        return pcm_to_wav(samples.astype('<i2').tobytes(), cls.SAMPLE_RATE)


class AudioPlayer:
    """
    Non-blocking audio output.

    Falls back to a mock player that only logs when sounddevice (or the
    PortAudio library under it) is unavailable; the mock still waits out
    the sound's duration so callers sequence the same way.
    """

    def __init__(self, device: Optional[str] = None, volume: float = 1.0):
        """
        Initialize audio player.

        Args:
            device: Audio output device name (None for default)
            volume: Output gain 0.0-1.0
        """
        self.device = device
        self.volume = volume
        self._sd = None
        self._loaded = False
        self._pending: Optional[asyncio.Task] = None

    def _ensure_loaded(self) -> None:
        """Lazily load sounddevice."""
        if self._loaded:
            return

        try:
            import sounddevice as sd
            self._sd = sd
            logger.info("Audio player initialized")
        except (ImportError, OSError) as e:
            logger.warning(f"sounddevice unavailable ({e}), using mock audio player")
            self._sd = None
        self._loaded = True

    @property
    def is_mock(self) -> bool:
        self._ensure_loaded()
        return self._sd is None

    @property
    def is_playing(self) -> bool:
        return self._pending is not None and not self._pending.done()

    async def play(self, audio: bytes, on_complete: Optional[CompletionCallback] = None) -> bool:
        """
        Start playing WAV audio.

        Args:
            audio: WAV format audio bytes
            on_complete: Called once the sound has finished; not called if
                playback is stopped first

        Returns:
            True if playback started
        """
        self._ensure_loaded()

        try:
            samples, sample_rate = decode_wav(audio)
        except (wave.Error, EOFError, ValueError) as e:
            logger.error(f"Cannot decode audio for playback: {e}")
            return False

        self.stop()
        duration = len(samples) / sample_rate if sample_rate else 0.0

        if self._sd is None:
            logger.info(f"Mock audio playback: {len(audio)} bytes, {duration:.2f}s")
        else:
            try:
                self._sd.play(samples * self.volume, sample_rate, device=self.device)
            except Exception as e:
                logger.error(f"Audio playback failed: {e}")
                return False

        self._pending = asyncio.create_task(self._finish_after(duration, on_complete))
        return True

    async def _finish_after(self, duration: float, on_complete: Optional[CompletionCallback]) -> None:
        await asyncio.sleep(duration)
        logger.debug(f"Audio playback complete ({duration:.2f}s)")
        if on_complete is not None:
            on_complete()

    def stop(self) -> None:
        """Stop current playback and drop its completion callback."""
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
        if self._sd is not None:
            try:
                self._sd.stop()
            except Exception as e:
                logger.warning(f"Error stopping audio playback: {e}")
