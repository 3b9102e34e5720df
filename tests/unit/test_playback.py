"""
Unit tests for audio playback and cue generation.

sounddevice is replaced with a mock; no audio device is opened.
"""

import asyncio
import struct
import wave
from unittest.mock import Mock

import numpy as np
import pytest

from voice.playback import WAV_HEADER_SIZE, AudioCues, AudioPlayer, decode_wav, pcm_to_wav


def make_player(sd=None) -> AudioPlayer:
    player = AudioPlayer()
    player._sd = sd
    player._loaded = True
    return player


class TestWavHelpers:
    """Tests for pcm_to_wav and decode_wav."""

    def test_header(self):
        wav = pcm_to_wav(b"\x00\x00" * 10, 22050)
        assert wav[:4] == b"RIFF"
        assert wav[8:12] == b"WAVE"
        assert len(wav) == WAV_HEADER_SIZE + 20
        assert struct.unpack("<I", wav[24:28])[0] == 22050

    def test_decode_scales_to_unit_range(self):
        pcm = np.array([0, 16384, -32768], dtype="<i2").tobytes()
        samples, rate = decode_wav(pcm_to_wav(pcm, 16000))

        assert rate == 16000
        assert samples.dtype == np.float32
        assert samples.tolist() == pytest.approx([0.0, 0.5, -1.0])

    def test_decode_stereo(self):
        pcm = np.zeros(8, dtype="<i2").tobytes()
        samples, _ = decode_wav(pcm_to_wav(pcm, 8000, channels=2))
        assert samples.shape == (4, 2)

    def test_decode_rejects_non_wav(self):
        with pytest.raises((wave.Error, EOFError)):
            decode_wav(b"ID3 not a wav file")


class TestAudioCues:
    """Tests for generated cue sounds."""

    def test_tone_length(self):
        samples, rate = decode_wav(AudioCues.tone(440, 100))
        assert rate == AudioCues.SAMPLE_RATE
        assert len(samples) == AudioCues.SAMPLE_RATE * 100 // 1000

    def test_tone_fades_in(self):
        samples, _ = decode_wav(AudioCues.tone(440, 100))
        assert samples[0] == 0.0
        assert np.max(np.abs(samples)) <= 0.5 + 1e-3

    def test_hazard_chime_is_two_tones(self):
        samples, rate = decode_wav(AudioCues.hazard_chime())
        assert len(samples) == rate * 120 // 1000 + rate * 180 // 1000


class TestAudioPlayer:
    """Tests for AudioPlayer."""

    @pytest.mark.asyncio
    async def test_play_calls_sounddevice(self):
        sd = Mock()
        player = make_player(sd)

        assert await player.play(AudioCues.tone(440, 10)) is True

        sd.play.assert_called_once()
        assert sd.play.call_args.args[1] == AudioCues.SAMPLE_RATE

    @pytest.mark.asyncio
    async def test_completion_after_duration(self):
        player = make_player()
        on_complete = Mock()

        await player.play(AudioCues.tone(440, 10), on_complete=on_complete)
        assert player.is_playing is True
        await asyncio.sleep(0.05)

        on_complete.assert_called_once()
        assert player.is_playing is False

    @pytest.mark.asyncio
    async def test_stop_drops_callback(self):
        sd = Mock()
        player = make_player(sd)
        on_complete = Mock()

        await player.play(AudioCues.tone(440, 500), on_complete=on_complete)
        player.stop()
        await asyncio.sleep(0)

        on_complete.assert_not_called()
        sd.stop.assert_called()
        assert player.is_playing is False

    @pytest.mark.asyncio
    async def test_undecodable_audio(self):
        player = make_player()
        on_complete = Mock()

        assert await player.play(b"not audio", on_complete=on_complete) is False
        on_complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_device_error(self):
        sd = Mock()
        sd.play.side_effect = RuntimeError("PortAudio error")
        player = make_player(sd)

        assert await player.play(AudioCues.tone(440, 10)) is False

    def test_mock_mode(self):
        assert make_player().is_mock is True
        assert make_player(Mock()).is_mock is False
