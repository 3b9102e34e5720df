"""
Unit tests for the ElevenLabs remote voice client.

The aiohttp session is mocked; no network calls are made.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, Mock

import aiohttp
import pytest

from voice.tts.elevenlabs_service import PLACEHOLDER_API_KEY, ElevenLabsTTS


def make_session(status=200, body=b"\x00\x01" * 100, text="", error=None):
    response = MagicMock()
    response.status = status
    response.read = AsyncMock(return_value=body)
    response.text = AsyncMock(return_value=text)

    cm = MagicMock()
    cm.__aenter__ = AsyncMock(return_value=response)
    cm.__aexit__ = AsyncMock(return_value=False)

    session = MagicMock()
    if error is not None:
        session.post = MagicMock(side_effect=error)
    else:
        session.post = MagicMock(return_value=cm)
    return session


class TestCredentials:
    """Tests for credential handling."""

    @pytest.mark.parametrize("api_key", [None, "", PLACEHOLDER_API_KEY])
    def test_missing_credentials(self, api_key):
        assert ElevenLabsTTS(api_key=api_key).has_credentials is False

    @pytest.mark.asyncio
    async def test_missing_credentials_returns_none(self):
        """Test no request is made without a key."""
        session = make_session()
        tts = ElevenLabsTTS(api_key=None, session=session)

        assert await tts.synthesize("Hello") is None
        session.post.assert_not_called()

    def test_from_config(self):
        config = Mock(
            api_key="key", voice_id="v1", model_id="m1", stability=0.3,
            similarity_boost=0.9, output_format="mp3_44100_128", timeout=5.0,
        )
        tts = ElevenLabsTTS.from_config(config)
        assert tts.voice_id == "v1"
        assert tts.output_format == "mp3_44100_128"
        assert tts.has_credentials is True


class TestSynthesize:
    """Tests for synthesize."""

    @pytest.mark.asyncio
    async def test_pcm_wrapped_in_wav(self):
        session = make_session(body=b"\x00\x01" * 100)
        tts = ElevenLabsTTS(api_key="key", session=session)

        audio = await tts.synthesize("Turn left")

        assert audio[:4] == b"RIFF"
        assert len(audio) == 44 + 200

    @pytest.mark.asyncio
    async def test_request_shape(self):
        session = make_session()
        tts = ElevenLabsTTS(api_key="key", voice_id="default-voice", session=session)

        await tts.synthesize("Turn left", voice_profile="other-voice")

        args, kwargs = session.post.call_args
        assert args[0].endswith("/other-voice")
        assert kwargs["headers"]["xi-api-key"] == "key"
        assert kwargs["json"]["text"] == "Turn left"
        assert kwargs["json"]["model_id"] == "eleven_multilingual_v2"
        assert kwargs["json"]["voice_settings"] == {"stability": 0.5, "similarity_boost": 0.75}
        assert kwargs["params"] == {"output_format": "pcm_22050"}

    @pytest.mark.asyncio
    async def test_encoded_format_returned_as_is(self):
        session = make_session(body=b"ID3mp3data")
        tts = ElevenLabsTTS(api_key="key", output_format="mp3_44100_128", session=session)

        assert await tts.synthesize("Hi") == b"ID3mp3data"

    @pytest.mark.asyncio
    async def test_api_error_returns_none(self):
        session = make_session(status=401, text='{"detail": "invalid_api_key"}')
        tts = ElevenLabsTTS(api_key="key", session=session)

        assert await tts.synthesize("Hi") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [aiohttp.ClientConnectionError("reset"), asyncio.TimeoutError()])
    async def test_transport_errors_return_none(self, error):
        tts = ElevenLabsTTS(api_key="key", session=make_session(error=error))
        assert await tts.synthesize("Hi") is None

    @pytest.mark.asyncio
    async def test_empty_audio_returns_none(self):
        tts = ElevenLabsTTS(api_key="key", session=make_session(body=b""))
        assert await tts.synthesize("Hi") is None
