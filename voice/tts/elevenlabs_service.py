"""
Vision Buddy Remote Voice Synthesis
ElevenLabs text-to-speech API

Returns playable WAV bytes, or None when credentials are missing or the
call fails so the caller can fall back to local speech.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from voice.playback import pcm_to_wav

logger = logging.getLogger("visionbuddy.voice.elevenlabs")


PLACEHOLDER_API_KEY = "MY_ELEVENLABS_KEY"
DEFAULT_VOICE_ID = "pMs7uS297jtjz4kyM997"
DEFAULT_MODEL_ID = "eleven_multilingual_v2"


class ElevenLabsTTS:
    """
    Async client for the ElevenLabs text-to-speech endpoint.

    API Documentation: https://elevenlabs.io/docs/api-reference/text-to-speech
    """

    BASE_URL = "https://api.elevenlabs.io/v1/text-to-speech"

    def __init__(
        self,
        api_key: Optional[str] = None,
        voice_id: str = DEFAULT_VOICE_ID,
        model_id: str = DEFAULT_MODEL_ID,
        stability: float = 0.5,
        similarity_boost: float = 0.75,
        output_format: str = "pcm_22050",
        timeout: float = 15.0,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        self.api_key = api_key
        self.voice_id = voice_id
        self.model_id = model_id
        self.stability = stability
        self.similarity_boost = similarity_boost
        self.output_format = output_format
        self.timeout = timeout
        self._session = session
        self._owns_session = session is None

    @classmethod
    def from_config(cls, config, session: Optional[aiohttp.ClientSession] = None) -> "ElevenLabsTTS":
        """Build from a VoiceSynthesisConfig."""
        return cls(
            api_key=config.api_key,
            voice_id=config.voice_id,
            model_id=config.model_id,
            stability=config.stability,
            similarity_boost=config.similarity_boost,
            output_format=config.output_format,
            timeout=config.timeout,
            session=session,
        )

    @property
    def has_credentials(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY and bool(self.voice_id)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self):
        if self._owns_session and self._session:
            await self._session.close()
            self._session = None

    def _sample_rate(self) -> Optional[int]:
        """Sample rate for pcm_* output formats, None for encoded formats."""
        if self.output_format.startswith("pcm_"):
            try:
                return int(self.output_format.split("_", 1)[1])
            except ValueError:
                return None
        return None

    async def synthesize(self, text: str, voice_profile: Optional[str] = None) -> Optional[bytes]:
        """
        Synthesize speech.

        Args:
            text: Text to speak
            voice_profile: Voice id overriding the configured one

        Returns:
            WAV bytes for pcm_* formats, the raw encoded audio otherwise,
            or None when credentials are missing or the request fails
        """
        voice_id = voice_profile or self.voice_id
        if not self.has_credentials or not voice_id:
            logger.warning("ElevenLabs credentials missing. Falling back to local speech.")
            return None

        url = f"{self.BASE_URL}/{voice_id}"
        payload = {
            "text": text,
            "model_id": self.model_id,
            "voice_settings": {
                "stability": self.stability,
                "similarity_boost": self.similarity_boost,
            },
        }
        headers = {
            "Content-Type": "application/json",
            "xi-api-key": self.api_key,
        }

        try:
            session = await self._get_session()
            async with session.post(
                url,
                json=payload,
                headers=headers,
                params={"output_format": self.output_format},
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            ) as response:
                if response.status != 200:
                    error_text = await response.text()
                    logger.error(f"ElevenLabs API error {response.status}: {error_text[:200]}")
                    return None
                audio = await response.read()

        except aiohttp.ClientError as e:
            logger.error(f"ElevenLabs network error: {e}")
            return None
        except asyncio.TimeoutError:
            logger.error(f"ElevenLabs request timed out after {self.timeout}s")
            return None

        if not audio:
            logger.error("ElevenLabs returned empty audio")
            return None

        sample_rate = self._sample_rate()
        if sample_rate:
            return pcm_to_wav(audio, sample_rate)
        return audio
