"""
Vision Buddy Local Speech
On-device text-to-speech through espeak or the platform speech command.

Used when the remote voice is unavailable. speak() only starts the
subprocess; the completion callback fires when it exits on its own, and
never after stop().

Supports:
- espeak / espeak-ng (Linux), voice chosen from the locale tag
- macOS say
- Windows PowerShell SAPI
"""

import asyncio
import logging
import platform
import shutil
from enum import Enum
from typing import List, Optional

from visionbuddy.types import CompletionCallback

logger = logging.getLogger("visionbuddy.voice.local")


class LocalBackend(Enum):
    """Available local speech backends."""
    AUTO = "auto"
    ESPEAK = "espeak"
    SYSTEM = "system"  # macOS say, Windows SAPI


# Locale tag -> espeak voice
ESPEAK_VOICES = {
    "en-us": "en-us",
    "es-es": "es",
    "fr-fr": "fr-fr",
    "de-de": "de",
    "zh-cn": "cmn",
    "ja-jp": "ja",
    "hi-in": "hi",
    "pt-br": "pt-br",
    "it-it": "it",
}

ESPEAK_DEFAULT_RATE = 175   # words per minute
ESPEAK_DEFAULT_PITCH = 50   # 0-99
SAY_DEFAULT_RATE = 200


def espeak_voice(locale_tag: str) -> str:
    """espeak voice for a BCP 47 tag; unknown regions fall back to the language."""
    tag = locale_tag.lower()
    if tag in ESPEAK_VOICES:
        return ESPEAK_VOICES[tag]
    return tag.split("-", 1)[0] or "en"


class LocalSpeechService:
    """
    Local speech synthesis with a completion callback.

    Args:
        backend: auto, espeak or system
        rate: Speech rate multiplier (0.9 is slightly slower for clarity)
        pitch: Pitch multiplier
    """

    def __init__(self, backend: str = "auto", rate: float = 0.9, pitch: float = 1.0):
        self.backend = LocalBackend(backend)
        self.rate = rate
        self.pitch = pitch
        self._platform = platform.system()
        self._espeak = shutil.which("espeak-ng") or shutil.which("espeak")
        self._process: Optional[asyncio.subprocess.Process] = None
        self._watcher: Optional[asyncio.Task] = None

    @classmethod
    def from_config(cls, config) -> "LocalSpeechService":
        """Build from a LocalSpeechConfig."""
        return cls(backend=config.backend, rate=config.rate, pitch=config.pitch)

    @property
    def is_speaking(self) -> bool:
        return self._watcher is not None and not self._watcher.done()

    def _use_espeak(self) -> bool:
        if self.backend is LocalBackend.ESPEAK:
            return True
        if self.backend is LocalBackend.SYSTEM:
            return False
        return self._espeak is not None or self._platform not in ("Darwin", "Windows")

    def build_command(self, text: str, locale_tag: str) -> List[str]:
        """Command line that speaks text in the given locale."""
        if self._use_espeak():
            return [
                self._espeak or "espeak",
                "-v", espeak_voice(locale_tag),
                "-s", str(int(ESPEAK_DEFAULT_RATE * self.rate)),
                "-p", str(int(ESPEAK_DEFAULT_PITCH * self.pitch)),
                text,
            ]

        if self._platform == "Darwin":
            return ["say", "-r", str(int(SAY_DEFAULT_RATE * self.rate)), text]

        # Windows PowerShell SAPI; Rate is -10..10 around 0
        sapi_rate = max(-10, min(10, round((self.rate - 1.0) * 10)))
        escaped = text.replace("'", "''")
        ps_script = (
            "Add-Type -AssemblyName System.Speech; "
            "$speak = New-Object System.Speech.Synthesis.SpeechSynthesizer; "
            f"$speak.Rate = {sapi_rate}; "
            f"$speak.Speak('{escaped}')"
        )
        return ["powershell", "-Command", ps_script]

    async def speak(self, text: str, locale_tag: str, on_complete: CompletionCallback) -> bool:
        """
        Start speaking.

        Args:
            text: Text to speak
            locale_tag: BCP 47 tag of the effective language
            on_complete: Called when speech ends by itself

        Returns:
            False if the speech command could not be started
        """
        self.stop()
        cmd = self.build_command(text, locale_tag)

        try:
            self._process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.DEVNULL
            )
        except (FileNotFoundError, PermissionError, OSError) as e:
            logger.error(f"Local speech command {cmd[0]!r} could not start: {e}")
            self._process = None
            return False

        logger.debug(f"Local speech started ({cmd[0]}, {locale_tag})")
        self._watcher = asyncio.create_task(self._wait_for_exit(self._process, on_complete))
        return True

    async def _wait_for_exit(self, process: asyncio.subprocess.Process, on_complete: CompletionCallback) -> None:
        returncode = await process.wait()
        if returncode != 0:
            logger.warning(f"Local speech exited with code {returncode}")
        if process is self._process:
            self._process = None
        on_complete()

    def stop(self) -> None:
        """Stop any speech in progress without firing its callback."""
        if self._watcher is not None and not self._watcher.done():
            self._watcher.cancel()
        self._watcher = None

        if self._process is not None and self._process.returncode is None:
            try:
                self._process.terminate()
            except ProcessLookupError:
                pass
        self._process = None
