"""
Vision Buddy Speech Output

Speaks sentences through an ordered chain of synthesis backends:

    remote voice (synthesize + play)  ->  local speech (espeak / system)

Each attempt either starts playback or says "try next"; the first one
that starts wins. If nothing starts the failure is logged and the call
returns False. The user is not told, there is nothing left to say it with.

A new speak() always preempts the one before it. Guidance has to describe
where the user is now, so nothing is queued. Every call bumps a generation
counter and every completion callback carries the generation it was
dispatched with; a callback from an older generation is ignored so it
cannot clear is_playing for the newer sentence.

Usage:
    speech = SpeechOutput(local=LocalSpeechService(), remote=ElevenLabsTTS(...),
                          player=AudioPlayer())
    await speech.speak("Navigating to the elevator.", Language.ENGLISH)
    await speech.wait_until_done(timeout=30)
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, List, Optional

from visionbuddy.types import (
    AudioOutput,
    AudioPlaybackState,
    Language,
    LocalSynthesizer,
    VoiceSynthesizer,
)

logger = logging.getLogger("visionbuddy.speech")


__all__ = ["SpeechOutput", "SpeechAttempt", "AttemptOutcome"]


class AttemptOutcome(Enum):
    """Result of one backend attempt."""
    STARTED = "started"        # Playback is running; stop the chain
    TRY_NEXT = "try_next"      # Backend unavailable or failed; fall through
    SUPERSEDED = "superseded"  # A newer speak() started meanwhile; give up quietly


@dataclass(frozen=True)
class SpeechAttempt:
    """One link of the fallback chain."""
    name: str
    run: Callable[[str, Language, int], Awaitable[AttemptOutcome]]


class SpeechOutput:
    """
    Preemptive speech output with remote-to-local fallback.

    Args:
        local: On-device synthesizer, always present as the last resort
        remote: Remote voice synthesizer; None disables the remote attempt
        player: Audio output for remote audio and chimes
        voice_profile: Voice identifier passed to the remote synthesizer
    """

    def __init__(
        self,
        local: LocalSynthesizer,
        remote: Optional[VoiceSynthesizer] = None,
        player: Optional[AudioOutput] = None,
        voice_profile: Optional[str] = None,
    ):
        self.local = local
        self.remote = remote
        self.player = player
        self.voice_profile = voice_profile

        self.playback = AudioPlaybackState()
        self.last_backend: Optional[str] = None
        self._done = asyncio.Event()
        self._done.set()

        self.chain: List[SpeechAttempt] = [
            SpeechAttempt("remote", self._attempt_remote),
            SpeechAttempt("local", self._attempt_local),
        ]

    # =========================================================================
    # State
    # =========================================================================

    @property
    def is_playing(self) -> bool:
        return self.playback.is_playing

    @property
    def generation(self) -> int:
        return self.playback.active_source_generation

    def _begin(self) -> int:
        self.playback.active_source_generation += 1
        self.playback.is_playing = True
        self._done.clear()
        return self.playback.active_source_generation

    def _complete(self, generation: int) -> None:
        """Completion callback body; ignores stale generations."""
        if generation != self.playback.active_source_generation:
            logger.debug(
                f"Ignoring completion from generation {generation} "
                f"(current {self.playback.active_source_generation})"
            )
            return
        self.playback.is_playing = False
        self._done.set()

    def completion_callback(self, generation: int) -> Callable[[], None]:
        """Callback handed to a backend for the given generation."""
        return partial(self._complete, generation)

    def _halt_outputs(self) -> None:
        if self.player is not None:
            self.player.stop()
        self.local.stop()

    # =========================================================================
    # Public API
    # =========================================================================

    async def speak(self, text: str, language: Language) -> bool:
        """
        Speak a sentence, preempting anything already playing.

        Args:
            text: Sentence to speak
            language: Effective language; selects the local locale tag

        Returns:
            True if some backend started speaking
        """
        if not text or not text.strip():
            return False

        self._halt_outputs()
        generation = self._begin()
        logger.debug(f"speak[{generation}] {text!r}")

        for attempt in self.chain:
            outcome = await attempt.run(text, language, generation)
            if outcome is AttemptOutcome.STARTED:
                self.last_backend = attempt.name
                logger.debug(f"speak[{generation}] started via {attempt.name}")
                return True
            if outcome is AttemptOutcome.SUPERSEDED:
                logger.debug(f"speak[{generation}] superseded during {attempt.name}")
                return False

        logger.error(f"All speech backends failed for: {text!r}")
        self._complete(generation)
        return False

    async def play_cue(self, audio: bytes) -> bool:
        """
        Play a short sound (hazard chime) with the same preemption rules.

        Returns:
            True if playback started
        """
        if self.player is None:
            return False
        self._halt_outputs()
        generation = self._begin()
        try:
            started = await self.player.play(audio, on_complete=self.completion_callback(generation))
        except Exception as e:
            logger.error(f"Cue playback failed: {e}")
            started = False
        if not started:
            self._complete(generation)
        return started

    def stop(self) -> None:
        """Preempt current output without starting anything new."""
        self._halt_outputs()
        self.playback.active_source_generation += 1
        self.playback.is_playing = False
        self._done.set()

    async def wait_until_done(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the current output to finish.

        Returns:
            False if the timeout expired first
        """
        if not self.playback.is_playing:
            return True
        try:
            await asyncio.wait_for(self._done.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Speech did not finish within {timeout}s")
            return False

    # =========================================================================
    # Fallback Chain
    # =========================================================================

    async def _attempt_remote(self, text: str, language: Language, generation: int) -> AttemptOutcome:
        if self.remote is None or self.player is None:
            return AttemptOutcome.TRY_NEXT

        try:
            audio = await self.remote.synthesize(text, self.voice_profile)
        except Exception as e:
            logger.error(f"Remote synthesis raised: {e}")
            audio = None

        if generation != self.generation:
            return AttemptOutcome.SUPERSEDED
        if not audio:
            logger.warning("Remote voice unavailable, falling back to local speech")
            return AttemptOutcome.TRY_NEXT

        try:
            started = await self.player.play(audio, on_complete=self.completion_callback(generation))
        except Exception as e:
            logger.error(f"Remote audio playback failed: {e}")
            started = False
        return AttemptOutcome.STARTED if started else AttemptOutcome.TRY_NEXT

    async def _attempt_local(self, text: str, language: Language, generation: int) -> AttemptOutcome:
        try:
            started = await self.local.speak(
                text,
                language.locale_tag,
                self.completion_callback(generation),
            )
        except Exception as e:
            logger.error(f"Local speech raised: {e}")
            started = False

        if not started:
            logger.error(f"Local speech could not start ({language.locale_tag})")
            return AttemptOutcome.TRY_NEXT
        return AttemptOutcome.STARTED
