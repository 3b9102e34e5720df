"""
Vision Buddy Shared Type Definitions

Data shapes and capability protocols shared across the navigation
assistant. Types are organized by category:
    - Languages
    - Intents (one per classified utterance)
    - Spatial registry nodes
    - Scene analysis results
    - Navigation, playback and language state
    - Turn states
    - Protocols for the external capabilities the core consumes

Usage:
    from visionbuddy.types import Language, SpatialNode, SceneAnalysis
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import (
    Awaitable,
    Callable,
    List,
    NamedTuple,
    Optional,
    Protocol,
    TypeAlias,
    Union,
    runtime_checkable,
)


# =============================================================================
# Languages
# =============================================================================

class Language(Enum):
    """Languages the assistant can speak and listen in.

    The value is the display name used in utterances ("switch to French")
    and in prompts sent to the vision service.
    """
    ENGLISH = "English"
    SPANISH = "Spanish"
    FRENCH = "French"
    GERMAN = "German"
    CHINESE = "Chinese"
    JAPANESE = "Japanese"
    HINDI = "Hindi"
    PORTUGUESE = "Portuguese"
    ITALIAN = "Italian"

    @property
    def locale_tag(self) -> str:
        """BCP 47 tag used by speech recognition and local synthesis."""
        return LOCALE_TAGS[self]

    @classmethod
    def from_name(cls, name: str) -> "Language":
        """Look up a language by display name, case-insensitively.

        Raises:
            ValueError: If the name is not a supported language
        """
        for language in cls:
            if language.value.lower() == name.strip().lower():
                return language
        raise ValueError(f"Unsupported language: {name!r}")


LOCALE_TAGS = {
    Language.SPANISH: "es-ES",
    Language.FRENCH: "fr-FR",
    Language.GERMAN: "de-DE",
    Language.CHINESE: "zh-CN",
    Language.JAPANESE: "ja-JP",
    Language.HINDI: "hi-IN",
    Language.ENGLISH: "en-US",
    Language.PORTUGUESE: "pt-BR",
    Language.ITALIAN: "it-IT",
}


# =============================================================================
# Utterances and Intents
# =============================================================================

@dataclass(frozen=True)
class Utterance:
    """Transcribed speech as delivered by the recognizer."""
    text: str
    language_hint: Optional[Language] = None


class IntentKind(Enum):
    """Tag for the five intent variants."""
    LANGUAGE_SWITCH = "language_switch"
    PIN_LOCATION = "pin_location"
    TRANSLATE_TO = "translate_to"
    NAVIGATE_TO = "navigate_to"
    FREEFORM_QUESTION = "freeform_question"


@dataclass(frozen=True)
class LanguageSwitch:
    """Persistently change the active language."""
    target_language: Language
    kind: IntentKind = field(default=IntentKind.LANGUAGE_SWITCH, init=False)


@dataclass(frozen=True)
class PinLocation:
    """Save the last described scene to the spatial registry."""
    kind: IntentKind = field(default=IntentKind.PIN_LOCATION, init=False)


@dataclass(frozen=True)
class TranslateTo:
    """Answer this one request in another language."""
    target_language: Language
    text: str
    kind: IntentKind = field(default=IntentKind.TRANSLATE_TO, init=False)


@dataclass(frozen=True)
class NavigateTo:
    """Start guiding the user to a described target."""
    target_description: str
    kind: IntentKind = field(default=IntentKind.NAVIGATE_TO, init=False)


@dataclass(frozen=True)
class FreeformQuestion:
    """Anything else: a question about the scene ahead."""
    text: str
    kind: IntentKind = field(default=IntentKind.FREEFORM_QUESTION, init=False)


Intent: TypeAlias = Union[LanguageSwitch, PinLocation, TranslateTo, NavigateTo, FreeformQuestion]


# =============================================================================
# Spatial Registry
# =============================================================================

class Coordinates(NamedTuple):
    """Position in the building's abstract 2-D plane."""
    x: float
    y: float


@dataclass(frozen=True)
class NewSpatialNode:
    """A node that has not been saved yet (no id assigned)."""
    building_id: str
    coordinates: Coordinates
    description: str
    is_golden_path: bool = False


@dataclass(frozen=True)
class SpatialNode:
    """A saved registry location.

    Attributes:
        id: Registry-assigned identifier
        building_id: Building the node belongs to
        coordinates: Position in the building plane
        description: Free text, usually a scene narration
        is_golden_path: True only for audited nodes; user pins start False
    """
    id: str
    building_id: str
    coordinates: Coordinates
    description: str
    is_golden_path: bool = False


# =============================================================================
# Scene Analysis
# =============================================================================

FAIL_CLOSED_DESCRIPTION = "unable to see clearly"
FAIL_CLOSED_HAZARD = "system error"


@dataclass(frozen=True)
class SceneAnalysis:
    """Structured answer from the vision service.

    Attributes:
        description: Full spatial narration or answer to the question
        hazard: Short warning, or None when the path is clear
        navigation: Directional guidance toward the target, or None
        is_fallback: True when this is the safe default returned after a
            vision failure rather than a real analysis
    """
    description: str
    hazard: Optional[str] = None
    navigation: Optional[str] = None
    is_fallback: bool = False

    @classmethod
    def fail_closed(cls) -> "SceneAnalysis":
        """Safe default used when the vision service cannot answer."""
        return cls(
            description=FAIL_CLOSED_DESCRIPTION,
            hazard=FAIL_CLOSED_HAZARD,
            navigation=None,
            is_fallback=True,
        )


# =============================================================================
# Interaction State
# =============================================================================

@dataclass(frozen=True)
class NavigationState:
    """The single active navigation goal.

    "No target" is represented by the absence of a NavigationState, never
    by an empty description.
    """
    target_description: str
    source_registry_match: bool

    def __post_init__(self) -> None:
        if not self.target_description or not self.target_description.strip():
            raise ValueError("Navigation target description must not be empty")


@dataclass
class AudioPlaybackState:
    """Playback flag plus the generation of the utterance that owns it."""
    is_playing: bool = False
    active_source_generation: int = 0


@dataclass
class LanguageState:
    """Active language, shared by reference with every text producer."""
    current: Language = Language.ENGLISH


class TurnState(Enum):
    """Interaction orchestrator turn states."""
    IDLE = "idle"
    CAPTURING = "capturing"
    LISTENING = "listening"
    CLASSIFYING = "classifying"
    NAVIGATING = "navigating"
    PINNING = "pinning"
    LANGUAGE_SWITCHING = "language_switching"
    ANALYZING = "analyzing"
    SPEAKING = "speaking"


class TurnTrigger(Enum):
    """What started a turn."""
    SCAN = "scan"
    VOICE = "voice"
    PIN = "pin"
    LANGUAGE = "language"
    PLACE = "place"


# =============================================================================
# Callback Types
# =============================================================================

CompletionCallback: TypeAlias = Callable[[], None]
ResultHandler: TypeAlias = Callable[[str], Awaitable[None]]
EndHandler: TypeAlias = Callable[[], Awaitable[None]]


# =============================================================================
# Capability Protocols
# =============================================================================

@runtime_checkable
class VisionAnalyzer(Protocol):
    """Vision-language scene analysis service."""

    async def analyze(
        self,
        image: bytes,
        prompt: str,
        response_language: str,
        navigation_target: Optional[str] = None,
    ) -> SceneAnalysis:
        """Analyze a JPEG frame. Must return a fail-closed result on error."""
        ...


@runtime_checkable
class VoiceSynthesizer(Protocol):
    """Remote voice synthesis."""

    async def synthesize(self, text: str, voice_profile: Optional[str] = None) -> Optional[bytes]:
        """Return audio, or None when credentials are missing or the call fails."""
        ...


@runtime_checkable
class LocalSynthesizer(Protocol):
    """On-device speech synthesis."""

    async def speak(self, text: str, locale_tag: str, on_complete: CompletionCallback) -> bool:
        """Start speaking; returns False if speech could not be started."""
        ...

    def stop(self) -> None:
        """Stop any speech in progress."""
        ...


@runtime_checkable
class AudioOutput(Protocol):
    """Playback device for synthesized audio and chimes."""

    async def play(self, audio: bytes, on_complete: Optional[CompletionCallback] = None) -> bool:
        """Start playback; returns False if playback could not be started."""
        ...

    def stop(self) -> None:
        """Stop current playback."""
        ...


@runtime_checkable
class SpatialRegistry(Protocol):
    """Persisted registry of known building locations."""

    async def search(self, query: str, building_id: str) -> List[SpatialNode]:
        ...

    async def fetch_verified(self, building_id: str) -> List[SpatialNode]:
        ...

    async def save(self, node: NewSpatialNode) -> str:
        ...


@runtime_checkable
class FrameSource(Protocol):
    """Camera frame provider."""

    async def capture(self) -> bytes:
        """Return the current frame as JPEG bytes."""
        ...


@runtime_checkable
class SpeechRecognizer(Protocol):
    """Speech-to-text capability; re-armed on every language change."""

    def configure(self, locale_tag: str, on_result: ResultHandler, on_end: EndHandler) -> None:
        ...

    def start(self) -> None:
        ...

    def stop(self) -> None:
        ...
