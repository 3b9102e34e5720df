"""
Vision Buddy Interaction Orchestrator
Turn state machine for the navigation assistant.

One turn runs at a time. A trigger that arrives while a turn is in
progress is rejected, not queued: by the time it would run, the scene it
was about has changed.

Turns:
    scan:     IDLE -> CAPTURING -> ANALYZING -> SPEAKING -> IDLE
    voice:    IDLE -> LISTENING -> CLASSIFYING ->
                  {NAVIGATING | PINNING | LANGUAGE_SWITCHING | ANALYZING}
                  -> SPEAKING -> IDLE
    pin:      IDLE -> PINNING -> SPEAKING -> IDLE
    language: IDLE -> LANGUAGE_SWITCHING -> SPEAKING -> IDLE
    place:    IDLE -> NAVIGATING -> SPEAKING -> IDLE

Within a turn the registry is consulted before the vision call and both
before anything is spoken. Hazards are always spoken first, preceded by
a chime.

Usage:
    orchestrator = InteractionOrchestrator(
        frames=camera, vision=GeminiVisionClient(...), speech=speech,
        registry=SnowflakeRegistryClient(...), recognizer=recognizer,
    )
    await orchestrator.start()
    await orchestrator.on_scan_requested()
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from visionbuddy.config import InteractionConfig
from visionbuddy.exceptions import RegistryError
from visionbuddy.intent import IntentClassifier
from visionbuddy.localization import LocalizationCatalog
from visionbuddy.navigation import NavigationStateManager, TargetResolution
from visionbuddy.scene import Announcement, AnnouncementPart, announcement_order, build_scene_request
from visionbuddy.speech_output import SpeechOutput
from visionbuddy.types import (
    Coordinates,
    FrameSource,
    FreeformQuestion,
    Intent,
    Language,
    LanguageState,
    LanguageSwitch,
    NavigateTo,
    NewSpatialNode,
    PinLocation,
    SceneAnalysis,
    SpatialNode,
    SpatialRegistry,
    SpeechRecognizer,
    TranslateTo,
    TurnState,
    TurnTrigger,
    Utterance,
    VisionAnalyzer,
)

logger = logging.getLogger("visionbuddy.orchestrator")


__all__ = [
    "InteractionOrchestrator",
    "EventType",
    "OrchestratorEvent",
    "TurnMetrics",
    "random_position",
]


DEFAULT_BUILDING_ID = "uni_library_main"


def random_position() -> Coordinates:
    """Random point in the 0-100 building plane."""
    return Coordinates(random.uniform(0, 100), random.uniform(0, 100))


# =============================================================================
# Event System
# =============================================================================


class EventType(Enum):
    """Types of orchestrator events."""
    STATE_CHANGED = "state_changed"
    TRIGGER_REJECTED = "trigger_rejected"

    # Turn output
    ANALYSIS_READY = "analysis_ready"
    UTTERANCE_RECEIVED = "utterance_received"

    # Interaction state
    LANGUAGE_CHANGED = "language_changed"
    NAVIGATION_CHANGED = "navigation_changed"
    BALANCE_CHANGED = "balance_changed"

    # Registry
    REGISTRY_STATUS = "registry_status"
    NODE_PINNED = "node_pinned"
    PIN_FAILED = "pin_failed"

    # System
    STATUS_MESSAGE = "status_message"
    SERVICE_ERROR = "service_error"


@dataclass
class OrchestratorEvent:
    """Event emitted by the orchestrator."""
    event_type: EventType
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = ""
    data: Dict[str, Any] = field(default_factory=dict)
    message: str = ""


# =============================================================================
# Metrics
# =============================================================================


@dataclass
class TurnMetrics:
    """
    Turn counters and latency.

    A rejected trigger never started a turn and is counted separately.
    """
    turns_completed: int = 0
    turns_failed: int = 0
    triggers_rejected: int = 0
    total_turn_time_ms: float = 0.0
    min_latency_ms: float = float('inf')
    max_latency_ms: float = 0.0
    turns_by_trigger: Dict[str, int] = field(default_factory=dict)
    errors_by_service: Dict[str, int] = field(default_factory=dict)

    @property
    def avg_latency_ms(self) -> float:
        """Average turn latency in milliseconds."""
        turns = self.turns_completed + self.turns_failed
        if turns == 0:
            return 0.0
        return self.total_turn_time_ms / turns

    def record_turn(self, trigger: TurnTrigger, latency_ms: float, success: bool):
        if success:
            self.turns_completed += 1
        else:
            self.turns_failed += 1
        self.turns_by_trigger[trigger.value] = self.turns_by_trigger.get(trigger.value, 0) + 1
        self.total_turn_time_ms += latency_ms
        self.min_latency_ms = min(self.min_latency_ms, latency_ms)
        self.max_latency_ms = max(self.max_latency_ms, latency_ms)

    def record_rejection(self):
        self.triggers_rejected += 1

    def record_error(self, service: str):
        self.errors_by_service[service] = self.errors_by_service.get(service, 0) + 1

    def to_dict(self) -> Dict[str, Any]:
        """Convert metrics to dictionary."""
        return {
            "turns_completed": self.turns_completed,
            "turns_failed": self.turns_failed,
            "triggers_rejected": self.triggers_rejected,
            "avg_latency_ms": self.avg_latency_ms,
            "min_latency_ms": self.min_latency_ms if self.min_latency_ms != float('inf') else 0,
            "max_latency_ms": self.max_latency_ms,
            "turns_by_trigger": self.turns_by_trigger.copy(),
            "errors_by_service": self.errors_by_service.copy(),
        }


# =============================================================================
# Orchestrator
# =============================================================================


class InteractionOrchestrator:
    """
    Drives turns from UI triggers and recognizer callbacks.

    Args:
        frames: Camera frame source
        vision: Scene analyzer
        speech: Speech output chain
        registry: Spatial registry; None runs without one
        recognizer: Speech recognizer; None disables voice turns
        config: Interaction settings
        building_id: Building used for registry lookups and pins
        catalog: Localized sentences
        language_state: Shared active language
        navigation: Navigation state manager (built from registry if None)
        position_source: Coordinates for new pins
        hazard_cue: WAV bytes played before a hazard warning
    """

    def __init__(
        self,
        frames: FrameSource,
        vision: VisionAnalyzer,
        speech: SpeechOutput,
        registry: Optional[SpatialRegistry] = None,
        recognizer: Optional[SpeechRecognizer] = None,
        config: Optional[InteractionConfig] = None,
        building_id: str = DEFAULT_BUILDING_ID,
        catalog: Optional[LocalizationCatalog] = None,
        language_state: Optional[LanguageState] = None,
        navigation: Optional[NavigationStateManager] = None,
        position_source: Optional[Callable[[], Coordinates]] = None,
        hazard_cue: Optional[bytes] = None,
    ):
        self.frames = frames
        self.vision = vision
        self.speech = speech
        self.registry = registry
        self.recognizer = recognizer
        self.config = config or InteractionConfig()
        self.building_id = building_id
        self.catalog = catalog or LocalizationCatalog()
        self.language = language_state or LanguageState(self.config.language)
        self.navigation = navigation or NavigationStateManager(registry)
        self.position_source = position_source or random_position
        self.hazard_cue = hazard_cue
        self.classifier = IntentClassifier(self.catalog.languages)

        self._state = TurnState.IDLE
        self._turn_trigger: Optional[TurnTrigger] = None
        self._turn_started: float = 0.0

        self.balance: float = self.config.initial_balance
        self.last_analysis: Optional[SceneAnalysis] = None
        self.last_description: Optional[str] = None
        self.golden_path: List[SpatialNode] = []
        self.registry_connected = False
        self.status_message = ""

        self.metrics = TurnMetrics()
        self._event_listeners: Dict[EventType, List[Callable]] = {}

        logger.info("Interaction orchestrator initialized")

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def state(self) -> TurnState:
        return self._state

    @property
    def is_idle(self) -> bool:
        return self._state is TurnState.IDLE

    @property
    def navigation_target(self) -> Optional[str]:
        return self.navigation.target

    def snapshot(self) -> Dict[str, Any]:
        """Current state for display."""
        return {
            "state": self._state.value,
            "language": self.language.current.value,
            "navigation_target": self.navigation.target,
            "balance": round(self.balance, 6),
            "registry_connected": self.registry_connected,
            "status_message": self.status_message,
            "golden_path_nodes": len(self.golden_path),
            "last_description": self.last_description,
            "is_speaking": self.speech.is_playing,
        }

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Arm the recognizer and load the golden path."""
        self._arm_recognizer()
        await self.load_golden_path()

    async def shutdown(self) -> None:
        """Stop speech and listening."""
        if self._state is TurnState.LISTENING and self.recognizer is not None:
            self.recognizer.stop()
        self.speech.stop()
        logger.info("Interaction orchestrator shut down")

    def _arm_recognizer(self) -> None:
        if self.recognizer is None:
            return
        self.recognizer.configure(
            self.language.current.locale_tag,
            self.on_utterance,
            self.on_recognition_end,
        )
        logger.debug(f"Recognizer armed for {self.language.current.locale_tag}")

    async def load_golden_path(self) -> bool:
        """
        Fetch audited nodes and update the registry status indicator.

        Returns:
            True if the registry answered
        """
        if self.registry is None:
            self.registry_connected = False
            await self._set_status("Spatial registry not configured")
            return False

        try:
            self.golden_path = await self.registry.fetch_verified(self.building_id)
        except RegistryError as e:
            logger.warning(f"Failed to load spatial data: {e}")
            await self._service_error("registry")
            self.registry_connected = False
            await self._set_status(str(e))
            await self.emit_event(EventType.REGISTRY_STATUS, "registry", {"connected": False}, str(e))
            return False

        self.registry_connected = True
        self.status_message = ""
        logger.info(f"Loaded {len(self.golden_path)} golden path nodes for {self.building_id}")
        await self.emit_event(
            EventType.REGISTRY_STATUS,
            "registry",
            {"connected": True, "nodes": len(self.golden_path)},
        )
        return True

    # =========================================================================
    # Turn Bookkeeping
    # =========================================================================

    def _try_begin(self, trigger: TurnTrigger, first_state: TurnState) -> bool:
        """Claim the IDLE gate. Check and claim happen without awaiting."""
        if self._state is not TurnState.IDLE:
            self.metrics.record_rejection()
            logger.info(f"Rejected {trigger.value} trigger while {self._state.value}")
            return False
        self._state = first_state
        self._turn_trigger = trigger
        self._turn_started = time.time()
        return True

    async def _enter(self, state: TurnState) -> None:
        previous = self._state
        self._state = state
        if previous is not state:
            logger.debug(f"Turn state {previous.value} -> {state.value}")
        await self.emit_event(EventType.STATE_CHANGED, "orchestrator", {"state": state.value})

    async def _finish_turn(self, success: bool) -> None:
        trigger = self._turn_trigger
        if trigger is not None:
            latency_ms = (time.time() - self._turn_started) * 1000
            self.metrics.record_turn(trigger, latency_ms, success)
            logger.debug(f"{trigger.value} turn finished in {latency_ms:.0f}ms (success={success})")
        self._turn_trigger = None
        await self._enter(TurnState.IDLE)

    async def _reject(self, trigger: TurnTrigger) -> bool:
        await self.emit_event(
            EventType.TRIGGER_REJECTED,
            "orchestrator",
            {"trigger": trigger.value, "state": self._state.value},
        )
        return False

    async def _service_error(self, service: str) -> None:
        self.metrics.record_error(service)
        await self.emit_event(EventType.SERVICE_ERROR, service, {"service": service})

    async def _set_status(self, message: str) -> None:
        self.status_message = message
        await self.emit_event(EventType.STATUS_MESSAGE, "orchestrator", message=message)

    # =========================================================================
    # Triggers
    # =========================================================================

    async def on_scan_requested(self) -> bool:
        """
        Manual scan: describe hazards and guidance for the frame ahead.

        Returns:
            False if rejected because a turn is in progress
        """
        if not self._try_begin(TurnTrigger.SCAN, TurnState.CAPTURING):
            return await self._reject(TurnTrigger.SCAN)

        success = False
        try:
            await self._enter(TurnState.CAPTURING)
            language = self.language.current
            analysis = await self._capture_and_analyze(language, question=None)
            if analysis is None:
                return True

            await self._enter(TurnState.SPEAKING)
            parts = announcement_order(
                analysis,
                TurnTrigger.SCAN,
                self.navigation.has_target,
                self.config.speak_scan_description,
            )
            await self._speak_parts(parts, language)

            success = not analysis.is_fallback
            if success:
                await self._reward()
            return True
        finally:
            await self._finish_turn(success)

    async def on_voice_toggle(self) -> bool:
        """
        Start listening, or cancel listening if already started.

        Returns:
            False if rejected or no recognizer is available
        """
        if self._state is TurnState.LISTENING:
            logger.info("Listening cancelled by user")
            if self.recognizer is not None:
                self.recognizer.stop()
            await self._finish_turn(False)
            return True

        if self.recognizer is None:
            logger.warning("Voice input unavailable: no speech recognizer")
            return False

        if not self._try_begin(TurnTrigger.VOICE, TurnState.LISTENING):
            return await self._reject(TurnTrigger.VOICE)

        self.speech.stop()
        try:
            self.recognizer.start()
        except Exception as e:
            logger.error(f"Speech recognizer failed to start: {e}")
            await self._service_error("recognizer")
            await self._finish_turn(False)
            return False

        await self._enter(TurnState.LISTENING)
        return True

    async def on_recognition_end(self) -> None:
        """Recognizer stopped; without a result the turn ends here."""
        if self._state is TurnState.LISTENING:
            logger.debug("Recognition ended without a result")
            await self._finish_turn(False)

    async def on_utterance(self, text: str) -> None:
        """Recognizer result; runs the rest of the voice turn."""
        if self._state is not TurnState.LISTENING:
            logger.debug(f"Ignoring utterance outside a listening turn: {text!r}")
            return

        if not text or not text.strip():
            await self._finish_turn(False)
            return

        utterance = Utterance(text, language_hint=self.language.current)
        success = False
        try:
            await self._enter(TurnState.CLASSIFYING)
            await self.emit_event(
                EventType.UTTERANCE_RECEIVED,
                "recognizer",
                {"text": utterance.text, "language": utterance.language_hint.value},
            )
            intent = self.classifier.classify(utterance)
            logger.info(f"Utterance classified as {intent.kind.value}")
            success = await self._dispatch(intent, text)
        finally:
            await self._finish_turn(success)

    async def on_pin_requested(self) -> bool:
        """
        Pin the last described scene to the registry.

        Returns:
            False if rejected because a turn is in progress
        """
        if not self._try_begin(TurnTrigger.PIN, TurnState.PINNING):
            return await self._reject(TurnTrigger.PIN)

        success = False
        try:
            success = await self._pin_location()
            return True
        finally:
            await self._finish_turn(success)

    async def on_language_selected(self, language: Union[Language, str]) -> bool:
        """
        Persistently switch the active language.

        Returns:
            False if rejected or the language is not supported
        """
        if not isinstance(language, Language):
            try:
                language = Language.from_name(language)
            except ValueError as e:
                logger.warning(str(e))
                return False

        if not self._try_begin(TurnTrigger.LANGUAGE, TurnState.LANGUAGE_SWITCHING):
            return await self._reject(TurnTrigger.LANGUAGE)

        success = False
        try:
            success = await self._switch_language(language)
            return True
        finally:
            await self._finish_turn(success)

    def find_place(self, place: Union[int, str]) -> Optional[SpatialNode]:
        """
        Look up a saved place on the golden path.

        Args:
            place: Node id, or position in the golden path counting from 1
        """
        if isinstance(place, int):
            node = self.golden_path[place - 1] if 1 <= place <= len(self.golden_path) else None
        else:
            node = next((n for n in self.golden_path if n.id == place), None)
        if node is None or not node.description.strip():
            return None
        return node

    async def on_place_selected(self, place: Union[int, str]) -> bool:
        """
        Navigate to a verified saved place.

        Returns:
            False if rejected or the place is not on the golden path
        """
        node = self.find_place(place)
        if node is None:
            logger.warning(f"No saved place {place!r} on the golden path")
            return False

        if not self._try_begin(TurnTrigger.PLACE, TurnState.NAVIGATING):
            return await self._reject(TurnTrigger.PLACE)

        success = False
        try:
            await self._enter(TurnState.NAVIGATING)
            language = self.language.current
            resolution = self.navigation.select_node(node)
            await self.emit_event(
                EventType.NAVIGATION_CHANGED,
                "navigation",
                {"target": self.navigation.target, "registry_match": True, "node_id": node.id},
            )

            await self._enter(TurnState.SPEAKING)
            await self._say(
                self.catalog.message(language, resolution.announcement_key, node.description),
                language,
            )
            success = True
            return True
        finally:
            await self._finish_turn(success)

    async def on_navigation_cancelled(self) -> bool:
        """Clear the navigation target. Allowed in any state."""
        self.navigation.cancel()
        await self.emit_event(EventType.NAVIGATION_CHANGED, "navigation", {"target": None})
        return True

    # =========================================================================
    # Voice Turn Handlers
    # =========================================================================

    async def _dispatch(self, intent: Intent, text: str) -> bool:
        if isinstance(intent, LanguageSwitch):
            return await self._switch_language(intent.target_language)
        if isinstance(intent, PinLocation):
            return await self._pin_location()
        if isinstance(intent, NavigateTo):
            return await self._navigate(intent)
        if isinstance(intent, TranslateTo):
            return await self._answer(intent.text, intent.target_language)
        if isinstance(intent, FreeformQuestion):
            return await self._answer(intent.text, self.language.current)
        raise TypeError(f"Unhandled intent: {intent!r}")

    async def _switch_language(self, language: Language) -> bool:
        await self._enter(TurnState.LANGUAGE_SWITCHING)
        previous = self.language.current
        self.language.current = language
        self._arm_recognizer()
        logger.info(f"Language switched {previous.value} -> {language.value}")
        await self.emit_event(
            EventType.LANGUAGE_CHANGED,
            "orchestrator",
            {"language": language.value, "locale": language.locale_tag},
        )

        await self._enter(TurnState.SPEAKING)
        await self._say(self.catalog.confirmation(language), language)
        return True

    async def _pin_location(self) -> bool:
        await self._enter(TurnState.PINNING)
        language = self.language.current

        if not self.last_description:
            await self._enter(TurnState.SPEAKING)
            await self._say(self.catalog.message(language, "nothing_to_pin"), language)
            return False

        if self.registry is None:
            await self._set_status("Spatial registry not configured")
            await self._enter(TurnState.SPEAKING)
            await self._say(self.catalog.message(language, "pin_failed"), language)
            return False

        node = NewSpatialNode(
            building_id=self.building_id,
            coordinates=self.position_source(),
            description=self.last_description,
            is_golden_path=False,
        )

        try:
            node_id = await self.registry.save(node)
        except RegistryError as e:
            logger.error(f"Pin failed: {e}")
            await self._service_error("registry")
            await self._set_status(str(e))
            await self.emit_event(EventType.PIN_FAILED, "registry", message=str(e))
            await self._enter(TurnState.SPEAKING)
            await self._say(self.catalog.message(language, "pin_failed"), language)
            return False

        # Refresh first; a successful load clears the status line
        await self.load_golden_path()
        await self._set_status(f"Location saved. Node ID: {node_id}")
        await self.emit_event(EventType.NODE_PINNED, "registry", {"node_id": node_id})

        await self._enter(TurnState.SPEAKING)
        await self._say(self.catalog.message(language, "pinned"), language)
        return True

    async def _navigate(self, intent: NavigateTo) -> bool:
        await self._enter(TurnState.NAVIGATING)
        language = self.language.current
        resolution: TargetResolution = await self.navigation.resolve_target(
            intent.target_description, self.building_id
        )
        await self.emit_event(
            EventType.NAVIGATION_CHANGED,
            "navigation",
            {
                "target": self.navigation.target,
                "registry_match": resolution.matched is not None,
            },
        )

        announcement = None
        if resolution.state is not None:
            announcement = self.catalog.message(
                language, resolution.announcement_key, resolution.state.target_description
            )

        # A registry hit already names the target; only a miss sends the question
        question = None if resolution.matched is not None else intent.target_description
        analysis = await self._capture_and_analyze(language, question)

        await self._enter(TurnState.SPEAKING)
        parts: List[Announcement] = []
        if analysis is not None:
            parts = announcement_order(analysis, TurnTrigger.VOICE, self.navigation.has_target)
        if announcement:
            # After the hazard, before the guidance
            index = 1 if parts and parts[0].part is AnnouncementPart.HAZARD else 0
            parts.insert(index, Announcement(AnnouncementPart.NAVIGATION, announcement))
        await self._speak_parts(parts, language)

        return analysis is not None and not analysis.is_fallback

    async def _answer(self, question: str, language: Language) -> bool:
        analysis = await self._capture_and_analyze(language, question)
        if analysis is None:
            return False

        await self._enter(TurnState.SPEAKING)
        parts = announcement_order(analysis, TurnTrigger.VOICE, self.navigation.has_target)
        await self._speak_parts(parts, language)
        return not analysis.is_fallback

    # =========================================================================
    # Scene Analysis
    # =========================================================================

    async def _capture_and_analyze(self, language: Language, question: Optional[str]) -> Optional[SceneAnalysis]:
        """
        Capture a frame and analyze it.

        Returns:
            The analysis (fail-closed when the analyzer raised), or None when
            no frame could be captured
        """
        try:
            image = await self.frames.capture()
        except Exception as e:
            logger.error(f"Frame capture failed: {e}")
            await self._service_error("camera")
            await self._set_status("Camera unavailable")
            return None

        await self._enter(TurnState.ANALYZING)
        request = build_scene_request(image, language, question, self.navigation.target)
        try:
            analysis = await self.vision.analyze(
                request.image,
                request.prompt,
                request.language.value,
                request.navigation_target,
            )
        except Exception as e:
            logger.error(f"Scene analysis raised: {e}")
            analysis = SceneAnalysis.fail_closed()

        if analysis.is_fallback:
            await self._service_error("vision")
        else:
            self.last_description = analysis.description
        self.last_analysis = analysis

        await self.emit_event(
            EventType.ANALYSIS_READY,
            "vision",
            {
                "description": analysis.description,
                "hazard": analysis.hazard,
                "navigation": analysis.navigation,
                "is_fallback": analysis.is_fallback,
                "language": language.value,
            },
            analysis.description,
        )
        return analysis

    # =========================================================================
    # Speech
    # =========================================================================

    async def _say(self, text: str, language: Language) -> bool:
        """Speak one sentence and wait for it to finish."""
        started = await self.speech.speak(text, language)
        if started and not await self.speech.wait_until_done(self.config.playback_timeout):
            self.speech.stop()
        return started

    async def _play_hazard_cue(self) -> None:
        if self.hazard_cue is None:
            return
        if await self.speech.play_cue(self.hazard_cue):
            if not await self.speech.wait_until_done(self.config.playback_timeout):
                self.speech.stop()

    async def _speak_parts(self, parts: List[Announcement], language: Language) -> None:
        for part in parts:
            if part.part is AnnouncementPart.HAZARD:
                await self._play_hazard_cue()
                text = self.catalog.message(language, "hazard_warning", part.text)
            else:
                text = part.text
            await self._say(text, language)

    # =========================================================================
    # Rewards
    # =========================================================================

    async def _reward(self) -> None:
        self.balance += self.config.reward_increment
        await self.emit_event(
            EventType.BALANCE_CHANGED,
            "orchestrator",
            {"balance": self.balance, "increment": self.config.reward_increment},
        )

    # =========================================================================
    # Event System
    # =========================================================================

    def subscribe(self, event_type: EventType, listener: Callable[[OrchestratorEvent], None]):
        """
        Subscribe to an event type.

        Args:
            event_type: Type of event to listen for
            listener: Callback (sync or async) invoked with the event
        """
        self._event_listeners.setdefault(event_type, []).append(listener)
        logger.debug(f"Subscribed listener to {event_type.value}")

    def unsubscribe(self, event_type: EventType, listener: Callable[[OrchestratorEvent], None]):
        if event_type in self._event_listeners:
            try:
                self._event_listeners[event_type].remove(listener)
            except ValueError:
                pass

    async def emit_event(
        self,
        event_type: EventType,
        source: str = "",
        data: Optional[Dict[str, Any]] = None,
        message: str = ""
    ):
        """
        Emit an event to all subscribed listeners.

        Listener errors are logged and never interrupt a turn.
        """
        event = OrchestratorEvent(
            event_type=event_type,
            source=source,
            data=data or {},
            message=message,
        )

        for listener in list(self._event_listeners.get(event_type, [])):
            try:
                if asyncio.iscoroutinefunction(listener):
                    await listener(event)
                else:
                    listener(event)
            except Exception as e:
                logger.error(f"Event listener error for {event_type.value}: {e}")

    def get_metrics(self) -> Dict[str, Any]:
        """Get current turn metrics."""
        return self.metrics.to_dict()
