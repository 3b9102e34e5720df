"""
Pytest Fixtures for Vision Buddy Testing.

Shared fixtures wiring an InteractionOrchestrator to mock collaborators.

Usage:
    async def test_scan(orchestrator, vision):
        await orchestrator.on_scan_requested()
        assert len(vision.calls) == 1
"""

from typing import List

import pytest

from tests.fixtures import (
    MockAudioPlayer,
    MockCamera,
    MockLocalSpeech,
    MockRecognizer,
    MockRegistry,
    MockVisionAnalyzer,
    MockVoiceSynthesizer,
)
from visionbuddy.config import InteractionConfig
from visionbuddy.orchestrator import EventType, InteractionOrchestrator, OrchestratorEvent
from visionbuddy.speech_output import SpeechOutput
from visionbuddy.types import Coordinates, SpatialNode

BUILDING = "uni_library_main"


@pytest.fixture
def camera() -> MockCamera:
    return MockCamera()


@pytest.fixture
def vision() -> MockVisionAnalyzer:
    return MockVisionAnalyzer()


@pytest.fixture
def local_speech() -> MockLocalSpeech:
    return MockLocalSpeech()


@pytest.fixture
def player() -> MockAudioPlayer:
    return MockAudioPlayer()


@pytest.fixture
def speech(local_speech: MockLocalSpeech, player: MockAudioPlayer) -> SpeechOutput:
    """Speech output with no remote voice, so every sentence goes to local speech."""
    return SpeechOutput(local=local_speech, remote=None, player=player)


@pytest.fixture
def recognizer() -> MockRecognizer:
    return MockRecognizer()


@pytest.fixture
def golden_nodes() -> List[SpatialNode]:
    return [
        SpatialNode(
            id="node_elev00001",
            building_id=BUILDING,
            coordinates=Coordinates(10.0, 20.0),
            description="Main elevator bank next to the circulation desk",
            is_golden_path=True,
        ),
        SpatialNode(
            id="node_pin000001",
            building_id=BUILDING,
            coordinates=Coordinates(50.0, 50.0),
            description="Quiet study room with round tables",
            is_golden_path=False,
        ),
    ]


@pytest.fixture
def registry(golden_nodes: List[SpatialNode]) -> MockRegistry:
    return MockRegistry(golden_nodes)


@pytest.fixture
def orchestrator(camera, vision, speech, registry, recognizer) -> InteractionOrchestrator:
    return InteractionOrchestrator(
        frames=camera,
        vision=vision,
        speech=speech,
        registry=registry,
        recognizer=recognizer,
        config=InteractionConfig(playback_timeout=1.0),
        building_id=BUILDING,
        position_source=lambda: Coordinates(42.0, 7.0),
        hazard_cue=b"CHIME",
    )


@pytest.fixture
def events(orchestrator: InteractionOrchestrator) -> List[OrchestratorEvent]:
    """Every event the orchestrator emits, in order."""
    received: List[OrchestratorEvent] = []
    for event_type in EventType:
        orchestrator.subscribe(event_type, received.append)
    return received


@pytest.fixture
def remote_voice() -> MockVoiceSynthesizer:
    return MockVoiceSynthesizer()
