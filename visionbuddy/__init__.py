"""
Vision Buddy - Voice Navigation Assistant for Blind and Low-Vision Users

Describes the scene ahead from a camera frame, warns about hazards first,
guides the user toward a spoken destination and remembers locations in a
shared building registry.

Architecture:
    - One turn at a time: triggers arriving mid-turn are rejected
    - Fail closed: a vision failure is spoken as a warning, never silence
    - Preemptive speech: a new sentence always cuts off the previous one
"""

__version__ = "0.1.0"

# Version tuple for programmatic comparison
VERSION_INFO = (0, 1, 0)

from visionbuddy.exceptions import VisionBuddyError

from visionbuddy.types import (
    Coordinates,
    Language,
    SceneAnalysis,
    SpatialNode,
    TurnState,
)

from visionbuddy.orchestrator import (
    EventType,
    InteractionOrchestrator,
    OrchestratorEvent,
)

__all__ = [
    "__version__",
    "VERSION_INFO",
    "VisionBuddyError",
    "Coordinates",
    "Language",
    "SceneAnalysis",
    "SpatialNode",
    "TurnState",
    "EventType",
    "InteractionOrchestrator",
    "OrchestratorEvent",
]
