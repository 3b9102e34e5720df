"""
Vision Buddy Test Fixtures Package.

Mock implementations of the assistant's collaborators so turns can be
driven end to end without a camera, network services or audio hardware.

Available fixtures:
- MockCamera: Frame source with failure injection
- MockVisionAnalyzer: Scene analyzer returning a configurable result
- MockLocalSpeech, MockVoiceSynthesizer, MockAudioPlayer: Speech output
- MockRecognizer: Speech recognizer driven by the test
- MockRegistry: In-memory registry with failure injection

Usage:
    from tests.fixtures import MockCamera, MockVisionAnalyzer

    async def test_scan():
        camera = MockCamera()
        frame = await camera.capture()
"""

from tests.fixtures.mock_camera import FAKE_JPEG, MockCamera
from tests.fixtures.mock_registry import MockRegistry
from tests.fixtures.mock_speech import (
    MockAudioPlayer,
    MockLocalSpeech,
    MockRecognizer,
    MockVoiceSynthesizer,
    SpokenText,
)
from tests.fixtures.mock_vision import AnalysisCall, MockVisionAnalyzer

__all__ = [
    "FAKE_JPEG",
    "MockCamera",
    "MockRegistry",
    "MockAudioPlayer",
    "MockLocalSpeech",
    "MockRecognizer",
    "MockVoiceSynthesizer",
    "SpokenText",
    "AnalysisCall",
    "MockVisionAnalyzer",
]
