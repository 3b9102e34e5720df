"""
Vision Buddy Scene Analysis Requests

Request construction policy for the vision service and the order in which
an analysis is read back to the user. The vision client only transports
the request; what goes into it is decided here:

- A manual scan sends no question.
- A voice question, a translation request or an unresolved navigation
  request sends the utterance as the question.
- The active navigation target is always attached, so passive scans keep
  surfacing directions.
- The language is the effective language for this one request.

Hazards are safety-critical and always come first when speaking.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from visionbuddy.types import Language, SceneAnalysis, TurnTrigger

__all__ = [
    "SceneRequest",
    "AnnouncementPart",
    "Announcement",
    "build_scene_request",
    "build_prompt",
    "announcement_order",
]


@dataclass(frozen=True)
class SceneRequest:
    """Everything the vision service needs for one analysis."""
    image: bytes
    language: Language
    question: Optional[str] = None
    navigation_target: Optional[str] = None

    @property
    def prompt(self) -> str:
        return build_prompt(self.question, self.navigation_target, self.language)


def build_prompt(question: Optional[str], navigation_target: Optional[str], language: Language) -> str:
    """User prompt: the question wins, then the target, then a plain description."""
    if question:
        return (
            f'The user is asking: "{question}". Based on the image, '
            f"provide a precise spatial answer in {language.value}."
        )
    if navigation_target:
        return (
            f"I am looking for the {navigation_target}. "
            f"Guide me based on what you see in {language.value}."
        )
    return f"Describe the scene ahead in {language.value}."


def build_scene_request(
    image: bytes,
    language: Language,
    question: Optional[str] = None,
    navigation_target: Optional[str] = None,
) -> SceneRequest:
    """
    Build a request, normalizing blank values to None.

    Args:
        image: JPEG frame
        language: Effective language (translation override or active language)
        question: Utterance to answer, None for a manual scan
        navigation_target: Current navigation target, if any
    """
    question = question.strip() if question and question.strip() else None
    navigation_target = (
        navigation_target.strip() if navigation_target and navigation_target.strip() else None
    )
    return SceneRequest(
        image=image,
        language=language,
        question=question,
        navigation_target=navigation_target,
    )


class AnnouncementPart(Enum):
    HAZARD = "hazard"
    NAVIGATION = "navigation"
    DESCRIPTION = "description"


@dataclass(frozen=True)
class Announcement:
    """One sentence to speak, tagged with where it came from."""
    part: AnnouncementPart
    text: str


def announcement_order(
    analysis: SceneAnalysis,
    trigger: TurnTrigger,
    has_target: bool,
    speak_scan_description: bool = False,
) -> List[Announcement]:
    """
    Ordered list of analysis parts to speak.

    Hazard first, then navigation, then the description. A scan speaks
    navigation only while a target is set and leaves the description for
    the display unless speak_scan_description is enabled. Hazard text is
    returned raw; the caller wraps it in the localized warning.
    """
    parts: List[Announcement] = []
    if analysis.hazard:
        parts.append(Announcement(AnnouncementPart.HAZARD, analysis.hazard))

    if trigger is TurnTrigger.SCAN:
        if has_target and analysis.navigation:
            parts.append(Announcement(AnnouncementPart.NAVIGATION, analysis.navigation))
        if speak_scan_description and analysis.description:
            parts.append(Announcement(AnnouncementPart.DESCRIPTION, analysis.description))
        return parts

    if analysis.navigation:
        parts.append(Announcement(AnnouncementPart.NAVIGATION, analysis.navigation))
    if analysis.description:
        parts.append(Announcement(AnnouncementPart.DESCRIPTION, analysis.description))
    return parts
