"""
Vision Buddy Intent Classifier

Turns a transcribed utterance into exactly one Intent using an ordered
checklist of keyword rules. The first rule that matches wins, and the
order is part of the contract because the keyword sets overlap:

    1. Language switch   ("switch to french")
    2. Pin location      ("pin this", or just "save")
    3. Translate         ("translate to spanish")
    4. Navigate          ("where is the restroom")
    5. Freeform question (anything no rule matched)

Pin is checked after language switch so "switch to French" is never a
pin, and before navigate so "save this exit" pins instead of navigating.

Usage:
    from visionbuddy.intent import classify

    intent = classify("where is the elevator")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Union

from visionbuddy.types import (
    FreeformQuestion,
    Intent,
    Language,
    LanguageSwitch,
    NavigateTo,
    PinLocation,
    TranslateTo,
    Utterance,
)

logger = logging.getLogger("visionbuddy.intent")


__all__ = [
    "IntentClassifier",
    "IntentRule",
    "classify",
    "LANGUAGE_SWITCH_PHRASES",
    "PIN_KEYWORDS",
    "TRANSLATE_PHRASE",
    "NAVIGATION_KEYWORDS",
]


LANGUAGE_SWITCH_PHRASES = ("speak in", "switch to", "talk in", "change language to")

PIN_KEYWORDS = (
    "pin this",
    "save this",
    "remember this",
    "pin location",
    "save location",
    "pin",
    "save",
)

TRANSLATE_PHRASE = "translate to"

NAVIGATION_KEYWORDS = (
    "where is",
    "find",
    "navigate to",
    "go to",
    "looking for",
    "washroom",
    "toilet",
    "exit",
    "elevator",
    "restroom",
)


@dataclass(frozen=True)
class IntentRule:
    """One entry of the checklist: a name and a matcher.

    The matcher receives the original utterance and its lowercased form
    and returns an Intent, or None when the rule does not apply.
    """
    name: str
    match: Callable[[str, str], Optional[Intent]]


def _find_language(lowered: str, phrases: Iterable[str], languages: Sequence[Language]) -> Optional[Language]:
    for language in languages:
        name = language.value.lower()
        for phrase in phrases:
            if f"{phrase} {name}" in lowered:
                return language
    return None


class IntentClassifier:
    """Ordered keyword classifier.

    Args:
        known_languages: Languages recognized by name. Matching follows the
            Language enum order so results are deterministic.
    """

    def __init__(self, known_languages: Optional[Iterable[Language]] = None):
        known = set(known_languages) if known_languages is not None else set(Language)
        self.known_languages: List[Language] = [lang for lang in Language if lang in known]
        self.rules: List[IntentRule] = [
            IntentRule("language_switch", self._match_language_switch),
            IntentRule("pin", self._match_pin),
            IntentRule("translate", self._match_translate),
            IntentRule("navigate", self._match_navigate),
        ]

    def classify(self, utterance: Union[Utterance, str]) -> Intent:
        """
        Classify an utterance.

        Args:
            utterance: Recognizer output, or raw transcribed text

        Returns:
            The intent of the first matching rule, else a FreeformQuestion
        """
        text = utterance.text if isinstance(utterance, Utterance) else utterance
        lowered = text.lower()
        for rule in self.rules:
            intent = rule.match(text, lowered)
            if intent is not None:
                logger.debug(f"Utterance {text!r} matched rule '{rule.name}'")
                return intent
        return FreeformQuestion(text)

    def _match_language_switch(self, utterance: str, lowered: str) -> Optional[Intent]:
        language = _find_language(lowered, LANGUAGE_SWITCH_PHRASES, self.known_languages)
        return LanguageSwitch(language) if language else None

    def _match_pin(self, utterance: str, lowered: str) -> Optional[Intent]:
        if any(keyword in lowered for keyword in PIN_KEYWORDS):
            return PinLocation()
        return None

    def _match_translate(self, utterance: str, lowered: str) -> Optional[Intent]:
        language = _find_language(lowered, (TRANSLATE_PHRASE,), self.known_languages)
        return TranslateTo(language, utterance) if language else None

    def _match_navigate(self, utterance: str, lowered: str) -> Optional[Intent]:
        if any(keyword in lowered for keyword in NAVIGATION_KEYWORDS):
            return NavigateTo(utterance)
        return None


def classify(utterance: Union[Utterance, str], known_languages: Optional[Iterable[Language]] = None) -> Intent:
    """Classify with a one-off classifier. See IntentClassifier.classify."""
    return IntentClassifier(known_languages).classify(utterance)
