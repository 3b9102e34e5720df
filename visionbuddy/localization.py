"""
Vision Buddy Localization Catalog

Maps (language, message key, parameter) to the sentence spoken to the
user. Language-switch confirmations exist for every supported language;
the other system messages are translated for a subset and fall back to
the English template for the rest.

Usage:
    from visionbuddy.localization import LocalizationCatalog
    from visionbuddy.types import Language

    catalog = LocalizationCatalog()
    catalog.message(Language.SPANISH, "navigating", "the elevator")
    catalog.confirmation(Language.FRENCH)
"""

from __future__ import annotations

import logging
from typing import Dict, FrozenSet, Optional, Union

from visionbuddy.types import Language

logger = logging.getLogger("visionbuddy.localization")


__all__ = [
    "LocalizationCatalog",
    "MESSAGE_KEYS",
    "CONFIRMATIONS",
    "MESSAGES",
]


# Spoken after a language switch, written in the new language
CONFIRMATIONS: Dict[Language, str] = {
    Language.SPANISH: "Idioma cambiado a español.",
    Language.FRENCH: "Langue réglée sur le français.",
    Language.GERMAN: "Sprache auf Deutsch eingestellt.",
    Language.CHINESE: "语言已设置为中文。",
    Language.JAPANESE: "言語が日本語に設定されました。",
    Language.HINDI: "भाषा हिंदी में सेट की गई है।",
    Language.ENGLISH: "Language set to English.",
    Language.PORTUGUESE: "Idioma definido para português.",
    Language.ITALIAN: "Lingua impostata su italiano.",
}

CONFIRMATION_FALLBACK = "Language set to {param}."

# {param} is replaced with the message parameter (a target or a hazard)
MESSAGES: Dict[Language, Dict[str, str]] = {
    Language.ENGLISH: {
        "navigating": "Navigating to {param}. I will guide you.",
        "sign_hunting": "I'll look for signs for {param}. Let's go.",
        "pinned": "Location pinned to spatial registry. Awaiting audit.",
        "pin_failed": "Failed to save location to registry.",
        "nothing_to_pin": "There is nothing to pin yet. Scan the area first.",
        "hazard_warning": "Warning: {param}",
    },
    Language.SPANISH: {
        "navigating": "Navegando hacia {param}. Te guiaré.",
        "sign_hunting": "Buscaré señales para {param}. Vamos.",
        "pinned": "Ubicación fijada en el registro espacial. Esperando auditoría.",
        "pin_failed": "Error al guardar la ubicación en el registro.",
        "nothing_to_pin": "Todavía no hay nada que fijar. Explora la zona primero.",
        "hazard_warning": "Atención: {param}",
    },
    Language.FRENCH: {
        "navigating": "Navigation vers {param}. Je vais vous guider.",
        "sign_hunting": "Je vais chercher des panneaux pour {param}. Allons-y.",
        "pinned": "Emplacement épinglé dans le registre spatial. En attente d'audit.",
        "pin_failed": "Échec de l'enregistrement de l'emplacement.",
        "nothing_to_pin": "Rien à épingler pour l'instant. Analysez d'abord les environs.",
        "hazard_warning": "Attention : {param}",
    },
    Language.GERMAN: {
        "navigating": "Navigiere zu {param}. Ich werde dich führen.",
        "sign_hunting": "Ich werde nach Schildern für {param} suchen. Los geht's.",
        "pinned": "Standort im räumlichen Register markiert. Audit ausstehend.",
        "pin_failed": "Standort konnte nicht im Register gespeichert werden.",
        "nothing_to_pin": "Noch nichts zum Markieren. Bitte zuerst die Umgebung scannen.",
        "hazard_warning": "Achtung: {param}",
    },
    Language.HINDI: {
        "navigating": "{param} की ओर जा रहे हैं। मैं आपका मार्गदर्शन करूँगा।",
        "sign_hunting": "मैं {param} के लिए संकेतों की तलाश करूँगा। चलिए।",
        "pinned": "स्थान स्थानिक रजिस्ट्री में पिन किया गया। ऑडिट की प्रतीक्षा है।",
        "pin_failed": "रजिस्ट्री में स्थान सहेजने में विफल।",
        "nothing_to_pin": "अभी पिन करने के लिए कुछ नहीं है। पहले आसपास स्कैन करें।",
        "hazard_warning": "सावधान: {param}",
    },
}

MESSAGE_KEYS: FrozenSet[str] = frozenset(MESSAGES[Language.ENGLISH])


class LocalizationCatalog:
    """Lookup of user-facing sentences by language and key.

    Holds no state besides the tables; the active language is always
    passed in by the caller.
    """

    def __init__(
        self,
        messages: Optional[Dict[Language, Dict[str, str]]] = None,
        confirmations: Optional[Dict[Language, str]] = None,
    ):
        self._messages = messages if messages is not None else MESSAGES
        self._confirmations = confirmations if confirmations is not None else CONFIRMATIONS

    @property
    def languages(self) -> FrozenSet[Language]:
        """Languages the classifier should recognize by name."""
        return frozenset(Language)

    def supports(self, language: Language) -> bool:
        """True when system messages are translated for this language."""
        return language in self._messages

    def message(self, language: Language, key: str, param: Optional[str] = None) -> str:
        """
        Render a system message.

        Falls back to the English template when the language has no
        translation for the key.

        Args:
            language: Language to speak in
            key: One of MESSAGE_KEYS
            param: Value substituted for {param}

        Raises:
            KeyError: If the key is unknown in every language
        """
        templates = self._messages.get(language) or {}
        template = templates.get(key)
        if template is None:
            template = self._messages[Language.ENGLISH].get(key)
            if template is None:
                raise KeyError(f"Unknown message key: {key}")
            if language is not Language.ENGLISH:
                logger.debug(f"No {language.value} template for '{key}', using English")
        return template.format(param="" if param is None else param)

    def confirmation(self, language: Union[Language, str]) -> str:
        """
        Confirmation spoken after switching to a language.

        Unsupported names get the English template carrying the name.
        """
        if isinstance(language, Language):
            text = self._confirmations.get(language)
            if text is not None:
                return text
            name = language.value
        else:
            name = language
        return CONFIRMATION_FALLBACK.format(param=name)
