"""
Vision Buddy Vision Service

Scene analysis through the Gemini vision-language model.
"""

from .gemini_client import (
    DEFAULT_MODEL,
    RESPONSE_SCHEMA,
    GeminiVisionClient,
    parse_analysis,
    system_instruction,
)

__all__ = [
    "GeminiVisionClient",
    "DEFAULT_MODEL",
    "RESPONSE_SCHEMA",
    "parse_analysis",
    "system_instruction",
]
