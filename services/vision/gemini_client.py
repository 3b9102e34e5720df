"""
Vision Buddy Scene Analysis Client
Gemini vision-language model via google-genai

Sends one JPEG frame plus a prompt and reads back a JSON object with
description, hazard and navigation fields. Any failure (missing key,
transport error, unparseable reply) returns SceneAnalysis.fail_closed(),
which carries a hazard so the user is warned rather than told the path
is clear.

Usage:
    client = GeminiVisionClient(api_key=os.environ["GEMINI_API_KEY"])
    analysis = await client.analyze(jpeg, prompt, "English", "elevator")
"""

import json
import logging
import re
import time
from typing import Any, Dict, Optional

from google import genai
from google.genai.types import GenerateContentConfig, Part

from visionbuddy.exceptions import ServiceConnectionError
from visionbuddy.types import SceneAnalysis

logger = logging.getLogger("visionbuddy.vision")


DEFAULT_MODEL = "gemini-3-flash-preview"

SYSTEM_INSTRUCTION_TEMPLATE = """You are the 'Vision Buddy' AI guide for a visually impaired person.
Your goal is to provide extreme spatial precision using clock-face positions (e.g., 'Obstacle at 11 o'clock').
Focus on floor texture, potential hazards, and clear paths.
Keep descriptions concise, friendly, and comforting.

CRITICAL - ABSOLUTE LANGUAGE REQUIREMENT:
- You MUST provide ALL output (description, hazard, navigation) in {language}.
- This is a hard requirement for accessibility. If you speak English when the user needs {language}, they will not understand you.
- Even if the user asks a question in English, your response MUST be 100% in {language}.
- Do NOT explain your instructions. Do NOT say "I will now speak in {language}". Just speak {language} immediately.
- If you see English text on a sign, translate it into {language} in your description.

If a hazard is present (tripping hazard, wet floor, obstacle in path), describe it briefly in the 'hazard' field.
Otherwise, set 'hazard' to null.

NAVIGATION LOGIC:
If a navigation target is provided ("{target}"), you must:
1. Look for physical signs (e.g., 'Restroom', 'Exit', 'Elevator', room numbers) in the scene.
2. If you see a sign for the target, guide the user towards it (e.g., 'I see a sign for the Restroom at 1 o'clock, 10 meters ahead').
3. If you don't see a sign, look for architectural cues (hallways, doors, stairs) and provide directional guidance based on the most likely path.
4. Provide relative directions: 'Turn slightly left', 'Continue straight for 5 steps', 'Target is on your right'.
5. If you see the target itself, confirm it: 'The target is directly in front of you'.

TRANSLATION LOGIC:
If the user asks to translate text in the image, find the text and translate it into {language}.
Provide the translation in the 'description' field.

Set the 'navigation' field to your directional guidance. If no target is set or no guidance is possible, set to null."""

RESPONSE_SCHEMA: Dict[str, Any] = {
    "type": "OBJECT",
    "properties": {
        "description": {
            "type": "STRING",
            "description": "The full spatial description of the scene or answer to the question.",
        },
        "hazard": {
            "type": "STRING",
            "description": "A brief warning if a hazard is detected, otherwise null.",
            "nullable": True,
        },
        "navigation": {
            "type": "STRING",
            "description": "Directional guidance towards the target if applicable, otherwise null.",
            "nullable": True,
        },
    },
    "required": ["description", "hazard", "navigation"],
}

_CODE_FENCE = re.compile(r"```(?:json)?\n?")


def system_instruction(response_language: str, navigation_target: Optional[str]) -> str:
    """System instruction for one request."""
    return SYSTEM_INSTRUCTION_TEMPLATE.format(
        language=response_language,
        target=navigation_target or "none",
    )


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    if not text or text.lower() in ("null", "none"):
        return None
    return text


def parse_analysis(text: Optional[str]) -> SceneAnalysis:
    """
    Parse the model's JSON reply.

    Raises:
        ValueError: If the reply is empty, not JSON, or has no description
    """
    if not text:
        raise ValueError("Empty response from vision model")

    cleaned = _CODE_FENCE.sub("", text).strip()
    data = json.loads(cleaned)
    if not isinstance(data, dict):
        raise ValueError(f"Expected a JSON object, got {type(data).__name__}")

    description = _optional_text(data.get("description"))
    if description is None:
        raise ValueError("Vision reply has no description")

    return SceneAnalysis(
        description=description,
        hazard=_optional_text(data.get("hazard")),
        navigation=_optional_text(data.get("navigation")),
    )


class GeminiVisionClient:
    """
    Gemini scene analyzer.

    Args:
        api_key: Gemini API key
        model: Model name
        temperature: Sampling temperature
        client: Pre-built genai.Client (used instead of creating one)
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        temperature: float = 0.2,
        client: Optional[Any] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._client = client

    @classmethod
    def from_config(cls, config) -> "GeminiVisionClient":
        """Build from a VisionConfig."""
        return cls(api_key=config.api_key, model=config.model, temperature=config.temperature)

    def _ensure_client(self):
        """Lazily initialize the client."""
        if self._client is not None:
            return self._client

        if not self.api_key:
            raise ServiceConnectionError("GEMINI_API_KEY not set", service_name="gemini")

        self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def analyze(
        self,
        image: bytes,
        prompt: str,
        response_language: str,
        navigation_target: Optional[str] = None,
    ) -> SceneAnalysis:
        """
        Analyze a frame.

        Args:
            image: JPEG bytes
            prompt: User prompt built for this turn
            response_language: Language name all output must be written in
            navigation_target: Active navigation target, if any

        Returns:
            The parsed analysis, or SceneAnalysis.fail_closed() on any failure
        """
        start_time = time.time()

        try:
            client = self._ensure_client()
            config = GenerateContentConfig(
                system_instruction=system_instruction(response_language, navigation_target),
                temperature=self.temperature,
                response_mime_type="application/json",
                response_schema=RESPONSE_SCHEMA,
            )
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[
                    Part.from_text(text=prompt),
                    Part.from_bytes(data=image, mime_type="image/jpeg"),
                ],
                config=config,
            )
            analysis = parse_analysis(response.text)

        except ValueError as e:
            logger.error(f"Unparseable vision reply: {e}")
            return SceneAnalysis.fail_closed()
        except Exception as e:
            logger.error(f"Gemini analysis error: {e}")
            return SceneAnalysis.fail_closed()

        latency_ms = (time.time() - start_time) * 1000
        logger.debug(
            f"Scene analyzed in {latency_ms:.0f}ms "
            f"(hazard={analysis.hazard is not None}, navigation={analysis.navigation is not None})"
        )
        return analysis
