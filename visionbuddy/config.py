"""
Vision Buddy Configuration

Pydantic models for every configurable part of the assistant, loaded from
YAML with environment variable overrides.

Search order when no path is given:
    ./visionbuddy.yaml
    ~/.visionbuddy/config.yaml
    /etc/visionbuddy/config.yaml

Environment overrides, applied after the file:
    VISIONBUDDY_<SECTION>_<KEY>   e.g. VISIONBUDDY_REGISTRY_TIMEOUT=30
    GEMINI_API_KEY, ELEVENLABS_API_KEY, ELEVENLABS_VOICE_ID,
    SNOWFLAKE_ACCOUNT, SNOWFLAKE_TOKEN, SNOWFLAKE_DATABASE,
    SNOWFLAKE_SCHEMA, SNOWFLAKE_WAREHOUSE, SNOWFLAKE_ROLE

Usage:
    from visionbuddy.config import load_config

    config = load_config()
    print(config.registry.building_id)
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from visionbuddy.exceptions import ConfigurationError
from visionbuddy.types import Language

logger = logging.getLogger("visionbuddy.config")


ENV_PREFIX = "VISIONBUDDY_"
SECTIONS = ("vision", "voice", "local_speech", "registry", "interaction")

# Credential variables read by the original web app, mapped to (section, key)
CREDENTIAL_ENV_VARS = {
    "GEMINI_API_KEY": ("vision", "api_key"),
    "ELEVENLABS_API_KEY": ("voice", "api_key"),
    "ELEVENLABS_VOICE_ID": ("voice", "voice_id"),
    "SNOWFLAKE_ACCOUNT": ("registry", "account"),
    "SNOWFLAKE_TOKEN": ("registry", "token"),
    "SNOWFLAKE_DATABASE": ("registry", "database"),
    "SNOWFLAKE_SCHEMA": ("registry", "schema_name"),
    "SNOWFLAKE_WAREHOUSE": ("registry", "warehouse"),
    "SNOWFLAKE_ROLE": ("registry", "role"),
}


# =============================================================================
# Section Models
# =============================================================================

class VisionConfig(BaseModel):
    """Gemini scene analysis."""
    api_key: Optional[str] = None
    model: str = "gemini-3-flash-preview"
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)


class VoiceSynthesisConfig(BaseModel):
    """ElevenLabs remote voice."""
    api_key: Optional[str] = None
    voice_id: str = "pMs7uS297jtjz4kyM997"
    model_id: str = "eleven_multilingual_v2"
    stability: float = Field(default=0.5, ge=0.0, le=1.0)
    similarity_boost: float = Field(default=0.75, ge=0.0, le=1.0)
    output_format: str = "pcm_22050"
    timeout: float = Field(default=15.0, gt=0.0, le=120.0)


class LocalSpeechConfig(BaseModel):
    """On-device speech fallback."""
    backend: Literal["auto", "espeak", "system"] = "auto"
    rate: float = Field(default=0.9, gt=0.0, le=3.0)
    pitch: float = Field(default=1.0, gt=0.0, le=2.0)


class RegistryConfig(BaseModel):
    """Snowflake spatial registry."""
    account: Optional[str] = None
    token: Optional[str] = None
    database: Optional[str] = None
    schema_name: Optional[str] = None
    warehouse: Optional[str] = None
    role: Optional[str] = None
    token_type: Optional[str] = None
    timeout: int = Field(default=60, ge=1, le=3600)
    building_id: str = "uni_library_main"

    @field_validator("building_id")
    @classmethod
    def validate_building_id(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("building_id must not be empty")
        return v


class InteractionConfig(BaseModel):
    """Turn handling."""
    default_language: str = "English"
    initial_balance: float = Field(default=1.245, ge=0.0)
    reward_increment: float = Field(default=0.005, ge=0.0)
    playback_timeout: float = Field(default=30.0, gt=0.0, le=300.0)
    speak_scan_description: bool = False

    @field_validator("default_language")
    @classmethod
    def validate_language(cls, v: str) -> str:
        return Language.from_name(v).value

    @property
    def language(self) -> Language:
        return Language.from_name(self.default_language)


class VisionBuddyConfig(BaseModel):
    """Master configuration."""
    vision: VisionConfig = Field(default_factory=VisionConfig)
    voice: VoiceSynthesisConfig = Field(default_factory=VoiceSynthesisConfig)
    local_speech: LocalSpeechConfig = Field(default_factory=LocalSpeechConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    interaction: InteractionConfig = Field(default_factory=InteractionConfig)
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_file: Optional[str] = None


# =============================================================================
# Loading
# =============================================================================

def get_config_paths() -> List[Path]:
    """Config file locations in search order."""
    return [
        Path("./visionbuddy.yaml"),
        Path.home() / ".visionbuddy" / "config.yaml",
        Path("/etc/visionbuddy/config.yaml"),
    ]


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    if not isinstance(data.get(name), dict):
        data[name] = {}
    return data[name]


def _apply_env_overrides(data: Dict[str, Any]) -> Dict[str, Any]:
    for env_name, (section, key) in CREDENTIAL_ENV_VARS.items():
        value = os.environ.get(env_name)
        if value:
            _section(data, section)[key] = value

    for env_name, value in os.environ.items():
        if not env_name.startswith(ENV_PREFIX):
            continue
        rest = env_name[len(ENV_PREFIX):].lower()

        if rest in ("log_level", "log_file"):
            data[rest] = value.upper() if rest == "log_level" else value
            continue

        # Longest section name first so local_speech wins over a shorter prefix
        for section in sorted(SECTIONS, key=len, reverse=True):
            if rest.startswith(section + "_"):
                key = rest[len(section) + 1:]
                _section(data, section)[key] = value
                logger.debug(f"Config override from {env_name}")
                break

    return data


def load_config(path: Optional[str | Path] = None) -> VisionBuddyConfig:
    """
    Load configuration.

    Args:
        path: Explicit config file. When None the standard locations are
            searched and defaults are used if none exists.

    Returns:
        Validated VisionBuddyConfig

    Raises:
        ConfigurationError: File not found, invalid YAML, or validation failed
    """
    data: Dict[str, Any] = {}
    config_file: Optional[Path] = None

    if path is not None:
        config_file = Path(path)
        if not config_file.exists():
            raise ConfigurationError(
                f"Configuration file not found: {config_file}",
                config_file=str(config_file),
            )
    else:
        config_file = next((p for p in get_config_paths() if p.exists()), None)

    if config_file is not None:
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}",
                config_file=str(config_file),
            ) from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ConfigurationError(
                "Invalid YAML in configuration file: top level must be a mapping",
                config_file=str(config_file),
            )
        data = loaded or {}
        logger.info(f"Loaded configuration from {config_file}")

    # An empty "vision:" key loads as None; treat it as all defaults
    for section in SECTIONS:
        if data.get(section, {}) is None:
            data[section] = {}

    data = _apply_env_overrides(data)

    try:
        return VisionBuddyConfig(**data)
    except ValidationError as e:
        raise ConfigurationError(
            f"Configuration validation failed: {e}",
            config_file=str(config_file) if config_file else None,
        ) from e
