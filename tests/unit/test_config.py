"""
Unit tests for Vision Buddy configuration system.

Tests configuration loading, validation, and environment variable overrides.
"""

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from visionbuddy.config import (
    CREDENTIAL_ENV_VARS,
    ENV_PREFIX,
    InteractionConfig,
    LocalSpeechConfig,
    RegistryConfig,
    VisionBuddyConfig,
    VisionConfig,
    VoiceSynthesisConfig,
    get_config_paths,
    load_config,
)
from visionbuddy.exceptions import ConfigurationError
from visionbuddy.types import Language


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """Keep the developer's credentials and overrides out of these tests."""
    for name in list(os.environ):
        if name in CREDENTIAL_ENV_VARS or name.startswith(ENV_PREFIX):
            monkeypatch.delenv(name)


class TestVisionConfig:
    """Tests for VisionConfig."""

    def test_default_values(self) -> None:
        config = VisionConfig()
        assert config.api_key is None
        assert config.model == "gemini-3-flash-preview"
        assert config.temperature == 0.2

    def test_temperature_range(self) -> None:
        VisionConfig(temperature=0.0)
        VisionConfig(temperature=2.0)
        with pytest.raises(ValueError):
            VisionConfig(temperature=2.5)


class TestVoiceSynthesisConfig:
    """Tests for VoiceSynthesisConfig."""

    def test_default_values(self) -> None:
        config = VoiceSynthesisConfig()
        assert config.voice_id == "pMs7uS297jtjz4kyM997"
        assert config.model_id == "eleven_multilingual_v2"
        assert config.output_format == "pcm_22050"

    def test_voice_settings_range(self) -> None:
        with pytest.raises(ValueError):
            VoiceSynthesisConfig(stability=1.5)
        with pytest.raises(ValueError):
            VoiceSynthesisConfig(similarity_boost=-0.1)


class TestLocalSpeechConfig:
    """Tests for LocalSpeechConfig."""

    def test_backends(self) -> None:
        for backend in ("auto", "espeak", "system"):
            assert LocalSpeechConfig(backend=backend).backend == backend
        with pytest.raises(ValueError):
            LocalSpeechConfig(backend="festival")

    def test_rate_must_be_positive(self) -> None:
        with pytest.raises(ValueError):
            LocalSpeechConfig(rate=0.0)


class TestRegistryConfig:
    """Tests for RegistryConfig."""

    def test_default_values(self) -> None:
        config = RegistryConfig()
        assert config.building_id == "uni_library_main"
        assert config.timeout == 60
        assert config.account is None

    def test_empty_building_rejected(self) -> None:
        with pytest.raises(ValueError):
            RegistryConfig(building_id="  ")

    def test_timeout_range(self) -> None:
        with pytest.raises(ValueError):
            RegistryConfig(timeout=0)


class TestInteractionConfig:
    """Tests for InteractionConfig."""

    def test_default_values(self) -> None:
        config = InteractionConfig()
        assert config.initial_balance == 1.245
        assert config.reward_increment == 0.005
        assert config.language == Language.ENGLISH
        assert config.speak_scan_description is False

    def test_language_normalized(self) -> None:
        """Test language names are matched case-insensitively."""
        config = InteractionConfig(default_language="french")
        assert config.default_language == "French"
        assert config.language == Language.FRENCH

    def test_unknown_language_rejected(self) -> None:
        with pytest.raises(ValueError):
            InteractionConfig(default_language="Klingon")


class TestVisionBuddyConfig:
    """Tests for the master configuration."""

    def test_default_configuration(self) -> None:
        config = VisionBuddyConfig()
        assert isinstance(config.vision, VisionConfig)
        assert isinstance(config.registry, RegistryConfig)
        assert config.log_level == "INFO"

    def test_partial_configuration(self) -> None:
        config = VisionBuddyConfig(registry={"building_id": "science_hall"})
        assert config.registry.building_id == "science_hall"
        assert config.vision.model == "gemini-3-flash-preview"

    def test_log_level_options(self) -> None:
        with pytest.raises(ValueError):
            VisionBuddyConfig(log_level="VERBOSE")


class TestConfigFilePaths:
    """Tests for config file discovery."""

    def test_config_paths(self) -> None:
        paths = get_config_paths()
        assert paths[0] == Path("./visionbuddy.yaml")
        assert Path.home() / ".visionbuddy" / "config.yaml" in paths


class TestLoadConfig:
    """Tests for load_config."""

    def test_load_from_yaml_file(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.safe_dump({
            "registry": {"building_id": "science_hall", "timeout": 30},
            "interaction": {"default_language": "Spanish"},
            "log_level": "DEBUG",
        }))

        config = load_config(config_file)

        assert config.registry.building_id == "science_hall"
        assert config.registry.timeout == 30
        assert config.interaction.language == Language.SPANISH
        assert config.log_level == "DEBUG"

    def test_null_section_uses_defaults(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("vision:\nregistry:\n  building_id: annex\n")

        config = load_config(config_file)

        assert config.vision.model == "gemini-3-flash-preview"
        assert config.registry.building_id == "annex"

    @pytest.mark.parametrize("section", ["vision", "voice", "local_speech", "registry", "interaction"])
    def test_every_null_section_uses_defaults(self, tmp_path, section) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(f"{section}:\n")

        config = load_config(config_file)

        assert getattr(config, section) == getattr(VisionBuddyConfig(), section)

    def test_null_section_with_env_override(self, tmp_path, monkeypatch) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("vision:\n")
        monkeypatch.setenv("GEMINI_API_KEY", "from-env")

        config = load_config(config_file)

        assert config.vision.api_key == "from-env"
        assert config.vision.model == "gemini-3-flash-preview"

    def test_empty_file(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        assert load_config(config_file).registry.building_id == "uni_library_main"

    def test_load_nonexistent_file_raises_error(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="not found"):
            load_config(tmp_path / "missing.yaml")

    def test_load_invalid_yaml_raises_error(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("registry: [unclosed\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(config_file)

    def test_top_level_list_rejected(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("- one\n- two\n")
        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            load_config(config_file)

    def test_load_invalid_config_raises_error(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.safe_dump({"registry": {"timeout": -5}}))
        with pytest.raises(ConfigurationError, match="validation failed"):
            load_config(config_file)


class TestEnvironmentOverrides:
    """Tests for environment variable overrides."""

    def test_env_override_integer(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        with patch.dict(os.environ, {"VISIONBUDDY_REGISTRY_TIMEOUT": "15"}):
            config = load_config(config_file)
        assert config.registry.timeout == 15

    def test_env_override_boolean(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        with patch.dict(os.environ, {"VISIONBUDDY_INTERACTION_SPEAK_SCAN_DESCRIPTION": "true"}):
            config = load_config(config_file)
        assert config.interaction.speak_scan_description is True

    def test_env_override_underscored_section(self, tmp_path) -> None:
        """Test section names containing underscores are matched whole."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        with patch.dict(os.environ, {"VISIONBUDDY_LOCAL_SPEECH_RATE": "1.4"}):
            config = load_config(config_file)
        assert config.local_speech.rate == 1.4

    def test_env_override_log_level(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        with patch.dict(os.environ, {"VISIONBUDDY_LOG_LEVEL": "warning"}):
            config = load_config(config_file)
        assert config.log_level == "WARNING"

    def test_credential_variables(self, tmp_path) -> None:
        """Test the well-known credential variables fill their sections."""
        config_file = tmp_path / "config.yaml"
        config_file.write_text(yaml.safe_dump({"registry": {"account": "from-file"}}))
        env = {
            "GEMINI_API_KEY": "gemini-key",
            "ELEVENLABS_API_KEY": "eleven-key",
            "SNOWFLAKE_ACCOUNT": "myorg-myaccount",
            "SNOWFLAKE_SCHEMA": "PUBLIC",
        }
        with patch.dict(os.environ, env):
            config = load_config(config_file)

        assert config.vision.api_key == "gemini-key"
        assert config.voice.api_key == "eleven-key"
        assert config.registry.account == "myorg-myaccount"
        assert config.registry.schema_name == "PUBLIC"

    def test_env_override_invalid_value(self, tmp_path) -> None:
        config_file = tmp_path / "config.yaml"
        config_file.write_text("")
        with patch.dict(os.environ, {"VISIONBUDDY_REGISTRY_TIMEOUT": "soon"}):
            with pytest.raises(ConfigurationError):
                load_config(config_file)
