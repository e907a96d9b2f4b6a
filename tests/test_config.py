"""
Tests for quill.config settings loading.
"""

from __future__ import annotations

from pathlib import Path

import pytest

from quill.config import (
    DEFAULT_CRITIQUE_MODEL,
    DEFAULT_MAX_TOKENS,
    DEFAULT_MODEL,
    IMAGE_SIZES,
    Settings,
)
from quill.errors import ConfigError

ENV_KEYS = ("OPENAI_API_KEY", "ANTHROPIC_API_KEY", "GEMINI_API_KEY", "GROQ_API_KEY")


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in ENV_KEYS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:
    """Test default values."""

    def test_defaults(self) -> None:
        settings = Settings()

        assert settings.model_name == DEFAULT_MODEL
        assert settings.critique_model_name == DEFAULT_CRITIQUE_MODEL
        assert settings.max_tokens == DEFAULT_MAX_TOKENS
        assert settings.replace_selection is True
        assert settings.custom_prompts == []

    def test_frozen(self) -> None:
        settings = Settings()

        with pytest.raises(Exception):
            settings.model_name = "gpt-5"  # type: ignore[misc]

    def test_dalle3_sizes(self) -> None:
        assert "1792x1024" in IMAGE_SIZES["dall-e-3"]
        assert "256x256" not in IMAGE_SIZES["dall-e-3"]


class TestFromEnv:
    """Test environment loading."""

    def test_reads_keys_and_models(self) -> None:
        settings = Settings.from_env(
            {
                "OPENAI_API_KEY": "sk-1",
                "GROQ_API_KEY": "gsk-1",
                "QUILL_MODEL": "gemini-2.5-pro",
                "QUILL_MAX_TOKENS": "900",
                "QUILL_REPLACE_SELECTION": "false",
            }
        )

        assert settings.openai_api_key == "sk-1"
        assert settings.groq_api_key == "gsk-1"
        assert settings.anthropic_api_key == ""
        assert settings.model_name == "gemini-2.5-pro"
        assert settings.max_tokens == 900
        assert settings.replace_selection is False

    def test_invalid_max_tokens(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            Settings.from_env({"QUILL_MAX_TOKENS": "0"})

        assert exc_info.value.source == "environment"


class TestFromYaml:
    """Test YAML loading."""

    def test_camel_case_keys(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test the plugin data file key names are understood."""
        settings = Settings.from_yaml(
            """
openAIapiKey: sk-file
modelName: claude-sonnet-4-20250514
maxTokens: 1200
replaceSelection: false
customPrompt2: Fix grammar
"""
        )

        assert settings.openai_api_key == "sk-file"
        assert settings.model_name == "claude-sonnet-4-20250514"
        assert settings.max_tokens == 1200
        assert settings.replace_selection is False
        assert settings.custom_prompts == ["Fix grammar"]

    def test_snake_case_keys(self, clean_env: pytest.MonkeyPatch) -> None:
        settings = Settings.from_yaml("model_name: gpt-5\ncritique_model_name: gemini-2.5-pro\n")

        assert settings.model_name == "gpt-5"
        assert settings.critique_model_name == "gemini-2.5-pro"

    def test_env_keys_fill_gaps(self, clean_env: pytest.MonkeyPatch) -> None:
        """Test credentials absent from the file come from the environment."""
        clean_env.setenv("ANTHROPIC_API_KEY", "ant-env")
        clean_env.setenv("OPENAI_API_KEY", "sk-env")

        settings = Settings.from_yaml("openAIapiKey: sk-file\n")

        assert settings.anthropic_api_key == "ant-env"
        assert settings.openai_api_key == "sk-file"

    def test_empty_document(self, clean_env: pytest.MonkeyPatch) -> None:
        assert Settings.from_yaml("") == Settings()

    def test_malformed_yaml(self) -> None:
        with pytest.raises(ConfigError) as exc_info:
            Settings.from_yaml("modelName: [unclosed", "settings.yaml")

        assert exc_info.value.source == "settings.yaml"
        assert "YAML parse error" in exc_info.value.errors[0]

    def test_not_a_mapping(self) -> None:
        with pytest.raises(ConfigError):
            Settings.from_yaml("- a\n- b\n")

    def test_invalid_value(self) -> None:
        with pytest.raises(ConfigError):
            Settings.from_yaml("maxTokens: -5\n")

    def test_from_file(self, tmp_path: Path, clean_env: pytest.MonkeyPatch) -> None:
        path = tmp_path / "quill.yaml"
        path.write_text("language: fr\n")

        assert Settings.from_file(path).language == "fr"

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError) as exc_info:
            Settings.from_file(tmp_path / "nope.yaml")

        assert exc_info.value.errors == ["File not found"]


class TestOverrides:
    """Test snapshot derivation."""

    def test_with_overrides(self, settings: Settings) -> None:
        updated = settings.with_overrides(model_name="gpt-5", critique_model_name=None)

        assert updated.model_name == "gpt-5"
        assert updated.critique_model_name == settings.critique_model_name
        assert settings.model_name == "gpt-4o"

    def test_invalid_override(self, settings: Settings) -> None:
        with pytest.raises(ConfigError):
            settings.with_overrides(max_tokens=0)

    def test_api_key_for(self, settings: Settings) -> None:
        assert settings.api_key_for("groq") == "gsk-test"
        assert settings.api_key_for("anthropic") == "ant-test"
        with pytest.raises(ValueError):
            settings.api_key_for("mistral")
