"""
Quill configuration.

Settings are an immutable snapshot: the core reads them for the duration of
a call and never writes them back. Changing a value means building a new
snapshot (``with_overrides``) between calls.
"""

# mypy: disable-error-code="misc"

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from quill.errors import ConfigError

logger = logging.getLogger("quill.config")


# ============================================================================
# Model Catalog
# ============================================================================

ALL_MODELS: dict[str, str] = {
    "gpt-5": "GPT-5",
    "gpt-5-mini": "GPT-5 Mini",
    "gpt-5-nano": "GPT-5 Nano",
    "gpt-4o": "GPT-4o",
    "gpt-4.1": "GPT-4.1",
    "claude-opus-4-1-20250805": "Claude Opus 4.1",
    "claude-sonnet-4-20250514": "Claude Sonnet 4",
    "gemini-2.5-pro": "Gemini 2.5 Pro",
    "gemini-2.5-flash": "Gemini 2.5 Flash",
    "llama-3.3-70b-versatile": "Llama 3.3 70B (Groq)",
    "deepseek-r1-distill-llama-70b": "DeepSeek R1 Distill (Groq)",
    "qwen/qwen3-32b": "Qwen3 32B (Groq)",
    "openai/gpt-oss-120b": "GPT-OSS 120B (Groq)",
}

# OpenAI chat models that accept image parts
IMAGE_CAPABLE_MODELS: tuple[str, ...] = (
    "gpt-5",
    "gpt-5-mini",
    "gpt-5-nano",
    "gpt-4o",
    "gpt-4.1",
)

DEFAULT_IMAGE_MODEL_FALLBACK = "gpt-4o"

ALL_IMAGE_MODELS: dict[str, str] = {
    "dall-e-3": "dall-e-3",
    "dall-e-2": "dall-e-2",
}

IMAGE_SIZES: dict[str, tuple[str, ...]] = {
    "dall-e-3": ("1024x1024", "1792x1024", "1024x1792"),
    "dall-e-2": ("256x256", "512x512", "1024x1024"),
}

DEFAULT_MODEL = "gpt-4o"
DEFAULT_CRITIQUE_MODEL = "claude-opus-4-1-20250805"
DEFAULT_IMAGE_MODEL = "dall-e-3"
DEFAULT_MAX_TOKENS = 500


# ============================================================================
# Settings
# ============================================================================


class Settings(BaseModel):
    """Snapshot of user settings handed to the core for one call."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    openai_api_key: str = Field(default="", alias="openAIapiKey")  # allow-secret
    anthropic_api_key: str = Field(default="", alias="anthropicApiKey")  # allow-secret
    gemini_api_key: str = Field(default="", alias="geminiApiKey")  # allow-secret
    groq_api_key: str = Field(default="", alias="groqApiKey")  # allow-secret

    model_name: str = Field(default=DEFAULT_MODEL, alias="modelName")
    critique_model_name: str = Field(default=DEFAULT_CRITIQUE_MODEL, alias="critiqueModelName")
    image_model_name: str = Field(default=DEFAULT_IMAGE_MODEL, alias="imageModelName")
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, gt=0, alias="maxTokens")
    replace_selection: bool = Field(default=True, alias="replaceSelection")
    language: str = ""

    custom_prompt_1: str = Field(default="", alias="customPrompt1")
    custom_prompt_2: str = Field(default="", alias="customPrompt2")
    custom_prompt_3: str = Field(default="", alias="customPrompt3")

    def api_key_for(self, family: str) -> str:
        """Return the credential for a backend family ("openai", "groq", ...)."""
        keys = {
            "openai": self.openai_api_key,
            "anthropic": self.anthropic_api_key,
            "gemini": self.gemini_api_key,
            "groq": self.groq_api_key,
        }
        try:
            return keys[str(family)]
        except KeyError:
            raise ValueError(f"Unknown backend family: {family}") from None

    @property
    def custom_prompts(self) -> list[str]:
        """Custom prompts that are actually set, in slot order."""
        return [
            p
            for p in (self.custom_prompt_1, self.custom_prompt_2, self.custom_prompt_3)
            if p
        ]

    def with_overrides(self, **changes: Any) -> Settings:
        """Build a new validated snapshot with some fields replaced."""
        data = self.model_dump()
        data.update({k: v for k, v in changes.items() if v is not None})
        try:
            return Settings(**data)
        except ValidationError as e:
            raise ConfigError("overrides", [str(e)]) from e

    @classmethod
    def from_env(cls, environ: dict[str, str] | None = None) -> Settings:
        """
        Build settings from environment variables.

        Recognized: OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY,
        GROQ_API_KEY, QUILL_MODEL, QUILL_CRITIQUE_MODEL, QUILL_IMAGE_MODEL,
        QUILL_MAX_TOKENS, QUILL_REPLACE_SELECTION, QUILL_LANGUAGE.
        """
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {
            "openai_api_key": env.get("OPENAI_API_KEY", ""),  # allow-secret
            "anthropic_api_key": env.get("ANTHROPIC_API_KEY", ""),  # allow-secret
            "gemini_api_key": env.get("GEMINI_API_KEY", ""),  # allow-secret
            "groq_api_key": env.get("GROQ_API_KEY", ""),  # allow-secret
            "model_name": env.get("QUILL_MODEL", DEFAULT_MODEL),
            "critique_model_name": env.get("QUILL_CRITIQUE_MODEL", DEFAULT_CRITIQUE_MODEL),
            "image_model_name": env.get("QUILL_IMAGE_MODEL", DEFAULT_IMAGE_MODEL),
            "max_tokens": env.get("QUILL_MAX_TOKENS", str(DEFAULT_MAX_TOKENS)),
            "replace_selection": env.get("QUILL_REPLACE_SELECTION", "true").lower() == "true",
            "language": env.get("QUILL_LANGUAGE", ""),
        }
        try:
            return cls(**data)
        except ValidationError as e:
            raise ConfigError("environment", [str(e)]) from e

    @classmethod
    def from_yaml(cls, yaml_content: str, source_path: str | None = None) -> Settings:
        """
        Parse settings from YAML.

        Both snake_case names and the camelCase keys of the plugin's data
        file are accepted. Credentials missing from the file fall back to
        the environment.

        Raises:
            ConfigError: If the YAML is malformed or a value is invalid
        """
        try:
            data = yaml.safe_load(yaml_content) or {}
        except yaml.YAMLError as e:
            raise ConfigError(source_path or "unknown", [f"YAML parse error: {e}"]) from e

        if not isinstance(data, dict):
            raise ConfigError(source_path or "unknown", ["Top level must be a mapping"])

        env_keys = {
            name: value
            for name, value in cls.from_env().model_dump().items()
            if name.endswith("_api_key")
        }
        try:
            file_values = cls(**data).model_dump(exclude_defaults=True)
            return cls(**{**env_keys, **file_values})
        except ValidationError as e:
            raise ConfigError(source_path or "unknown", [str(e)]) from e

    @classmethod
    def from_file(cls, path: str | Path) -> Settings:
        """Load settings from a YAML (or JSON) file."""
        path = Path(path)
        if not path.exists():
            raise ConfigError(str(path), ["File not found"])

        logger.debug(f"Loading settings from {path}")
        return cls.from_yaml(path.read_text(), str(path))
