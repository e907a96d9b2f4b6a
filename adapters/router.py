"""
LLM Router - Maps a model identifier to the adapter that serves it.

Routing is by substring containment, first match wins:
1. "claude"                                  -> Anthropic
2. "gemini"                                  -> Gemini
3. "llama" / "qwen" / "deepseek" / "gpt-oss" -> Groq
4. anything else                             -> OpenAI

The order matters: an identifier can match several rules. The router holds
no state; every call builds a fresh adapter from the configuration snapshot.
"""

from __future__ import annotations

import logging
from typing import Any

from adapters.base import (
    AssistantConfig,
    LLMAdapter,
    ModelDescriptor,
    ModelFamily,
)
from adapters.providers import (
    AnthropicAdapter,
    GeminiAdapter,
    GroqAdapter,
    OpenAIAdapter,
    is_groq_reasoning_model,
    is_openai_reasoning_model,
)
from quill.config import IMAGE_CAPABLE_MODELS, Settings
from quill.notices import Notifier

logger = logging.getLogger("quill.adapters.router")


# Evaluated in order; first rule with a matching keyword wins
ROUTING_RULES: tuple[tuple[ModelFamily, tuple[str, ...]], ...] = (
    (ModelFamily.ANTHROPIC, ("claude",)),
    (ModelFamily.GEMINI, ("gemini",)),
    (ModelFamily.GROQ, ("llama", "qwen", "deepseek", "gpt-oss")),
)

DEFAULT_FAMILY = ModelFamily.OPENAI

ADAPTERS: dict[ModelFamily, type[LLMAdapter]] = {
    ModelFamily.OPENAI: OpenAIAdapter,
    ModelFamily.ANTHROPIC: AnthropicAdapter,
    ModelFamily.GEMINI: GeminiAdapter,
    ModelFamily.GROQ: GroqAdapter,
}


def family_for_model(model_id: str) -> ModelFamily:
    """Resolve the backend family of a model identifier."""
    for family, keywords in ROUTING_RULES:
        if any(keyword in model_id for keyword in keywords):
            return family
    return DEFAULT_FAMILY


def is_reasoning_model(model_id: str, family: ModelFamily | None = None) -> bool:
    """Whether the model emits reasoning output or uses a reasoning token budget."""
    family = family or family_for_model(model_id)
    if family == ModelFamily.GROQ:
        return is_groq_reasoning_model(model_id)
    if family == ModelFamily.OPENAI:
        return is_openai_reasoning_model(model_id)
    return False


def describe_model(model_id: str, max_tokens: int) -> ModelDescriptor:
    """Build the descriptor for a model; the family is fixed here once."""
    family = family_for_model(model_id)
    return ModelDescriptor(
        id=model_id,
        family=family,
        max_tokens=max_tokens,
        image_capable=family == ModelFamily.OPENAI and model_id in IMAGE_CAPABLE_MODELS,
        is_reasoning_model=is_reasoning_model(model_id, family),
    )


def select_adapter(
    model_id: str,
    config: AssistantConfig,
    *,
    notifier: Notifier | None = None,
    **adapter_kwargs: Any,
) -> LLMAdapter:
    """
    Build the adapter serving ``model_id``.

    Args:
        model_id: Model identifier, routed by substring
        config: Credential and limits for the selected backend
        notifier: Receives notices and errors from the adapter
        **adapter_kwargs: Passed to the adapter (injected clients)

    Returns:
        A new adapter bound to ``model_id``
    """
    family = family_for_model(model_id)
    adapter_cls = ADAPTERS[family]
    if config.model_name != model_id:
        config = config.with_model(model_id)

    logger.debug(f"Routing {model_id} -> {family.value}")
    return adapter_cls(config, notifier=notifier, **adapter_kwargs)


def config_for(model_id: str, settings: Settings) -> AssistantConfig:
    """Configuration snapshot for the backend serving ``model_id``."""
    family = family_for_model(model_id)
    return AssistantConfig(
        api_key=settings.api_key_for(family.value),  # allow-secret
        model_name=model_id,
        max_tokens=settings.max_tokens,
    )


def build_media_adapter(
    settings: Settings,
    *,
    notifier: Notifier | None = None,
    **adapter_kwargs: Any,
) -> OpenAIAdapter:
    """
    Adapter for images, transcription and speech.

    These always go through OpenAI with the OpenAI key, whichever chat model
    is configured.
    """
    config = AssistantConfig(
        api_key=settings.openai_api_key,  # allow-secret
        model_name=settings.model_name,
        max_tokens=settings.max_tokens,
    )
    logger.debug(f"Media calls for {settings.model_name} -> openai")
    return OpenAIAdapter(config, notifier=notifier, **adapter_kwargs)


def build_adapter(
    model_id: str,
    settings: Settings,
    *,
    notifier: Notifier | None = None,
    **adapter_kwargs: Any,
) -> LLMAdapter:
    """Select an adapter using the credentials held in ``settings``."""
    return select_adapter(
        model_id,
        config_for(model_id, settings),
        notifier=notifier,
        **adapter_kwargs,
    )
