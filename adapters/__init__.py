"""
LLM Adapters - Model-agnostic interface layer.

Provides a unified interface for multiple LLM providers:
- OpenAI API
- Anthropic Messages API
- Google Gemini
- Groq
"""

from adapters.base import (
    AssistantConfig,
    Capability,
    ImagePart,
    LLMAdapter,
    Message,
    ModelDescriptor,
    ModelFamily,
    SpeechAudio,
    TextPart,
)
from adapters.providers import AnthropicAdapter, GeminiAdapter, GroqAdapter, OpenAIAdapter
from adapters.reasoning import filter_reasoning
from adapters.router import (
    build_adapter,
    build_media_adapter,
    describe_model,
    family_for_model,
    select_adapter,
)
from adapters.streaming import StreamAccumulator, StreamClosedError

__all__ = [
    "AssistantConfig",
    "Capability",
    "ImagePart",
    "LLMAdapter",
    "Message",
    "ModelDescriptor",
    "ModelFamily",
    "SpeechAudio",
    "TextPart",
    "AnthropicAdapter",
    "GeminiAdapter",
    "GroqAdapter",
    "OpenAIAdapter",
    "filter_reasoning",
    "build_adapter",
    "build_media_adapter",
    "describe_model",
    "family_for_model",
    "select_adapter",
    "StreamAccumulator",
    "StreamClosedError",
]
