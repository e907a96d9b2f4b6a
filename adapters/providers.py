"""
Provider implementations of the LLMAdapter interface.

- OpenAI: chat, image generation, transcription, speech (openai SDK)
- Anthropic: non-streaming Messages API over plain HTTP (httpx)
- Gemini: single-shot generate_content (google-genai SDK)
- Groq: OpenAI-compatible chat over plain HTTP (httpx), reasoning filter
"""

from __future__ import annotations

import json
import logging
import re
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, AsyncIterator

import httpx

from adapters.base import (
    AssistantConfig,
    Capability,
    LLMAdapter,
    Message,
    ModelFamily,
    SpeechAudio,
    StreamSink,
    has_image,
)
from adapters.reasoning import filter_reasoning
from adapters.streaming import StreamAccumulator
from quill.config import DEFAULT_IMAGE_MODEL_FALLBACK, IMAGE_CAPABLE_MODELS, IMAGE_SIZES
from quill.errors import AuthError, BackendProtocolError
from quill.notices import Notifier

logger = logging.getLogger("quill.adapters")

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
GROQ_URL = "https://api.groq.com/openai/v1/chat/completions"

WHISPER_MODEL = "whisper-1"
TTS_MODEL = "tts-1"
TTS_VOICE = "alloy"

_OPENAI_REASONING = re.compile(r"o[124]")


@asynccontextmanager
async def _http_client(
    shared: httpx.AsyncClient | None,
    timeout: float | None,
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the injected client, or a fresh one closed on exit."""
    if shared is not None:
        yield shared
        return
    async with httpx.AsyncClient(timeout=timeout) as client:
        yield client


# ============================================================================
# OpenAI
# ============================================================================


def is_openai_reasoning_model(model: str) -> bool:
    """o1/o2/o4-style and gpt-5 models take a different token budget field."""
    return bool(_OPENAI_REASONING.search(model)) or model.startswith("gpt-5")


def token_limit_field(model: str) -> str:
    return "max_completion_tokens" if is_openai_reasoning_model(model) else "max_tokens"


def effective_openai_model(model: str, messages: list[Message]) -> str:
    """Swap in an image-capable model for this call when images are attached."""
    if has_image(messages) and model not in IMAGE_CAPABLE_MODELS:
        logger.info(f"{model} cannot read images, using {DEFAULT_IMAGE_MODEL_FALLBACK} for this call")
        return DEFAULT_IMAGE_MODEL_FALLBACK
    return model


class OpenAIAdapter(LLMAdapter):
    """Adapter for the OpenAI API."""

    family = ModelFamily.OPENAI
    capabilities = frozenset(Capability)

    def __init__(
        self,
        config: AssistantConfig,
        *,
        notifier: Notifier | None = None,
        client: Any = None,
    ) -> None:
        super().__init__(config, notifier=notifier)
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.config.api_key:
                raise AuthError("OpenAI API key is not set", provider=self.family.value)
            from openai import AsyncOpenAI

            self._client = AsyncOpenAI(api_key=self.config.api_key)  # allow-secret
        return self._client

    async def _text_call(
        self,
        messages: list[Message],
        stream_sink: StreamSink | None,
    ) -> str | None:
        model = effective_openai_model(self.model_name, messages)
        stream = stream_sink is not None
        field = token_limit_field(model)

        params: dict[str, Any] = {
            "messages": [m.to_openai() for m in messages],
            "model": model,
            "stream": stream,
            field: self.config.max_tokens,
        }
        logger.debug(f"OpenAI chat: model={model} stream={stream} {field}={self.config.max_tokens}")

        response = await self.client.chat.completions.create(**params)

        if not stream:
            return response.choices[0].message.content

        accumulator = StreamAccumulator()
        try:
            async for chunk in response:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    stream_sink(accumulator.append(content))
        finally:
            text = accumulator.finalize()
        return text

    async def _image_call(
        self, model: str, prompt: str, size: str, count: int, hd: bool
    ) -> list[str]:
        allowed = IMAGE_SIZES.get(model)
        if allowed and size not in allowed:
            raise BackendProtocolError(
                f"Size {size} not supported by {model}; use one of {', '.join(allowed)}",
                provider=self.family.value,
            )
        max_count = 1 if model == "dall-e-3" else 10
        if not 1 <= count <= max_count:
            raise BackendProtocolError(
                f"{model} generates between 1 and {max_count} images per call, got {count}",
                provider=self.family.value,
            )

        params: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "n": count,
            "size": size,
        }
        if model == "dall-e-3" and hd:
            params["quality"] = "hd"

        response = await self.client.images.generate(**params)
        return [image.url for image in response.data]

    async def _speech_to_text(self, audio: Any, language: str) -> str:
        if isinstance(audio, bytes):
            audio = ("speech.webm", audio)
        elif isinstance(audio, str):
            audio = Path(audio)

        params: dict[str, Any] = {"file": audio, "model": WHISPER_MODEL}
        if language:
            params["language"] = language

        completion = await self.client.audio.transcriptions.create(**params)
        return completion.text

    async def _text_to_speech(self, text: str) -> SpeechAudio:
        response = await self.client.audio.speech.create(
            model=TTS_MODEL,
            voice=TTS_VOICE,
            input=text,
        )
        return SpeechAudio(data=response.content, mime_type="audio/mpeg")


# ============================================================================
# Anthropic
# ============================================================================


class AnthropicAdapter(LLMAdapter):
    """Adapter for the Anthropic Messages API. Streaming is not supported."""

    family = ModelFamily.ANTHROPIC

    def __init__(
        self,
        config: AssistantConfig,
        *,
        notifier: Notifier | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config, notifier=notifier)
        self._http = http_client

    def build_request(self, messages: list[Message]) -> dict[str, Any]:
        """Request body; system messages move to the top-level field."""
        system = "\n".join(m.text for m in messages if m.role == "system")
        body: dict[str, Any] = {
            "model": self.model_name,
            "max_tokens": self.config.max_tokens,
            "messages": [m.to_anthropic() for m in messages if m.role != "system"],
            "stream": False,
        }
        if system:
            body["system"] = system
        return body

    async def _text_call(
        self,
        messages: list[Message],
        stream_sink: StreamSink | None,
    ) -> str | None:
        async with _http_client(self._http, self.config.timeout) as client:
            response = await client.post(
                ANTHROPIC_URL,
                headers={
                    "x-api-key": self.config.api_key,  # allow-secret
                    "anthropic-version": ANTHROPIC_VERSION,
                    "content-type": "application/json",
                },
                json=self.build_request(messages),
            )
            response.raise_for_status()
            data = response.json()

        text = data["content"][0]["text"]
        if stream_sink is not None:
            stream_sink(text)
        return text


# ============================================================================
# Gemini
# ============================================================================


def flatten_messages(messages: list[Message]) -> str:
    """Gemini gets one text blob: message texts joined by newlines, roles dropped."""
    return "\n".join(m.text for m in messages)


class GeminiAdapter(LLMAdapter):
    """Adapter for Google Gemini via the google-genai SDK."""

    family = ModelFamily.GEMINI

    def __init__(
        self,
        config: AssistantConfig,
        *,
        notifier: Notifier | None = None,
        client: Any = None,
    ) -> None:
        super().__init__(config, notifier=notifier)
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            if not self.config.api_key:
                raise AuthError("Gemini API key is not set", provider=self.family.value)
            from google import genai

            self._client = genai.Client(api_key=self.config.api_key)  # allow-secret
        return self._client

    async def _text_call(
        self,
        messages: list[Message],
        stream_sink: StreamSink | None,
    ) -> str | None:
        prompt = flatten_messages(messages)
        logger.debug(f"Gemini generate_content: model={self.model_name} chars={len(prompt)}")

        response = await self.client.aio.models.generate_content(
            model=self.model_name,
            contents=prompt,
        )

        text = response.text
        if stream_sink is not None and text:
            stream_sink(text)
        return text


# ============================================================================
# Groq
# ============================================================================


def is_groq_reasoning_model(model: str) -> bool:
    return "deepseek" in model or "qwen" in model


class GroqAdapter(LLMAdapter):
    """Adapter for Groq (OpenAI-compatible chat completions)."""

    family = ModelFamily.GROQ

    def __init__(
        self,
        config: AssistantConfig,
        *,
        notifier: Notifier | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__(config, notifier=notifier)
        self._http = http_client

    @property
    def is_reasoning(self) -> bool:
        return is_groq_reasoning_model(self.model_name)

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.api_key}",  # allow-secret
            "Content-Type": "application/json",
        }

    async def _text_call(
        self,
        messages: list[Message],
        stream_sink: StreamSink | None,
    ) -> str | None:
        if not self.config.api_key or not self.config.api_key.strip():
            raise AuthError(
                "Groq API key is not set! Please add your API key in settings.",
                provider=self.family.value,
            )

        stream = stream_sink is not None
        payload = {
            "messages": [m.to_openai() for m in messages],
            "model": self.model_name,
            "max_tokens": self.config.max_tokens,
            "stream": stream,
        }
        logger.debug(
            f"Groq chat: model={self.model_name} stream={stream} reasoning={self.is_reasoning}"
        )
        self.notifier.notify(f"Calling Groq with {self.model_name}...")

        if stream:
            text = await self._stream(payload, stream_sink)
        else:
            text = await self._complete(payload)

        logger.debug(f"Groq response completed, length={len(text or '')}")
        self.notifier.notify("Groq response completed!")
        return text

    async def _complete(self, payload: dict[str, Any]) -> str | None:
        async with _http_client(self._http, self.config.timeout) as client:
            response = await client.post(GROQ_URL, headers=self._headers(), json=payload)
            response.raise_for_status()
            data = response.json()

        content = data["choices"][0]["message"]["content"]
        if self.is_reasoning and content:
            content = filter_reasoning(content)
        return content

    async def _stream(self, payload: dict[str, Any], stream_sink: StreamSink) -> str:
        accumulator = StreamAccumulator()
        reasoning = self.is_reasoning

        try:
            async with _http_client(self._http, self.config.timeout) as client:
                async with client.stream(
                    "POST", GROQ_URL, headers=self._headers(), json=payload
                ) as response:
                    response.raise_for_status()
                    async for line in response.aiter_lines():
                        if not line.startswith("data: ") or line == "data: [DONE]":
                            continue
                        data = json.loads(line[6:])
                        choices = data.get("choices") or []
                        content = choices[0].get("delta", {}).get("content") if choices else None
                        if content:
                            text = accumulator.append(content)
                            # Reasoning markup in progress must not reach the caller
                            if not reasoning:
                                stream_sink(text)
        finally:
            text = accumulator.finalize()

        if reasoning:
            text = filter_reasoning(text)
            stream_sink(text)
        return text
