"""
LLM Adapter Base - Shared types and the common adapter interface.

Provides:
- Message and content-part types with per-backend wire serialization
- Model descriptors and per-backend configuration snapshots
- The capability-set interface every backend adapter implements
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable, Sequence, Union

from quill.errors import QuillError, UnsupportedCapability, normalize_error
from quill.notices import LogNotifier, Notifier

logger = logging.getLogger("quill.adapters")

ROLES = ("user", "assistant", "system")


class ModelFamily(str, Enum):
    """Supported backend families."""

    OPENAI = "openai"
    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    GROQ = "groq"

    def __str__(self) -> str:
        return self.value


class Capability(str, Enum):
    """Operations an adapter may provide."""

    TEXT = "text"
    IMAGE = "image"
    SPEECH_TO_TEXT = "speech_to_text"
    TEXT_TO_SPEECH = "text_to_speech"


# ============================================================================
# Messages
# ============================================================================


@dataclass(frozen=True)
class TextPart:
    """Plain text part of a mixed-content message."""

    text: str

    def to_openai(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}

    def to_anthropic(self) -> dict[str, Any]:
        return {"type": "text", "text": self.text}


@dataclass(frozen=True)
class ImagePart:
    """Image part; ``url`` is an opaque reference, usually a data URL."""

    url: str

    def to_openai(self) -> dict[str, Any]:
        return {"type": "image_url", "image_url": {"url": self.url}}

    def to_anthropic(self) -> dict[str, Any]:
        if self.url.startswith("data:") and ";base64," in self.url:
            header, data = self.url.split(",", 1)
            media_type = header[len("data:"):].split(";", 1)[0]
            return {
                "type": "image",
                "source": {"type": "base64", "media_type": media_type, "data": data},
            }
        return {"type": "image", "source": {"type": "url", "url": self.url}}


ContentPart = Union[TextPart, ImagePart]


@dataclass(frozen=True)
class Message:
    """A message in the conversation."""

    role: str  # "user", "assistant", "system"
    content: str | tuple[ContentPart, ...]

    def __post_init__(self) -> None:
        if self.role not in ROLES:
            raise ValueError(f"Invalid message role: {self.role!r}")
        if isinstance(self.content, list):
            object.__setattr__(self, "content", tuple(self.content))

    @classmethod
    def user(cls, content: str | Sequence[ContentPart]) -> Message:
        return cls(role="user", content=content if isinstance(content, str) else tuple(content))

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Build a message from an OpenAI-shaped dict."""
        content = data["content"]
        if isinstance(content, str):
            return cls(role=data["role"], content=content)

        parts: list[ContentPart] = []
        for part in content:
            if part.get("type") == "image_url":
                parts.append(ImagePart(url=part["image_url"]["url"]))
            else:
                parts.append(TextPart(text=part.get("text", "")))
        return cls(role=data["role"], content=tuple(parts))

    @property
    def has_image(self) -> bool:
        return not isinstance(self.content, str) and any(
            isinstance(part, ImagePart) for part in self.content
        )

    @property
    def text(self) -> str:
        """Text projection of the content; image parts are dropped."""
        if isinstance(self.content, str):
            return self.content
        return "\n".join(p.text for p in self.content if isinstance(p, TextPart))

    def to_openai(self) -> dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {"role": self.role, "content": [p.to_openai() for p in self.content]}

    def to_anthropic(self) -> dict[str, Any]:
        if isinstance(self.content, str):
            return {"role": self.role, "content": self.content}
        return {"role": self.role, "content": [p.to_anthropic() for p in self.content]}


def has_image(messages: Iterable[Message]) -> bool:
    """Check whether any message carries an image part."""
    return any(m.has_image for m in messages)


# ============================================================================
# Models and configuration
# ============================================================================


@dataclass(frozen=True)
class ModelDescriptor:
    """A model identifier resolved against the routing policy."""

    id: str
    family: ModelFamily
    max_tokens: int
    image_capable: bool = False
    is_reasoning_model: bool = False

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")


@dataclass(frozen=True)
class AssistantConfig:
    """Per-backend configuration snapshot."""

    api_key: str = field(repr=False)  # allow-secret
    model_name: str
    max_tokens: int
    timeout: float | None = None  # None leaves calls unbounded

    def __post_init__(self) -> None:
        if self.max_tokens <= 0:
            raise ValueError(f"max_tokens must be positive, got {self.max_tokens}")

    def with_model(self, model_name: str) -> AssistantConfig:
        """Copy of this snapshot pointing at another model."""
        return replace(self, model_name=model_name)


@dataclass(frozen=True)
class SpeechAudio:
    """Playable audio returned by text-to-speech."""

    data: bytes
    mime_type: str = "audio/mpeg"

    def save(self, path: str | Path) -> None:
        Path(path).write_bytes(self.data)


# Receives the accumulated text each time a fragment arrives
StreamSink = Callable[[str], Any]


# ============================================================================
# Adapter interface
# ============================================================================


class LLMAdapter(ABC):
    """
    Common interface for backend adapters.

    Implementations declare the capabilities they provide. Every public call
    is an error boundary: failures are normalized to a QuillError, reported
    through the notifier, and the call returns None.
    """

    family: ModelFamily
    capabilities: frozenset[Capability] = frozenset({Capability.TEXT})

    def __init__(
        self,
        config: AssistantConfig,
        *,
        notifier: Notifier | None = None,
    ) -> None:
        self.config = config
        self.notifier = notifier or LogNotifier()

    @property
    def model_name(self) -> str:
        return self.config.model_name

    def supports(self, capability: Capability) -> bool:
        return capability in self.capabilities

    def report(
        self,
        exc: BaseException,
        *,
        operation: str,
        model: str | None = None,
    ) -> QuillError:
        """Normalize an exception and hand it to the notifier."""
        error = normalize_error(
            exc,
            provider=self.family.value,
            operation=operation,
            model=model or self.model_name,
        )
        logger.warning(f"{self.family.value} {operation} call failed: {error}")
        self.notifier.error(error)
        return error

    def _unsupported(self, capability: Capability) -> None:
        self.report(
            UnsupportedCapability(capability.value, provider=self.family.value),
            operation=capability.value,
        )

    # ------------------------------------------------------------------
    # Public capability set
    # ------------------------------------------------------------------

    async def text_call(
        self,
        messages: Sequence[Message],
        stream_sink: StreamSink | None = None,
    ) -> str | None:
        """
        Generate a text answer.

        Args:
            messages: Conversation messages
            stream_sink: Called with the accumulated text as fragments arrive

        Returns:
            Full answer text, or None if the call failed
        """
        try:
            return await self._text_call(list(messages), stream_sink)
        except Exception as e:
            self.report(e, operation=Capability.TEXT.value)
            return None

    async def image_call(
        self,
        model: str,
        prompt: str,
        size: str,
        count: int,
        hd: bool = False,
    ) -> list[str] | None:
        """Generate images and return their references (URLs)."""
        if not self.supports(Capability.IMAGE):
            self._unsupported(Capability.IMAGE)
            return None
        try:
            return await self._image_call(model, prompt, size, count, hd)
        except Exception as e:
            self.report(e, operation=Capability.IMAGE.value, model=model)
            return None

    async def speech_to_text(self, audio: Any, language: str) -> str | None:
        """Transcribe audio (bytes, path or file object)."""
        if not self.supports(Capability.SPEECH_TO_TEXT):
            self._unsupported(Capability.SPEECH_TO_TEXT)
            return None
        try:
            return await self._speech_to_text(audio, language)
        except Exception as e:
            self.report(e, operation=Capability.SPEECH_TO_TEXT.value)
            return None

    async def text_to_speech(self, text: str) -> SpeechAudio | None:
        """Synthesize speech for the given text."""
        if not self.supports(Capability.TEXT_TO_SPEECH):
            self._unsupported(Capability.TEXT_TO_SPEECH)
            return None
        try:
            return await self._text_to_speech(text)
        except Exception as e:
            self.report(e, operation=Capability.TEXT_TO_SPEECH.value)
            return None

    # ------------------------------------------------------------------
    # Backend hooks
    # ------------------------------------------------------------------

    @abstractmethod
    async def _text_call(
        self,
        messages: list[Message],
        stream_sink: StreamSink | None,
    ) -> str | None:
        ...

    async def _image_call(
        self, model: str, prompt: str, size: str, count: int, hd: bool
    ) -> list[str]:
        raise UnsupportedCapability(Capability.IMAGE.value, provider=self.family.value)

    async def _speech_to_text(self, audio: Any, language: str) -> str:
        raise UnsupportedCapability(Capability.SPEECH_TO_TEXT.value, provider=self.family.value)

    async def _text_to_speech(self, text: str) -> SpeechAudio:
        raise UnsupportedCapability(Capability.TEXT_TO_SPEECH.value, provider=self.family.value)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} model={self.model_name!r}>"
