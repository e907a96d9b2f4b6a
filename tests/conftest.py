"""Fixtures shared by the adapter, router and critique tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from adapters.base import AssistantConfig  # noqa: E402
from quill.config import Settings  # noqa: E402
from quill.errors import QuillError  # noqa: E402


class RecordingNotifier:
    """Notifier that keeps everything it is told."""

    def __init__(self) -> None:
        self.messages: list[str] = []
        self.errors: list[QuillError] = []

    def notify(self, message: str) -> None:
        self.messages.append(message)

    def error(self, error: QuillError) -> None:
        self.errors.append(error)


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        openai_api_key="sk-test",
        anthropic_api_key="ant-test",
        gemini_api_key="gem-test",
        groq_api_key="gsk-test",
        model_name="gpt-4o",
        critique_model_name="claude-opus-4-1-20250805",
        max_tokens=256,
    )


@pytest.fixture
def make_config() -> Callable[..., AssistantConfig]:
    def _make(model_name: str = "gpt-4o", api_key: str = "key", max_tokens: int = 256) -> AssistantConfig:
        return AssistantConfig(api_key=api_key, model_name=model_name, max_tokens=max_tokens)

    return _make


@pytest.fixture
def mock_http() -> Callable[[Callable[[httpx.Request], httpx.Response]], httpx.AsyncClient]:
    """Build an httpx client whose requests go to a handler function."""

    def _make(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(handler))

    return _make


def _sse_body(fragments: list[str], extra_chunks: list[dict[str, Any]] | None = None) -> bytes:
    lines = []
    for fragment in fragments:
        chunk = {"choices": [{"index": 0, "delta": {"content": fragment}}]}
        lines.append(f"data: {json.dumps(chunk)}\n\n")
    for chunk in extra_chunks or []:
        lines.append(f"data: {json.dumps(chunk)}\n\n")
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


@pytest.fixture
def sse_body() -> Callable[..., bytes]:
    """Encode fragments as an OpenAI-style server-sent event stream."""
    return _sse_body


class FakeAdapter:
    """Stands in for an LLMAdapter; records prompts and returns canned answers."""

    def __init__(self, model_id: str, answers: list[str | None]) -> None:
        self.model_id = model_id
        self.answers = list(answers)
        self.calls: list[list[Any]] = []

    async def text_call(self, messages: Any, stream_sink: Any = None) -> str | None:
        self.calls.append(list(messages))
        return self.answers.pop(0) if self.answers else None


@pytest.fixture
def fake_adapters() -> Callable[[dict[str, list[str | None]]], tuple[dict[str, FakeAdapter], Callable[[str], FakeAdapter]]]:
    """Factory mapping model ids to FakeAdapters with scripted answers."""

    def _make(answers: dict[str, list[str | None]]) -> tuple[dict[str, FakeAdapter], Callable[[str], FakeAdapter]]:
        built: dict[str, FakeAdapter] = {}

        def factory(model_id: str) -> FakeAdapter:
            if model_id not in built:
                built[model_id] = FakeAdapter(model_id, answers.get(model_id, []))
            return built[model_id]

        return built, factory

    return _make
