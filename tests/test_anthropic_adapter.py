"""
Tests for the Anthropic adapter over a mocked HTTP transport.
"""

from __future__ import annotations

import json
from typing import Any, Callable

import httpx
import pytest

from adapters.base import AssistantConfig, Capability, Message
from adapters.providers import ANTHROPIC_URL, AnthropicAdapter
from quill.errors import AuthError, ErrorKind, ParseError, UnsupportedCapability


def make_adapter(http: httpx.AsyncClient, notifier: Any, model: str = "claude-sonnet-4-20250514") -> AnthropicAdapter:
    config = AssistantConfig(api_key="ant-key", model_name=model, max_tokens=400)
    return AnthropicAdapter(config, notifier=notifier, http_client=http)


class TestAnthropicText:
    """Test the Messages API round-trip."""

    @pytest.mark.asyncio
    async def test_wire_request(self, mock_http: Callable, notifier: Any) -> None:
        """Test URL, headers and body match the Messages API."""
        captured: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            captured.append(request)
            return httpx.Response(200, json={"content": [{"type": "text", "text": "Paris"}]})

        adapter = make_adapter(mock_http(handler), notifier)

        result = await adapter.text_call([Message.user("Capital of France?")])

        assert result == "Paris"
        request = captured[0]
        assert str(request.url) == ANTHROPIC_URL
        assert request.method == "POST"
        assert request.headers["x-api-key"] == "ant-key"
        assert request.headers["anthropic-version"] == "2023-06-01"
        assert request.headers["content-type"] == "application/json"
        assert json.loads(request.content) == {
            "model": "claude-sonnet-4-20250514",
            "max_tokens": 400,
            "messages": [{"role": "user", "content": "Capital of France?"}],
            "stream": False,
        }

    @pytest.mark.asyncio
    async def test_system_message_lifted(self, mock_http: Callable, notifier: Any) -> None:
        """Test system messages move to the top-level field."""
        bodies: list[dict[str, Any]] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"content": [{"text": "ok"}]})

        adapter = make_adapter(mock_http(handler), notifier)

        await adapter.text_call([Message(role="system", content="Be terse."), Message.user("hi")])

        assert bodies[0]["system"] == "Be terse."
        assert bodies[0]["messages"] == [{"role": "user", "content": "hi"}]

    @pytest.mark.asyncio
    async def test_sink_gets_full_text_once(self, mock_http: Callable, notifier: Any) -> None:
        """Test a sink is honored even though the call does not stream."""
        adapter = make_adapter(
            mock_http(lambda r: httpx.Response(200, json={"content": [{"text": "whole"}]})),
            notifier,
        )
        seen: list[str] = []

        result = await adapter.text_call([Message.user("x")], stream_sink=seen.append)

        assert seen == ["whole"]
        assert result == "whole"

    @pytest.mark.asyncio
    async def test_unauthorized(self, mock_http: Callable, notifier: Any) -> None:
        """Test 401 becomes an AuthError notice."""
        adapter = make_adapter(
            mock_http(lambda r: httpx.Response(401, json={"error": {"message": "invalid x-api-key"}})),
            notifier,
        )

        assert await adapter.text_call([Message.user("x")]) is None
        assert isinstance(notifier.errors[0], AuthError)
        assert notifier.errors[0].provider == "anthropic"

    @pytest.mark.asyncio
    async def test_malformed_response(self, mock_http: Callable, notifier: Any) -> None:
        """Test an empty content list is a parse error."""
        adapter = make_adapter(mock_http(lambda r: httpx.Response(200, json={"content": []})), notifier)

        assert await adapter.text_call([Message.user("x")]) is None
        assert isinstance(notifier.errors[0], ParseError)


class TestAnthropicCapabilities:
    """Test capabilities outside text."""

    @pytest.mark.asyncio
    async def test_image_unsupported(self, mock_http: Callable, notifier: Any) -> None:
        adapter = make_adapter(mock_http(lambda r: httpx.Response(500)), notifier)

        assert not adapter.supports(Capability.IMAGE)
        assert await adapter.image_call("dall-e-3", "x", "1024x1024", 1) is None
        error = notifier.errors[0]
        assert isinstance(error, UnsupportedCapability)
        assert error.kind == ErrorKind.UNSUPPORTED_CAPABILITY
        assert error.capability == "image"

    @pytest.mark.asyncio
    async def test_speech_unsupported(self, mock_http: Callable, notifier: Any) -> None:
        adapter = make_adapter(mock_http(lambda r: httpx.Response(500)), notifier)

        assert await adapter.speech_to_text(b"", "en") is None
        assert await adapter.text_to_speech("x") is None
        assert [e.capability for e in notifier.errors] == ["speech_to_text", "text_to_speech"]
