"""
Quill - Error Hierarchy

Normalized error values for every adapter boundary. Each error carries an
explicit kind tag so that reporting stays backend-agnostic.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import httpx


class ErrorKind(str, Enum):
    """Kinds of failures an adapter call can end in."""

    AUTH = "auth"                          # Missing/invalid credential
    BACKEND_PROTOCOL = "backend_protocol"  # Non-2xx or failed round-trip
    UNSUPPORTED_CAPABILITY = "unsupported_capability"
    PARSE = "parse"                        # Unexpected response shape


@dataclass
class ErrorContext:
    """Where and when an error happened."""

    timestamp: datetime = field(default_factory=datetime.now)
    operation: str | None = None
    model: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "operation": self.operation,
            "model": self.model,
        }


class QuillError(Exception):
    """
    Base exception for all Quill errors.

    Carries a kind tag, the provider it came from and the underlying cause,
    so the notifier can format any backend failure the same way.
    """

    kind: ErrorKind = ErrorKind.BACKEND_PROTOCOL

    def __init__(
        self,
        message: str,
        *,
        code: str = "QUILL_ERROR",
        provider: str | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.provider = provider
        self.context = context or ErrorContext()
        self.cause = cause

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "kind": self.kind.value,
            "code": self.code,
            "message": self.message,
            "provider": self.provider,
            "context": self.context.to_dict(),
            "cause": str(self.cause) if self.cause else None,
        }

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"code={self.code!r}, "
            f"message={self.message!r}, "
            f"provider={self.provider!r})"
        )


class AuthError(QuillError):
    """Credential missing or rejected by the backend."""

    kind = ErrorKind.AUTH

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", "AUTH_ERROR")
        super().__init__(message, **kwargs)


class BackendProtocolError(QuillError):
    """Backend answered with a non-2xx status or the round-trip failed."""

    kind = ErrorKind.BACKEND_PROTOCOL

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        **kwargs: Any,
    ) -> None:
        kwargs.setdefault("code", "BACKEND_PROTOCOL_ERROR")
        super().__init__(message, **kwargs)
        self.status_code = status_code


class UnsupportedCapability(QuillError):
    """Capability invoked on a backend that does not provide it."""

    kind = ErrorKind.UNSUPPORTED_CAPABILITY

    def __init__(self, capability: str, **kwargs: Any) -> None:
        provider = kwargs.get("provider")
        super().__init__(
            f"{provider or 'This backend'} does not support {capability}",
            code="UNSUPPORTED_CAPABILITY",
            **kwargs,
        )
        self.capability = capability


class ParseError(QuillError):
    """Response did not have the expected shape."""

    kind = ErrorKind.PARSE

    def __init__(self, message: str, **kwargs: Any) -> None:
        kwargs.setdefault("code", "PARSE_ERROR")
        super().__init__(message, **kwargs)


class ConfigError(Exception):
    """Settings could not be loaded or failed validation."""

    def __init__(self, source: str, errors: list[str]) -> None:
        super().__init__(f"Invalid settings at {source}: {'; '.join(errors)}")
        self.source = source
        self.errors = errors


def _status_of(exc: BaseException) -> int | None:
    """Dig an HTTP status code out of httpx and SDK exceptions."""
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    status = getattr(exc, "status_code", None)
    if isinstance(status, int):
        return status
    response = getattr(exc, "response", None)
    status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def normalize_error(
    exc: BaseException,
    *,
    provider: str | None = None,
    operation: str | None = None,
    model: str | None = None,
) -> QuillError:
    """
    Convert any exception raised inside an adapter into a QuillError.

    Args:
        exc: The caught exception
        provider: Backend the call was made against
        operation: Capability being exercised (text, image, ...)
        model: Effective model identifier

    Returns:
        A QuillError subclass tagged with the matching ErrorKind
    """
    if isinstance(exc, QuillError):
        if exc.provider is None:
            exc.provider = provider
        return exc

    context = ErrorContext(operation=operation, model=model)
    status = _status_of(exc)

    if status in (401, 403):
        return AuthError(
            f"Credential rejected ({status}): {exc}",
            provider=provider,
            context=context,
            cause=exc,
        )
    if status is not None:
        return BackendProtocolError(
            f"Backend returned {status}: {exc}",
            status_code=status,
            provider=provider,
            context=context,
            cause=exc,
        )
    if isinstance(exc, (KeyError, IndexError, TypeError, AttributeError, json.JSONDecodeError)):
        return ParseError(
            f"Unexpected response shape: {exc!r}",
            provider=provider,
            context=context,
            cause=exc,
        )
    return BackendProtocolError(
        str(exc) or exc.__class__.__name__,
        provider=provider,
        context=context,
        cause=exc,
    )
