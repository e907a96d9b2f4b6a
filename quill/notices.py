"""
User notices - transient status and error messages.

The core never talks to a UI directly; it reports through a Notifier.
Two implementations ship here: a rich console notifier for the CLI and a
logging-only notifier for headless use.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

from rich.console import Console

from quill.errors import QuillError

logger = logging.getLogger("quill.notices")

PROVIDER_LABELS: dict[str, str] = {
    "openai": "OpenAI",
    "anthropic": "Anthropic",
    "gemini": "Gemini",
    "groq": "Groq",
}


def format_error(error: QuillError) -> str:
    """Render an error the same way for every backend."""
    label = PROVIDER_LABELS.get(error.provider or "", error.provider or "Assistant")
    return f"{label} API Error: {error.message}"


@runtime_checkable
class Notifier(Protocol):
    """Collaborator receiving caller-visible notices."""

    def notify(self, message: str) -> None:
        ...

    def error(self, error: QuillError) -> None:
        ...


class LogNotifier:
    """Notifier that only writes to the log."""

    def notify(self, message: str) -> None:
        logger.info(message)

    def error(self, error: QuillError) -> None:
        logger.error(format_error(error), extra={"quill_error": error.to_dict()})


class ConsoleNotifier:
    """Notifier printing to a rich console."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console(stderr=True)

    def notify(self, message: str) -> None:
        self.console.print(f"[cyan]>[/cyan] {message}")

    def error(self, error: QuillError) -> None:
        logger.debug(f"Reporting error: {error!r}")
        self.console.print(f"[bold red]{format_error(error)}[/bold red]")
