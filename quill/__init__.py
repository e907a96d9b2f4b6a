"""
Quill - Multi-backend writing assistant core.

Routes prompts to OpenAI, Anthropic, Gemini or Groq models behind one
interface and runs the primary-answer-plus-critique workflow.

Sub-packages:
- adapters: Backend adapters, router, streaming and reasoning filter
- quill.critique: Critique orchestrator
- quill.config: Settings snapshot and model catalog
"""

from quill.config import Settings
from quill.errors import (
    AuthError,
    BackendProtocolError,
    ErrorKind,
    ParseError,
    QuillError,
    UnsupportedCapability,
)

__version__ = "0.1.0"

__all__ = [
    "Settings",
    "AuthError",
    "BackendProtocolError",
    "ErrorKind",
    "ParseError",
    "QuillError",
    "UnsupportedCapability",
    "__version__",
]
