"""
Reasoning filter - strips "thinking" scratch-text some models emit.

Reasoning models (DeepSeek R1, Qwen3, ...) wrap their deliberation in
markup before the actual answer. Only well-formed spans are removed;
an unterminated tag is left in place.
"""

from __future__ import annotations

import logging
import re

logger = logging.getLogger("quill.adapters.reasoning")

REASONING_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"<think>.*?</think>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<thinking>.*?</thinking>", re.IGNORECASE | re.DOTALL),
    re.compile(r"\[thinking\].*?\[/thinking\]", re.IGNORECASE | re.DOTALL),
)

_BLANK_LINES = re.compile(r"^\s*[\r\n]", re.MULTILINE)


def _strip_once(text: str) -> str:
    for pattern in REASONING_PATTERNS:
        text = pattern.sub("", text)
    return _BLANK_LINES.sub("", text).strip()


def filter_reasoning(raw_text: str) -> str:
    """
    Remove reasoning spans, blank lines and surrounding whitespace.

    A removal can join fragments into a new well-formed span
    (``<thi<think>x</think>nk>..</think>``), so the pass repeats until the
    text stops changing. That keeps the function idempotent.
    """
    if not raw_text:
        return raw_text

    cleaned = _strip_once(raw_text)
    while True:
        again = _strip_once(cleaned)
        if again == cleaned:
            break
        cleaned = again

    if cleaned != raw_text:
        logger.debug(f"Filtered reasoning content ({len(raw_text)} -> {len(cleaned)} chars)")
    return cleaned
