"""Incremental token accumulation for streaming calls."""

from __future__ import annotations


class StreamClosedError(RuntimeError):
    """A fragment was appended after the stream was finalized."""


class StreamAccumulator:
    """
    Monotonic text buffer bound to one in-flight streaming call.

    Fragments are concatenated in the order they are appended. Once
    ``finalize`` has been called the buffer is frozen.
    """

    def __init__(self) -> None:
        self._fragments: list[str] = []
        self._text = ""
        self._closed = False

    def append(self, fragment: str) -> str:
        """Add a fragment and return the text accumulated so far."""
        if self._closed:
            raise StreamClosedError("Cannot append to a finalized stream")
        self._fragments.append(fragment)
        self._text += fragment
        return self._text

    def finalize(self) -> str:
        """Close the buffer and return the full text."""
        self._closed = True
        return self._text

    @property
    def text(self) -> str:
        return self._text

    @property
    def closed(self) -> bool:
        return self._closed

    def __len__(self) -> int:
        return len(self._fragments)

    def __repr__(self) -> str:
        state = "closed" if self._closed else "open"
        return f"<StreamAccumulator {state} fragments={len(self._fragments)} chars={len(self._text)}>"
