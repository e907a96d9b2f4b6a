"""
Text insertion collaborator.

The orchestrator writes answers through a TextEditor. BufferEditor is an
in-memory document with a selection and a cursor, used by the CLI.
"""

from __future__ import annotations

import logging
from typing import Protocol, runtime_checkable

logger = logging.getLogger("quill.editor")


class EditorDetachedError(RuntimeError):
    """The document behind the editor is gone."""


@runtime_checkable
class TextEditor(Protocol):
    """Operations the core needs from a host editor."""

    @property
    def is_attached(self) -> bool:
        ...

    def get_selection(self) -> str:
        ...

    def replace_selection(self, text: str) -> None:
        ...

    def insert_at_cursor(self, text: str) -> None:
        ...


class BufferEditor:
    """
    In-memory document.

    The selection is ``[selection_start, selection_end)``; the cursor sits at
    the end of the selection. Both insert operations leave the cursor after
    the inserted text, so consecutive insertions read in call order.
    """

    def __init__(
        self,
        text: str = "",
        selection: tuple[int, int] | None = None,
    ) -> None:
        self.text = text
        start, end = selection if selection is not None else (0, len(text))
        if not 0 <= start <= end <= len(text):
            raise ValueError(f"Selection {start}..{end} outside document of length {len(text)}")
        self.selection_start = start
        self.selection_end = end
        self._attached = True

    @property
    def cursor(self) -> int:
        return self.selection_end

    @property
    def is_attached(self) -> bool:
        return self._attached

    def detach(self) -> None:
        """Simulate the document being closed."""
        self._attached = False

    def _check(self) -> None:
        if not self._attached:
            raise EditorDetachedError("Document is no longer open")

    def get_selection(self) -> str:
        self._check()
        return self.text[self.selection_start:self.selection_end]

    def replace_selection(self, text: str) -> None:
        self._check()
        self.text = self.text[:self.selection_start] + text + self.text[self.selection_end:]
        self.selection_end = self.selection_start + len(text)
        self.selection_start = self.selection_end
        logger.debug(f"Replaced selection with {len(text)} chars")

    def insert_at_cursor(self, text: str) -> None:
        self._check()
        position = self.cursor
        self.text = self.text[:position] + text + self.text[position:]
        self.selection_start = self.selection_end = position + len(text)
        logger.debug(f"Inserted {len(text)} chars at {position}")

    def __repr__(self) -> str:
        return (
            f"<BufferEditor chars={len(self.text)} "
            f"selection={self.selection_start}..{self.selection_end} attached={self._attached}>"
        )
