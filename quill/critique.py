"""
Critique Orchestrator - primary answer followed by a delayed critique.

Sequence:
1. Ask the primary model, insert its answer into the editor.
2. If critique mode is on, announce it and schedule a task that waits a
   fixed delay, then asks the critique model to evaluate the answer.
3. Append the critique after the primary answer.

States: AWAITING_PRIMARY -> AWAITING_CRITIQUE -> DONE, or FAILED from either.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from adapters.base import LLMAdapter, Message, ModelDescriptor
from adapters.router import build_adapter, describe_model
from quill.config import Settings
from quill.editor import EditorDetachedError, TextEditor
from quill.errors import normalize_error
from quill.notices import LogNotifier, Notifier

logger = logging.getLogger("quill.critique")

CRITIQUE_DELAY_SECONDS = 60.0

CRITIQUE_PROMPT = """Critique this response. Be precise and direct - no filler words or lengthy explanations. Use bullet points.

Request: "{request}"
Original: "{original}"
Response: "{response}"

Provide:
• Accuracy issues (if any)
• Missing elements
• Clarity problems
• Specific improvements

Critique:"""

CRITIQUE_HEADER = "\n\n---\n**Critique:**\n"

AdapterFactory = Callable[[str], LLMAdapter]


class CritiqueState(str, Enum):
    """Orchestrator states."""

    AWAITING_PRIMARY = "awaiting_primary"
    AWAITING_CRITIQUE = "awaiting_critique"
    DONE = "done"
    FAILED = "failed"


def compose_prompt(prompt_text: str, selected_text: str) -> str:
    return f"{prompt_text} : {selected_text}"


@dataclass
class CritiqueTask:
    """
    Everything the delayed critique call needs. Consumed once.

    ``fire_at`` is the UTC instant the critique task waits for.
    """

    primary_answer: str
    original_prompt: str
    selected_text: str
    critique_model: ModelDescriptor
    fire_at: datetime
    consumed: bool = False

    def build_prompt(self) -> str:
        return CRITIQUE_PROMPT.format(
            request=self.original_prompt,
            original=self.selected_text,
            response=self.primary_answer,
        )

    def consume(self) -> str:
        """Mark the task used and return the critique prompt."""
        if self.consumed:
            raise RuntimeError("Critique task already consumed")
        self.consumed = True
        return self.build_prompt()


class CritiqueHandle:
    """Cancellation handle for a scheduled critique."""

    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task

    def cancel(self) -> bool:
        """Revoke the critique. Returns False if it already ran."""
        return self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._task.cancelled()

    @property
    def done(self) -> bool:
        return self._task.done()

    async def wait(self) -> None:
        """Wait for the critique to finish or be cancelled."""
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._task.cancelled():
                raise


@dataclass
class CritiqueRun:
    """Outcome of one orchestrated request."""

    state: CritiqueState = CritiqueState.AWAITING_PRIMARY
    primary_answer: str | None = None
    critique: str | None = None
    task: CritiqueTask | None = None
    handle: CritiqueHandle | None = None
    history: list[CritiqueState] = field(default_factory=list)

    def transition(self, state: CritiqueState) -> None:
        logger.debug(f"Critique run {self.state.value} -> {state.value}")
        self.history.append(self.state)
        self.state = state

    async def wait(self) -> CritiqueRun:
        """Wait for a scheduled critique, if any."""
        if self.handle is not None:
            await self.handle.wait()
        return self


class CritiqueOrchestrator:
    """
    Runs the primary-answer-plus-critique workflow against one editor.

    Settings are a snapshot taken at construction; adapters are built per
    call so the primary and critique models can live on different backends.
    """

    def __init__(
        self,
        settings: Settings,
        editor: TextEditor,
        *,
        notifier: Notifier | None = None,
        adapter_factory: AdapterFactory | None = None,
        delay: float = CRITIQUE_DELAY_SECONDS,
    ) -> None:
        self.settings = settings
        self.editor = editor
        self.notifier = notifier or LogNotifier()
        self.adapter_factory = adapter_factory or self._default_factory
        self.delay = delay

    def _default_factory(self, model_id: str) -> LLMAdapter:
        return build_adapter(model_id, self.settings, notifier=self.notifier)

    async def run(
        self,
        prompt_text: str,
        selected_text: str | None = None,
        *,
        model: str | None = None,
        critique: bool = False,
        critique_model: str | None = None,
    ) -> CritiqueRun:
        """
        Ask the primary model and optionally schedule a critique.

        Args:
            prompt_text: The instruction
            selected_text: Text the instruction applies to; defaults to the
                editor selection
            model: Primary model, defaults to settings.model_name
            critique: Schedule a critique after the primary answer
            critique_model: Critique model, defaults to settings.critique_model_name

        Returns:
            The run; await ``run.wait()`` to follow a scheduled critique
        """
        run = CritiqueRun()
        if selected_text is None:
            try:
                selected_text = self.editor.get_selection().strip()
            except EditorDetachedError as e:
                self.notifier.notify(f"Could not read selection: {e}")
                run.transition(CritiqueState.FAILED)
                return run

        primary = self.adapter_factory(model or self.settings.model_name)
        answer = await primary.text_call(
            [Message.user(compose_prompt(prompt_text, selected_text))]
        )
        if not answer:
            logger.info("Primary call returned no answer")
            run.transition(CritiqueState.FAILED)
            return run

        run.primary_answer = answer
        try:
            self._insert_primary(answer)
        except EditorDetachedError as e:
            self.notifier.notify(f"Could not insert answer: {e}")
            run.transition(CritiqueState.FAILED)
            return run

        if not critique:
            run.transition(CritiqueState.DONE)
            return run

        run.transition(CritiqueState.AWAITING_CRITIQUE)
        run.task = CritiqueTask(
            primary_answer=answer,
            original_prompt=prompt_text,
            selected_text=selected_text,
            critique_model=describe_model(
                critique_model or self.settings.critique_model_name,
                self.settings.max_tokens,
            ),
            fire_at=datetime.now(timezone.utc) + timedelta(seconds=self.delay),
        )
        self.notifier.notify(
            f"Preparing critique... This will take about {round(self.delay)} seconds."
        )
        run.handle = CritiqueHandle(asyncio.create_task(self._fire(run, run.task)))
        logger.info(
            f"Critique with {run.task.critique_model.id} scheduled for {run.task.fire_at.isoformat()}"
        )
        return run

    def _insert_primary(self, answer: str) -> None:
        if self.settings.replace_selection:
            self.editor.replace_selection(answer.strip())
        else:
            self.editor.insert_at_cursor("\n" + answer.strip())

    async def _fire(self, run: CritiqueRun, task: CritiqueTask) -> None:
        remaining = (task.fire_at - datetime.now(timezone.utc)).total_seconds()
        try:
            await asyncio.sleep(max(remaining, 0.0))
        except asyncio.CancelledError:
            logger.info("Critique cancelled before it fired")
            run.transition(CritiqueState.FAILED)
            raise

        if not self.editor.is_attached:
            self._skip(run)
            return

        try:
            adapter = self.adapter_factory(task.critique_model.id)
            critique = await adapter.text_call([Message.user(task.consume())])
        except asyncio.CancelledError:
            logger.info("Critique cancelled while the critique model was answering")
            run.transition(CritiqueState.FAILED)
            raise
        except Exception as e:
            self.notifier.error(normalize_error(e, operation="critique", model=task.critique_model.id))
            run.transition(CritiqueState.FAILED)
            return

        if not critique:
            run.transition(CritiqueState.FAILED)
            return

        if not self.editor.is_attached:
            self._skip(run)
            return
        try:
            self.editor.insert_at_cursor(CRITIQUE_HEADER + critique.strip())
        except EditorDetachedError:
            self._skip(run)
            return

        run.critique = critique
        run.transition(CritiqueState.DONE)
        self.notifier.notify("Critique completed!")

    def _skip(self, run: CritiqueRun) -> None:
        logger.info("Editor closed before the critique could be inserted")
        self.notifier.notify("Critique skipped: the document is no longer open.")
        run.transition(CritiqueState.FAILED)
