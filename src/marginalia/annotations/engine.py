"""Annotation engine for one chat session.

``AnnotationEngine`` owns the conversation's messages and its three stores
(highlights, memos, supplementary threads).  The render and interaction layers
receive the engine by reference and drive it with user actions:

* ``handle_selection`` turns a mouse-up inside a segment into either a pending
  selection (plain text selected) or a lookup of the clicked highlight;
* ``save_memo`` / ``save_supplementary`` / ``explain`` attach annotations,
  and ``follow_up`` continues an explanation thread;
* ``delete_annotation`` removes a highlight range and its annotations;
* ``reset`` clears the whole history.

Every action that touches an annotation adds the highlight first, so an
annotation is never stored for a range that is not highlighted.

When built with a usage backend, every completed model reply (chat turn or
explanation) is written to the usage log.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from marginalia.annotations.stores import (
    MemoStore,
    SupplementaryPayload,
    SupplementaryStore,
)
from marginalia.highlight.segmenter import segment_text
from marginalia.highlight.selection import (
    SelectionError,
    SelectionMode,
    resolve_selection,
)
from marginalia.highlight.store import HighlightStore
from marginalia.llm.prompt import (
    DEFAULT_EXPLAIN_PROMPT,
    build_explain_question,
    excerpt,
    history_through,
)
from marginalia.models import Message, Role, StreamingBuffer
from marginalia.session.serializer import deserialize, serialize
from marginalia.usage import usage_entry

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any

    from marginalia.highlight.range import Range
    from marginalia.highlight.segmenter import Segment
    from marginalia.highlight.selection import SelectionEvent
    from marginalia.llm.client import ChatTransport
    from marginalia.models import Usage
    from marginalia.persistence import SessionBackend
    from marginalia.session.records import ChatSessionRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class PendingSelection:
    """A freshly selected, not yet annotated range awaiting a user choice.

    Attributes:
        message_id: Message containing the span.
        part_id: Span id.
        range: Selected range within the span text.
        text: The selected text, when the span text was supplied.
    """

    message_id: int
    part_id: str
    range: Range
    text: str | None = None


@dataclass(frozen=True, slots=True)
class AnnotationLookup:
    """What is attached to a clicked highlight range.

    Memos take precedence over supplementary threads when both exist.
    """

    message_id: int
    part_id: str
    range: Range
    memo: str | None = None
    supplementary: SupplementaryPayload | None = None

    @property
    def is_empty(self) -> bool:
        return self.memo is None and self.supplementary is None

    @property
    def action(self) -> str | None:
        """``"memo"``, ``"explain"`` or None, in display precedence order."""
        if self.memo is not None:
            return "memo"
        if self.supplementary is not None:
            return "explain"
        return None


type SelectionOutcome = PendingSelection | AnnotationLookup


class AnnotationEngine:
    """Explicit context object owning one session's messages and stores."""

    def __init__(
        self,
        *,
        reject_ephemeral_ids: bool = False,
        explain_prompt: str = DEFAULT_EXPLAIN_PROMPT,
        excerpt_length: int = 20,
        usage_backend: SessionBackend | None = None,
    ) -> None:
        self.highlights = HighlightStore()
        self.memos = MemoStore()
        self.supplementary = SupplementaryStore()
        self.messages: list[Message] = []
        self.session_id: int | None = None
        self.summary = ""
        self.reject_ephemeral_ids = reject_ephemeral_ids
        self.explain_prompt = explain_prompt
        self.excerpt_length = excerpt_length
        self.usage_backend = usage_backend
        self._next_id = 1
        self._revision = 0
        self.streaming: StreamingBuffer | None = None

    @classmethod
    def from_settings(
        cls, usage_backend: SessionBackend | None = None
    ) -> AnnotationEngine:
        """Build an engine configured from ``get_settings()``."""
        from marginalia.config import get_settings

        settings = get_settings()
        return cls(
            reject_ephemeral_ids=settings.annotation.reject_ephemeral_ids,
            explain_prompt=settings.llm.explain_prompt,
            excerpt_length=settings.annotation.explain_excerpt_length,
            usage_backend=usage_backend,
        )

    @property
    def revision(self) -> int:
        """Counter bumped by every mutation of messages or stores."""
        return self._revision

    def _touch(self) -> None:
        self._revision += 1

    # --- Messages ---

    def next_message_id(self) -> int:
        message_id = self._next_id
        self._next_id += 1
        return message_id

    def add_message(
        self,
        role: Role,
        content: str,
        model: str | None = None,
        usage: Usage | None = None,
    ) -> Message:
        """Commit a complete message to the conversation."""
        message = Message(
            id=self.next_message_id(), role=role, content=content, model=model
        )
        if usage is not None:
            message = message.with_usage(usage)
        self.messages.append(message)
        self._touch()
        return message

    def get_message(self, message_id: int) -> Message | None:
        return next((m for m in self.messages if m.id == message_id), None)

    def start_stream(self, model: str | None = None) -> StreamingBuffer:
        """Begin an assistant message; content accumulates in the buffer."""
        self.streaming = StreamingBuffer(Role.ASSISTANT, model)
        return self.streaming

    def commit_stream(self, usage: Usage | None = None) -> Message:
        """Commit the streaming buffer as a message.

        Raises:
            RuntimeError: If no stream is in progress.
        """
        if self.streaming is None:
            msg = "No streaming message in progress"
            raise RuntimeError(msg)
        message = self.streaming.commit(self.next_message_id(), usage)
        self.streaming = None
        self.messages.append(message)
        self._touch()
        return message

    async def send(
        self,
        prompt: str,
        transport: ChatTransport,
        *,
        system: str | None = None,
    ) -> Message:
        """Add a user message and stream the assistant's reply.

        On transport failure the partial reply is discarded, an error message
        is recorded instead, and the exception propagates.
        """
        self.add_message(Role.USER, prompt)
        buffer = self.start_stream()
        try:
            usage = await transport.stream(self.messages, buffer, system=system)
        except Exception as exc:
            self.streaming = None
            self.add_message(Role.ERROR, str(exc))
            raise
        message = self.commit_stream(usage)
        await self._log_usage(message.model, usage)
        return message

    async def _log_usage(self, model: str | None, usage: Usage) -> None:
        """Write one usage log entry; failures are logged, not raised."""
        if self.usage_backend is None:
            return
        try:
            await self.usage_backend.log_usage(usage_entry(model, usage))
        except Exception:
            logger.exception("Failed to log usage for model %r", model)

    # --- Rendering ---

    def segments(self, message_id: int, part_id: str, text: str) -> list[Segment]:
        """Segment one span's text against its stored highlights."""
        return segment_text(text, self.highlights.query(message_id, part_id))

    # --- Interaction ---

    def handle_selection(
        self,
        message_id: int,
        part_id: str,
        event: SelectionEvent,
        span_text: str | None = None,
    ) -> SelectionOutcome | None:
        """React to a mouse-up inside a rendered segment.

        Selecting plain text highlights it and returns a ``PendingSelection``
        awaiting the user's choice of memo or explanation.  Selecting inside a
        highlight changes nothing and returns the ``AnnotationLookup`` for the
        selected range.  Selections spanning several nodes, or empty ones,
        are ignored.

        Returns:
            The outcome, or None when the selection was ignored.
        """
        try:
            resolved = resolve_selection(event)
        except SelectionError as exc:
            logger.debug("Ignoring selection in %s/%s: %s", message_id, part_id, exc)
            return None

        if resolved.mode is SelectionMode.REMOVE:
            return self.lookup(message_id, part_id, resolved.range)

        self.highlights.add_range(message_id, part_id, resolved.range)
        self._touch()
        text = resolved.range.slice(span_text) if span_text is not None else None
        return PendingSelection(message_id, part_id, resolved.range, text)

    def lookup(self, message_id: int, part_id: str, rng: Range) -> AnnotationLookup:
        """Find the memo and supplementary thread attached to exactly *rng*."""
        return AnnotationLookup(
            message_id=message_id,
            part_id=part_id,
            range=rng,
            memo=self.memos.memo_text(message_id, part_id, rng),
            supplementary=self.supplementary.find_exact(message_id, part_id, rng),
        )

    def save_memo(self, message_id: int, part_id: str, rng: Range, text: str) -> None:
        """Create or edit the memo on *rng*, highlighting it first."""
        self.highlights.add_range(message_id, part_id, rng)
        self.memos.set_memo(message_id, part_id, rng, text)
        self._touch()

    def save_supplementary(
        self,
        message_id: int,
        part_id: str,
        rng: Range,
        thread: Iterable[Message],
    ) -> SupplementaryPayload:
        """Attach (or replace) the supplementary thread on *rng*."""
        payload = SupplementaryPayload(tuple(thread))
        self.highlights.add_range(message_id, part_id, rng)
        self.supplementary.upsert(message_id, part_id, rng, payload)
        self._touch()
        return payload

    async def explain(
        self,
        selection: PendingSelection,
        transport: ChatTransport,
        *,
        system: str | None = None,
    ) -> SupplementaryPayload:
        """Ask the model to elaborate on a selection and store the thread.

        The request carries the conversation up to the selected message plus
        a follow-up question about the selected text.  The resulting thread
        holds that question and the reply.

        Raises:
            ValueError: If the selection has no text to explain.
        """
        if not selection.text:
            msg = "Selection text is required to request an explanation"
            raise ValueError(msg)

        question = Message(
            id=0,
            role=Role.USER,
            content=build_explain_question(selection.text, self.explain_prompt),
        )
        history = [*history_through(self.messages, selection.message_id), question]
        buffer = StreamingBuffer(Role.ASSISTANT)
        usage = await transport.stream(history, buffer, system=system)
        reply = buffer.commit(1, usage)
        await self._log_usage(reply.model, usage)
        logger.info(
            "Explanation for %s/%s %s: %d chars",
            selection.message_id,
            selection.part_id,
            selection.range,
            len(reply.content),
        )
        return self.save_supplementary(
            selection.message_id,
            selection.part_id,
            selection.range,
            (question, reply),
        )

    async def follow_up(
        self,
        message_id: int,
        part_id: str,
        rng: Range,
        question: str,
        transport: ChatTransport,
        *,
        system: str | None = None,
    ) -> SupplementaryPayload:
        """Ask a further question in the explanation thread on *rng*.

        The model sees the conversation up to the message, the thread so far
        and the new question.  Question and reply are appended to the thread.

        Raises:
            LookupError: If no thread is attached to exactly *rng*.
        """
        thread = self.supplementary.find_exact(message_id, part_id, rng)
        if thread is None:
            msg = f"No explanation thread on {message_id}/{part_id} {rng}"
            raise LookupError(msg)

        ask = Message(id=len(thread.messages), role=Role.USER, content=question)
        history = [
            *history_through(self.messages, message_id),
            *thread.messages,
            ask,
        ]
        buffer = StreamingBuffer(Role.ASSISTANT)
        usage = await transport.stream(history, buffer, system=system)
        reply = buffer.commit(ask.id + 1, usage)
        await self._log_usage(reply.model, usage)

        self.supplementary.append_message(message_id, part_id, rng, ask)
        payload = self.supplementary.append_message(message_id, part_id, rng, reply)
        self._touch()
        return payload

    def explain_title(self, selection: PendingSelection) -> str:
        """Short label for an explanation drawer."""
        return excerpt(selection.text or "", self.excerpt_length)

    def delete_annotation(self, message_id: int, part_id: str, rng: Range) -> None:
        """Remove the highlight covering *rng* and its annotations.

        The highlight characters in *rng* are removed (splitting a larger
        highlight if *rng* lies inside it).  Any memo or thread whose range is
        no longer fully highlighted afterwards is deleted with it.
        """
        self.highlights.remove_range(message_id, part_id, rng)
        self.memos.remove_exact(message_id, part_id, rng)
        self.supplementary.remove_exact(message_id, part_id, rng)
        self._prune_unhighlighted(message_id, part_id)
        self._touch()

    def _prune_unhighlighted(self, message_id: int, part_id: str) -> None:
        stored = self.highlights.query(message_id, part_id)
        for store in (self.memos, self.supplementary):
            for entry in store.entries(message_id, part_id):
                if not any(h.covers(entry.range) for h in stored):
                    logger.info(
                        "Dropping %s on %s/%s %s: range no longer highlighted",
                        store.kind,
                        message_id,
                        part_id,
                        entry.range,
                    )
                    store.remove_exact(message_id, part_id, entry.range)

    def reset(self) -> None:
        """Clear messages and every store.

        Message ids keep counting up so ids are never reused in a process.
        """
        self.messages.clear()
        self.highlights.clear()
        self.memos.clear()
        self.supplementary.clear()
        self.streaming = None
        self.session_id = None
        self.summary = ""
        self._touch()

    # --- Persistence ---

    def to_record(self, summary: str | None = None) -> ChatSessionRecord:
        """Serialize the session for saving."""
        if summary is not None:
            self.summary = summary
        return serialize(
            self.messages,
            self.memos,
            self.supplementary,
            self.summary,
            self.session_id,
            reject_ephemeral_ids=self.reject_ephemeral_ids,
        )

    def load_record(self, record: ChatSessionRecord | Mapping[str, Any]) -> None:
        """Replace the engine's state with a saved session.

        Raises:
            SessionFormatError: If *record* is malformed; state is unchanged.
        """
        state = deserialize(record)
        self.messages = state.messages
        self.highlights = state.highlights
        self.memos = state.memos
        self.supplementary = state.supplementary
        self.session_id = state.session_id
        self.summary = state.summary
        self.streaming = None
        highest = max((m.id for m in self.messages), default=0)
        self._next_id = max(highest + 1, self._next_id)
        self._touch()
