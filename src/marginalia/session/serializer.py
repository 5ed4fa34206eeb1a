"""Convert between in-memory annotation state and persisted session records.

``serialize`` flattens messages and both annotation stores into a
``ChatSessionRecord``; ``deserialize`` reverses it.  Highlights are not
persisted on their own: on load they are rebuilt from the ranges that carry a
memo or a supplementary thread, so a highlight without an annotation does not
survive a save/load cycle.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, assert_never

from pydantic import ValidationError

from marginalia.annotations.stores import (
    MemoPayload,
    MemoStore,
    SupplementaryPayload,
    SupplementaryStore,
)
from marginalia.highlight.range import Range
from marginalia.highlight.span_ids import is_ephemeral
from marginalia.highlight.store import HighlightStore
from marginalia.models import Message
from marginalia.pricing import calculate_cost
from marginalia.session.records import (
    ChatSessionRecord,
    MemoRecord,
    MessageRecord,
    SupplementaryItemRecord,
    SupplementaryRecord,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from marginalia.annotations.stores import AnnotationEntry

logger = logging.getLogger(__name__)


class SessionFormatError(ValueError):
    """Raised when a persisted record cannot be turned back into state."""


@dataclass
class SessionState:
    """Everything ``deserialize`` reconstructs from one record."""

    messages: list[Message] = field(default_factory=list)
    highlights: HighlightStore = field(default_factory=HighlightStore)
    memos: MemoStore = field(default_factory=MemoStore)
    supplementary: SupplementaryStore = field(default_factory=SupplementaryStore)
    session_id: int | None = None
    summary: str = ""


# ---------------------------------------------------------------------------
# Serialize
# ---------------------------------------------------------------------------


def message_cost(message: Message) -> float:
    """Cost of *message*: priced from tokens when known, else as loaded, else 0."""
    if message.model and message.input_tokens and message.output_tokens:
        return calculate_cost(
            message.model, message.input_tokens, message.output_tokens
        )
    return message.cost or 0.0


def _keep_part(part_id: str, message_id: int, reject_ephemeral_ids: bool) -> bool:
    if not is_ephemeral(part_id):
        return True
    if reject_ephemeral_ids:
        logger.warning(
            "Dropping annotation on ephemeral part %s of message %s from saved record",
            part_id,
            message_id,
        )
        return False
    logger.warning(
        "Saving annotation keyed by ephemeral part %s of message %s; "
        "it will not reattach after the document is re-parsed",
        part_id,
        message_id,
    )
    return True


def _item_record(message: Message) -> SupplementaryItemRecord:
    return SupplementaryItemRecord(
        role=message.role,
        content=message.content,
        model=message.model or "",
        timestamp=message.timestamp,
        cost=message_cost(message),
    )


def _annotation_records(
    message_id: int,
    stores: Sequence[Mapping[str, Sequence[AnnotationEntry[Any]]]],
    reject_ephemeral_ids: bool,
) -> tuple[list[MemoRecord], list[SupplementaryRecord]]:
    memos: list[MemoRecord] = []
    threads: list[SupplementaryRecord] = []
    parts = [(p, e) for entries in stores for p, e in entries.items()]
    for part_id, part_entries in parts:
        if not _keep_part(part_id, message_id, reject_ephemeral_ids):
            continue
        for entry in part_entries:
            rng = entry.range
            payload = entry.payload
            match payload:
                case MemoPayload(text=text):
                    memos.append(
                        MemoRecord(
                            client_side_id=part_id,
                            range_start=rng.start_offset,
                            range_end=rng.end_offset,
                            memo=text,
                        )
                    )
                case SupplementaryPayload(messages=thread):
                    threads.append(
                        SupplementaryRecord(
                            client_side_id=part_id,
                            range_start=rng.start_offset,
                            range_end=rng.end_offset,
                            items=[_item_record(m) for m in thread],
                        )
                    )
                case _:
                    assert_never(payload)
    return memos, threads


def serialize(
    messages: Sequence[Message],
    memos: MemoStore,
    supplementary: SupplementaryStore,
    summary: str = "",
    session_id: int | None = None,
    *,
    reject_ephemeral_ids: bool = False,
) -> ChatSessionRecord:
    """Flatten messages and annotation stores into a persistable record.

    Args:
        messages: Committed conversation messages, in order.
        memos: Memo store.
        supplementary: Supplementary thread store.
        summary: User-entered session title.
        session_id: Existing session id when updating a saved session.
        reject_ephemeral_ids: Leave out annotations keyed by ephemeral part
            ids instead of saving them with a warning.

    Returns:
        The session record.  Annotations on message ids that are not in
        *messages* are not included.
    """
    records: list[MessageRecord] = []
    for message in messages:
        memo_records, thread_records = _annotation_records(
            message.id,
            [
                memos.parts_for_message(message.id),
                supplementary.parts_for_message(message.id),
            ],
            reject_ephemeral_ids,
        )
        records.append(
            MessageRecord(
                id=message.id,
                role=message.role,
                content=message.content,
                model=message.model or "",
                timestamp=message.timestamp,
                cost=message_cost(message),
                memos=memo_records or None,
                supplementary_messages=thread_records or None,
            )
        )

    return ChatSessionRecord(id=session_id, summary=summary, messages=records)


# ---------------------------------------------------------------------------
# Deserialize
# ---------------------------------------------------------------------------


def _message_from_record(
    record: MessageRecord | SupplementaryItemRecord, id_: int
) -> Message:
    return Message(
        id=id_,
        role=record.role,
        content=record.content,
        model=record.model or None,
        timestamp=record.timestamp,
        cost=record.cost,
    )


def deserialize(record: ChatSessionRecord | Mapping[str, Any]) -> SessionState:
    """Rebuild messages, highlights and annotation stores from a record.

    Args:
        record: A validated record or its JSON-compatible wire form.

    Returns:
        The reconstructed ``SessionState``.  Messages in a supplementary
        thread are numbered by their position in the thread.

    Raises:
        SessionFormatError: If the wire form does not match the record shape.
    """
    if not isinstance(record, ChatSessionRecord):
        try:
            record = ChatSessionRecord.model_validate(record)
        except ValidationError as exc:
            msg = f"Malformed chat session record: {exc}"
            raise SessionFormatError(msg) from exc

    state = SessionState(session_id=record.id, summary=record.summary)

    for msg_record in record.messages:
        message_id = msg_record.id
        state.messages.append(_message_from_record(msg_record, message_id))

        for memo in msg_record.memos or ():
            rng = Range(memo.range_start, memo.range_end)
            state.highlights.add_range(message_id, memo.client_side_id, rng)
            state.memos.set_memo(message_id, memo.client_side_id, rng, memo.memo)

        for thread in msg_record.supplementary_messages or ():
            rng = Range(thread.range_start, thread.range_end)
            payload = SupplementaryPayload(
                tuple(
                    _message_from_record(item, index)
                    for index, item in enumerate(thread.items)
                )
            )
            state.highlights.add_range(message_id, thread.client_side_id, rng)
            state.supplementary.upsert(
                message_id, thread.client_side_id, rng, payload
            )

    logger.debug(
        "Deserialized session %s: %d messages, %d memos, %d threads",
        record.id,
        len(state.messages),
        len(state.memos),
        len(state.supplementary),
    )
    return state
