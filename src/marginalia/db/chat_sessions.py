"""CRUD operations for saved chat sessions.

Sessions are written and read as whole ``ChatSessionRecord`` objects; the
row-level tables in ``marginalia.db.models`` are an implementation detail.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from sqlmodel import delete, select

from marginalia.db.engine import get_session
from marginalia.db.models import (
    ChatMessage,
    ChatSession,
    Memo,
    SupplementaryItem,
    SupplementaryThread,
)
from marginalia.session.records import (
    ChatSessionPage,
    ChatSessionRecord,
    ChatSessionSummary,
    MemoRecord,
    MessageRecord,
    SupplementaryItemRecord,
    SupplementaryRecord,
)

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession


async def _insert_messages(
    session: AsyncSession, session_id: int, record: ChatSessionRecord
) -> None:
    for position, message in enumerate(record.messages):
        row = ChatMessage(
            session_id=session_id,
            message_id=message.id,
            position=position,
            role=message.role.value,
            content=message.content,
            model=message.model,
            timestamp=message.timestamp,
            cost=message.cost,
        )
        session.add(row)
        await session.flush()
        assert row.id is not None

        for memo in message.memos or ():
            session.add(
                Memo(
                    message_row_id=row.id,
                    client_side_id=memo.client_side_id,
                    range_start=memo.range_start,
                    range_end=memo.range_end,
                    memo=memo.memo,
                )
            )

        for thread in message.supplementary_messages or ():
            thread_row = SupplementaryThread(
                message_row_id=row.id,
                client_side_id=thread.client_side_id,
                range_start=thread.range_start,
                range_end=thread.range_end,
            )
            session.add(thread_row)
            await session.flush()
            assert thread_row.id is not None
            for item_position, item in enumerate(thread.items):
                session.add(
                    SupplementaryItem(
                        thread_id=thread_row.id,
                        position=item_position,
                        role=item.role.value,
                        content=item.content,
                        model=item.model,
                        timestamp=item.timestamp,
                        cost=item.cost,
                    )
                )
    await session.flush()


async def create_chat_session(record: ChatSessionRecord) -> int:
    """Save *record* as a new session, ignoring any id it carries.

    Returns:
        The new session id.
    """
    async with get_session() as session:
        row = ChatSession(summary=record.summary)
        session.add(row)
        await session.flush()
        assert row.id is not None
        await _insert_messages(session, row.id, record)
        return row.id


async def replace_chat_session(session_id: int, record: ChatSessionRecord) -> bool:
    """Overwrite an existing session's summary and messages.

    The last write wins: all previously saved messages and annotations of
    the session are replaced by those in *record*.

    Returns:
        True if replaced, False if no session has *session_id*.
    """
    async with get_session() as session:
        row = await session.get(ChatSession, session_id)
        if row is None:
            return False
        row.summary = record.summary
        row.updated_at = datetime.now(UTC)
        session.add(row)
        await session.execute(
            delete(ChatMessage).where(ChatMessage.session_id == session_id)  # type: ignore[arg-type]
        )
        await _insert_messages(session, session_id, record)
        return True


async def get_chat_session(session_id: int) -> ChatSessionRecord | None:
    """Load a whole session, or None if not found."""
    async with get_session() as session:
        row = await session.get(ChatSession, session_id)
        if row is None:
            return None

        messages = list(
            (
                await session.exec(
                    select(ChatMessage)
                    .where(ChatMessage.session_id == session_id)
                    .order_by(ChatMessage.position)  # type: ignore[arg-type]
                )
            ).all()
        )
        row_ids = [m.id for m in messages]

        memos: dict[int, list[MemoRecord]] = defaultdict(list)
        threads: dict[int, list[SupplementaryRecord]] = defaultdict(list)
        if row_ids:
            memo_rows = await session.exec(
                select(Memo)
                .where(Memo.message_row_id.in_(row_ids))  # type: ignore[attr-defined]
                .order_by(Memo.id)  # type: ignore[arg-type]
            )
            for memo in memo_rows.all():
                memos[memo.message_row_id].append(
                    MemoRecord(
                        client_side_id=memo.client_side_id,
                        range_start=memo.range_start,
                        range_end=memo.range_end,
                        memo=memo.memo,
                    )
                )

            thread_rows = list(
                (
                    await session.exec(
                        select(SupplementaryThread)
                        .where(SupplementaryThread.message_row_id.in_(row_ids))  # type: ignore[attr-defined]
                        .order_by(SupplementaryThread.id)  # type: ignore[arg-type]
                    )
                ).all()
            )
            items: dict[int, list[SupplementaryItemRecord]] = defaultdict(list)
            thread_ids = [t.id for t in thread_rows]
            if thread_ids:
                item_rows = await session.exec(
                    select(SupplementaryItem)
                    .where(SupplementaryItem.thread_id.in_(thread_ids))  # type: ignore[attr-defined]
                    .order_by(SupplementaryItem.position)  # type: ignore[arg-type]
                )
                for item in item_rows.all():
                    items[item.thread_id].append(
                        SupplementaryItemRecord(
                            role=item.role,
                            content=item.content,
                            model=item.model,
                            timestamp=item.timestamp,
                            cost=item.cost,
                        )
                    )
            for thread in thread_rows:
                assert thread.id is not None
                threads[thread.message_row_id].append(
                    SupplementaryRecord(
                        client_side_id=thread.client_side_id,
                        range_start=thread.range_start,
                        range_end=thread.range_end,
                        items=items[thread.id],
                    )
                )

        return ChatSessionRecord(
            id=row.id,
            summary=row.summary,
            messages=[
                MessageRecord(
                    id=m.message_id,
                    role=m.role,
                    content=m.content,
                    model=m.model,
                    timestamp=m.timestamp,
                    cost=m.cost,
                    memos=memos.get(m.id) if m.id is not None else None,
                    supplementary_messages=(
                        threads.get(m.id) if m.id is not None else None
                    ),
                )
                for m in messages
            ],
        )


async def list_chat_sessions(cursor: int | None, take: int) -> ChatSessionPage:
    """List sessions newest first, starting after *cursor*.

    Args:
        cursor: Id of the last session on the previous page, or None for
            the first page.
        take: Page size.

    Returns:
        The page.  ``next_cursor`` is None when fewer than *take* sessions
        were returned.
    """
    async with get_session() as session:
        query = select(ChatSession)
        if cursor is not None:
            query = query.where(ChatSession.id < cursor)  # type: ignore[operator]
        query = query.order_by(ChatSession.id.desc()).limit(take)  # type: ignore[union-attr]
        rows = list((await session.exec(query)).all())

    items = [ChatSessionSummary(id=r.id, summary=r.summary) for r in rows if r.id]
    next_cursor = items[-1].id if len(items) == take else None
    return ChatSessionPage(items=items, next_cursor=next_cursor)


async def delete_chat_session(session_id: int) -> bool:
    """Delete a session with its messages and annotations (cascade).

    Returns:
        True if deleted, False if not found.
    """
    async with get_session() as session:
        row = await session.get(ChatSession, session_id)
        if row is None:
            return False
        await session.delete(row)
        return True
