from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Iterable

from loguru import logger
from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.orm import aliased

from postbox.errors import ConflictError, NotFoundError, StoreError
from postbox.models.message import MessageRecord
from postbox.schemas import Message

# stays below asyncpg's 32767 bind parameter limit
DELETE_BATCH_SIZE = 10_000


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes; everything is stored as UTC
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _to_message(record: MessageRecord) -> Message:
    return Message(
        id=record.id,
        recipient_user_name=record.user_name,
        content=record.content,
        sent_at=as_utc(record.sent_at),
        fetched_at=as_utc(record.fetched_at),
    )


def _describe(exc: SQLAlchemyError) -> str:
    # driver error only; the statement text can carry every bound id
    orig = getattr(exc, "orig", None)
    if orig is not None:
        return f"{type(orig).__name__}: {orig}"
    return type(exc).__name__


class MessageRepository:
    """Durable message store.

    Each public method runs in its own transaction taken from the session
    factory, so a raised error always means nothing was committed.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        now: Callable[[], datetime] = utc_now,
        delete_batch_size: int = DELETE_BATCH_SIZE,
    ) -> None:
        self._session_factory = session_factory
        self._now = now
        self._delete_batch_size = delete_batch_size

    async def insert(self, message: Message) -> None:
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    session.add(
                        MessageRecord(
                            id=message.id,
                            user_name=message.recipient_user_name,
                            content=message.content,
                            sent_at=as_utc(message.sent_at),
                            fetched_at=None,
                        )
                    )
        except IntegrityError as e:
            raise ConflictError(f"message {message.id!r} already exists") from e
        except SQLAlchemyError as e:
            raise StoreError(f"insert message {message.id!r}: {_describe(e)}") from e

        logger.debug(f"Inserted message {message.id} for {message.recipient_user_name}")

    async def fetch_unfetched(self) -> list[Message]:
        """
        Return every message not fetched yet, oldest first, and mark them fetched.

        Claiming and marking is a single UPDATE over a locking subselect, so
        the returned rows are exactly the rows marked. Rows locked by a
        concurrent fetch are skipped, so each row is handed out to exactly
        one caller. The returned messages reflect the state before marking.
        """
        claimed = aliased(MessageRecord)
        claimable = (
            select(claimed.id)
            .where(claimed.fetched_at.is_(None))
            .with_for_update(skip_locked=True)
            .scalar_subquery()
        )
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    result = await session.execute(
                        update(MessageRecord)
                        .where(MessageRecord.fetched_at.is_(None), MessageRecord.id.in_(claimable))
                        .values(fetched_at=as_utc(self._now()))
                        .returning(
                            MessageRecord.id,
                            MessageRecord.user_name,
                            MessageRecord.content,
                            MessageRecord.sent_at,
                        )
                        .execution_options(synchronize_session=False)
                    )
                    rows = result.all()
        except SQLAlchemyError as e:
            raise StoreError(f"fetch unfetched messages: {_describe(e)}") from e

        messages = [
            Message(
                id=row.id,
                recipient_user_name=row.user_name,
                content=row.content,
                sent_at=as_utc(row.sent_at),
                fetched_at=None,
            )
            for row in rows
        ]
        # RETURNING has no order of its own
        messages.sort(key=lambda m: m.sent_at)

        logger.debug(f"Fetched {len(messages)} new messages")
        return messages

    async def delete_by_ids(self, ids: Iterable[str]) -> None:
        wanted = sorted(set(ids))
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    deleted = 0
                    for start in range(0, len(wanted), self._delete_batch_size):
                        batch = wanted[start:start + self._delete_batch_size]
                        result = await session.execute(
                            delete(MessageRecord)
                            .where(MessageRecord.id.in_(batch))
                            .execution_options(synchronize_session=False)
                        )
                        deleted += result.rowcount
                    # all or nothing: raising here rolls every batch back
                    if deleted < len(wanted):
                        raise NotFoundError(f"{len(wanted) - deleted} of {len(wanted)} messages not found")
        except SQLAlchemyError as e:
            raise StoreError(f"delete messages: {_describe(e)}") from e

        logger.debug(f"Deleted {len(wanted)} messages")

    async def query_range(self, start_cursor: str | None = None, end_cursor: str | None = None) -> list[Message]:
        """
        List messages ordered by sent_at, optionally bounded by cursor messages.

        A cursor is a message id; its sent_at becomes an inclusive bound.
        """
        try:
            async with self._session_factory() as session:
                async with session.begin():
                    stmt = select(MessageRecord).order_by(MessageRecord.sent_at.asc())
                    if start_cursor is not None:
                        start_at = await self._sent_at(session, start_cursor, "start cursor")
                        stmt = stmt.where(MessageRecord.sent_at >= start_at)
                    if end_cursor is not None:
                        end_at = await self._sent_at(session, end_cursor, "end cursor")
                        stmt = stmt.where(MessageRecord.sent_at <= end_at)

                    result = await session.execute(stmt)
                    return [_to_message(r) for r in result.scalars().all()]
        except SQLAlchemyError as e:
            raise StoreError(f"query messages: {_describe(e)}") from e

    async def _sent_at(self, session: AsyncSession, message_id: str, label: str) -> datetime:
        sent_at = (
            await session.execute(select(MessageRecord.sent_at).where(MessageRecord.id == message_id))
        ).scalar_one_or_none()
        if sent_at is None:
            raise NotFoundError(f"{label}: message {message_id!r} not found")
        return sent_at
