"""
Pytest configuration and shared fixtures.

Store tests run against a throwaway SQLite file per test.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import insert

from postbox.db.base import Base
from postbox.db.session import create_engine, create_session_factory
from postbox.models.message import MessageRecord
from postbox.repository import MessageRepository
from postbox.schemas import Message

NOW = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'postbox.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def repo(session_factory):
    return MessageRepository(session_factory, now=lambda: NOW)


@pytest.fixture
def insert_message(session_factory):
    """Insert a message row directly, including fetched_at."""

    async def _insert(message: Message) -> None:
        async with session_factory() as session:
            async with session.begin():
                session.add(
                    MessageRecord(
                        id=message.id,
                        user_name=message.recipient_user_name,
                        content=message.content,
                        sent_at=message.sent_at,
                        fetched_at=message.fetched_at,
                    )
                )

    return _insert


@pytest.fixture
def bulk_insert(session_factory):
    """Insert `count` unfetched messages id0..idN, one microsecond apart."""

    async def _bulk(count: int) -> None:
        rows = [
            {"id": f"id{i}", "user_name": "recipient", "content": "", "sent_at": NOW + timedelta(microseconds=i)}
            for i in range(count)
        ]
        async with session_factory() as session:
            async with session.begin():
                await session.execute(insert(MessageRecord.__table__), rows)

    return _bulk


def make_message(message_id: str, sent_at: datetime = NOW, fetched_at: datetime | None = None) -> Message:
    return Message(
        id=message_id,
        recipient_user_name=f"recipient-{message_id}",
        content=f"content-{message_id}",
        sent_at=sent_at,
        fetched_at=fetched_at,
    )
