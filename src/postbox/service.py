from __future__ import annotations

import uuid
from datetime import datetime
from typing import Callable, Iterable, Protocol, Sequence

from loguru import logger

from postbox.errors import InvalidInputError, MailboxError
from postbox.repository import utc_now
from postbox.schemas import Message


class Repository(Protocol):
    async def insert(self, message: Message) -> None: ...

    async def fetch_unfetched(self) -> list[Message]: ...

    async def delete_by_ids(self, ids: Iterable[str]) -> None: ...

    async def query_range(self, start_cursor: str | None = None, end_cursor: str | None = None) -> list[Message]: ...


def _new_id() -> str:
    return str(uuid.uuid4())


def _with_context(op: str, exc: MailboxError) -> MailboxError:
    # keep the error kind so callers can still tell NotFound from StoreError
    return type(exc)(f"{op}: {exc}")


class MailboxService:
    def __init__(
        self,
        repo: Repository,
        now: Callable[[], datetime] = utc_now,
        new_id: Callable[[], str] = _new_id,
    ) -> None:
        self._repo = repo
        self._now = now
        self._new_id = new_id

    async def submit(self, recipient_user_name: str, content: str) -> str:
        if not recipient_user_name:
            raise InvalidInputError("recipient_user_name is required")

        message = Message(
            id=self._new_id(),
            recipient_user_name=recipient_user_name,
            content=content,
            sent_at=self._now(),
            fetched_at=None,
        )
        try:
            await self._repo.insert(message)
        except MailboxError as e:
            raise _with_context("insert message", e) from e

        logger.info(f"Message {message.id} submitted for {recipient_user_name}")
        return message.id

    async def fetch_new(self) -> list[Message]:
        try:
            return list(await self._repo.fetch_unfetched())
        except MailboxError as e:
            raise _with_context("get new messages", e) from e

    async def delete(self, ids: Sequence[str]) -> None:
        if not ids:
            raise InvalidInputError("message_ids is required")
        try:
            await self._repo.delete_by_ids(ids)
        except MailboxError as e:
            raise _with_context("delete messages", e) from e

    async def list_range(self, start_cursor: str | None = None, end_cursor: str | None = None) -> list[Message]:
        try:
            return list(await self._repo.query_range(start_cursor, end_cursor))
        except MailboxError as e:
            raise _with_context("get all messages", e) from e
