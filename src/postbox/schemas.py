from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class Message(BaseModel):
    id: str
    recipient_user_name: str
    content: str = ""
    sent_at: datetime
    fetched_at: datetime | None = None


class MessageCreate(BaseModel):
    recipient_user_name: str = Field(..., min_length=1)
    content: str = ""


class MessageCreated(BaseModel):
    message_id: str


class MessageDelete(BaseModel):
    message_ids: list[str]
