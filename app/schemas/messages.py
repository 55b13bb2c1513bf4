"""Pydantic schemas for channel messages."""

from datetime import datetime

from pydantic import BaseModel, Field

from app.schemas.auth import UserPublic

CHANNEL_PATTERN = r"^[A-Za-z0-9_\-]{1,64}$"


class MessageCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=10_000)
    channel: str = Field(default="general", pattern=CHANNEL_PATTERN)
    reply_to: int | None = None


class MessageEdit(BaseModel):
    content: str = Field(..., min_length=1, max_length=10_000)


class MessageOut(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    content: str
    user_id: str
    user: UserPublic | None = None
    channel: str
    reply_to: int | None = None
    edited: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None
