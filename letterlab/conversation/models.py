"""Conversation request/response models.

Request models are the validation boundary: everything that reaches the
store has already been clamped to the storage limits below.
"""
from __future__ import annotations

import math
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

MAX_MESSAGES = 200
MAX_CONTENT_CHARS = 20000
MAX_TITLE_CHARS = 160
DEFAULT_TITLE = "New Conversation"

# Older clients send {sender: "user" | "ai", text}
LEGACY_SENDERS = {"user": "user", "ai": "assistant"}


class MessageRole(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


def clamp_tokens(value: Any) -> int:
    """Non-negative integer token count; anything unusable counts as 0."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    if not math.isfinite(value):
        return 0
    return max(0, math.floor(value))


def clamp_title(value: Any) -> str:
    title = str(value).strip()[:MAX_TITLE_CHARS] if value is not None else ""
    return title or DEFAULT_TITLE


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


class MessageIn(BaseModel):
    role: MessageRole
    content: str = Field(..., min_length=1, max_length=MAX_CONTENT_CHARS)
    tokens: int = Field(0, ge=0)

    @model_validator(mode="before")
    @classmethod
    def _normalize_legacy_shape(cls, data: Any) -> Any:
        if isinstance(data, dict) and "role" not in data and "sender" in data:
            data = dict(data)
            sender = data.pop("sender")
            data["role"] = LEGACY_SENDERS.get(sender, sender)
            if "content" not in data:
                data["content"] = data.pop("text", "")
        return data

    @field_validator("content", mode="before")
    @classmethod
    def _clamp_content(cls, v: Any) -> str:
        if v is None:
            return ""
        return str(v).strip()[:MAX_CONTENT_CHARS]

    @field_validator("tokens", mode="before")
    @classmethod
    def _clamp_tokens(cls, v: Any) -> int:
        return clamp_tokens(v)

    def to_storage(self) -> dict:
        return {"role": self.role.value, "content": self.content, "tokens": self.tokens}


def _clamp_message_list(v: Any) -> Any:
    if v is None or not isinstance(v, list):
        return []
    return v[:MAX_MESSAGES]


class ConversationCreate(BaseModel):
    title: str = DEFAULT_TITLE
    messages: list[MessageIn] = Field(default_factory=list)

    @field_validator("title", mode="before")
    @classmethod
    def _clamp_title(cls, v: Any) -> str:
        return clamp_title(v)

    @field_validator("messages", mode="before")
    @classmethod
    def _clamp_messages(cls, v: Any) -> Any:
        return _clamp_message_list(v)


class ConversationUpdate(BaseModel):
    """Partial update; a field left out is left untouched.

    An explicit null clears: `isPinned: null` unpins and `messages: null`
    empties the history. A null title keeps the current one.
    """
    model_config = ConfigDict(populate_by_name=True)

    title: Optional[str] = None
    is_pinned: Optional[bool] = Field(None, alias="isPinned")
    messages: Optional[list[MessageIn]] = None

    @field_validator("title", mode="before")
    @classmethod
    def _clamp_title(cls, v: Any) -> Optional[str]:
        return None if v is None else clamp_title(v)

    @field_validator("is_pinned", mode="before")
    @classmethod
    def _null_unpins(cls, v: Any) -> Any:
        return False if v is None else v

    @field_validator("messages", mode="before")
    @classmethod
    def _clamp_messages(cls, v: Any) -> Any:
        return [] if v is None else _clamp_message_list(v)


class AppendMessagesRequest(BaseModel):
    messages: list[MessageIn] = Field(..., min_length=1)

    @field_validator("messages", mode="before")
    @classmethod
    def _clamp_messages(cls, v: Any) -> Any:
        return _clamp_message_list(v)


# --- Responses ---

class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class MessageOut(BaseModel):
    role: MessageRole
    content: str
    tokens: int = 0


class ConversationSummary(_CamelModel):
    id: str = Field(..., alias="_id")
    title: str
    is_pinned: bool
    pinned_at: Optional[datetime] = None
    last_activity_at: datetime
    total_tokens: int
    created_at: datetime
    updated_at: datetime


class ConversationOut(ConversationSummary):
    user_id: str
    messages: list[MessageOut]
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None


class DeleteConversationResponse(BaseModel):
    message: str = "Conversation deleted (soft)"
    id: str


def to_summary(row) -> ConversationSummary:
    return ConversationSummary(
        id=row.id,
        title=row.title,
        is_pinned=row.is_pinned,
        pinned_at=as_utc(row.pinned_at),
        last_activity_at=as_utc(row.last_activity_at),
        total_tokens=row.total_tokens,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


def to_conversation(row) -> ConversationOut:
    return ConversationOut(
        id=row.id,
        user_id=row.user_id,
        title=row.title,
        messages=[MessageOut(**m) for m in row.messages],
        is_pinned=row.is_pinned,
        pinned_at=as_utc(row.pinned_at),
        last_activity_at=as_utc(row.last_activity_at),
        total_tokens=row.total_tokens,
        is_deleted=row.is_deleted,
        deleted_at=as_utc(row.deleted_at),
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )
