"""Pydantic models for LetterLab API requests and responses."""

from __future__ import annotations

from datetime import datetime, time, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from letterlab.ai.prompts import (
    DEFAULT_TONE,
    MAX_CHAT_CHARS,
    MAX_NOTES_CHARS,
    MAX_TONE_CHARS,
    sanitize_text,
)
from letterlab.conversation.models import as_utc

MIN_PASSWORD_LENGTH = 6


class Plan(str, Enum):
    FREE = "free"
    PREMIUM = "premium"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Users ---

class RegisterRequest(BaseModel):
    name: str = Field(default="", max_length=255)
    email: str = Field(default="", max_length=255)
    password: str = Field(default="", max_length=128)

    @field_validator("name", "email", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> Any:
        if v is None:
            return ""
        return v.strip() if isinstance(v, str) else v

    @field_validator("email")
    @classmethod
    def _lowercase(cls, v: str) -> str:
        return v.lower()


class LoginRequest(BaseModel):
    email: str = ""
    password: str = ""

    @field_validator("email")
    @classmethod
    def _normalize(cls, v: str) -> str:
        return v.strip().lower()


class AuthResponse(BaseModel):
    id: str = Field(..., serialization_alias="_id")
    name: str
    email: str
    token: str


class UserResponse(_CamelModel):
    id: str = Field(..., alias="_id")
    name: str
    email: str
    plan: Plan
    tokens_remaining: int
    created_at: datetime
    updated_at: datetime


# --- Usage ---

class UsageRow(_CamelModel):
    id: str = Field(..., alias="_id")
    user_id: str
    date: datetime
    daily_tokens: int
    emails_drafted: int
    created_at: datetime
    updated_at: datetime


def to_usage_row(row) -> UsageRow:
    return UsageRow(
        id=row.id,
        user_id=row.user_id,
        date=datetime.combine(row.date, time.min, tzinfo=timezone.utc),
        daily_tokens=row.daily_tokens,
        emails_drafted=row.emails_drafted,
        created_at=as_utc(row.created_at),
        updated_at=as_utc(row.updated_at),
    )


# --- Generation ---

class GenerateEmailRequest(BaseModel):
    notes: str = ""
    tone: str = DEFAULT_TONE

    @field_validator("notes", mode="before")
    @classmethod
    def _clean_notes(cls, v: Any) -> str:
        return sanitize_text(v, MAX_NOTES_CHARS)

    @field_validator("tone", mode="before")
    @classmethod
    def _clean_tone(cls, v: Any) -> str:
        return sanitize_text(v, MAX_TONE_CHARS) or DEFAULT_TONE


class ChatRequest(BaseModel):
    message: str = ""

    @field_validator("message", mode="before")
    @classmethod
    def _clean_message(cls, v: Any) -> str:
        return sanitize_text(v, MAX_CHAT_CHARS)


class GenerateResponse(BaseModel):
    text: str
