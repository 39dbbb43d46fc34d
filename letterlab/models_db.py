"""SQLAlchemy ORM models."""
import json
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from letterlab.database import Base


def utcnow() -> datetime:
    """Naive UTC timestamp; SQLite drops tzinfo so everything is stored naive."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_id() -> str:
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(String, primary_key=True, default=new_id)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, nullable=False, index=True)
    password_hash = Column(String, nullable=False)
    plan = Column(String, nullable=False, default="free")
    tokens_remaining = Column(Integer, nullable=False, default=1000)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("plan IN ('free', 'premium')", name="ck_users_plan"),
    )


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    title = Column(String(160), nullable=False, default="New Conversation")
    messages_json = Column(Text, nullable=False, default="[]")
    total_tokens = Column(Integer, nullable=False, default=0)

    is_pinned = Column(Boolean, nullable=False, default=False)
    pinned_at = Column(DateTime, nullable=True)
    last_activity_at = Column(DateTime, nullable=False, default=utcnow)

    is_deleted = Column(Boolean, nullable=False, default=False)
    deleted_at = Column(DateTime, nullable=True)
    updated_by = Column(String, ForeignKey("users.id"), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("total_tokens >= 0", name="ck_conversations_total_tokens"),
        Index("ix_conversations_user_created", "user_id", "created_at"),
        Index(
            "ix_conversations_user_order",
            "user_id", "is_deleted", "is_pinned", "pinned_at", "last_activity_at",
        ),
    )

    @property
    def messages(self) -> list[dict]:
        return json.loads(self.messages_json) if self.messages_json else []

    def set_messages(self, messages: list[dict]) -> None:
        """Replace messages and keep total_tokens equal to their sum."""
        self.messages_json = json.dumps(messages)
        self.total_tokens = sum(m.get("tokens", 0) for m in messages)

    def touch_activity(self) -> None:
        self.last_activity_at = utcnow()


class Usage(Base):
    __tablename__ = "usage"

    id = Column(String, primary_key=True, default=new_id)
    user_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)
    daily_tokens = Column(Integer, nullable=False, default=0)
    emails_drafted = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        UniqueConstraint("user_id", "date", name="uq_usage_user_date"),
        CheckConstraint("daily_tokens >= 0", name="ck_usage_daily_tokens"),
        CheckConstraint("emails_drafted >= 0", name="ck_usage_emails_drafted"),
    )
