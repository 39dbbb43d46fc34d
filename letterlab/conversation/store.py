"""Conversation persistence scoped to one owner.

Every read and write filters on (owner, not deleted), so a row that belongs to
someone else looks exactly like a row that does not exist.
"""
import uuid
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from letterlab.conversation.models import (
    DEFAULT_TITLE,
    MAX_MESSAGES,
    ConversationUpdate,
    MessageIn,
)
from letterlab.models_db import Conversation, utcnow

LIST_LIMIT = 100


def is_valid_id(conversation_id: str) -> bool:
    try:
        uuid.UUID(conversation_id)
    except (ValueError, TypeError, AttributeError):
        return False
    return True


class ConversationStore:
    def __init__(self, db: Session, user_id: str):
        self.db = db
        self.user_id = user_id

    def _owned(self):
        return select(Conversation).where(
            Conversation.user_id == self.user_id,
            Conversation.is_deleted.is_(False),
        )

    def list_recent(self, limit: int = LIST_LIMIT) -> list[Conversation]:
        """Pinned first (most recently pinned first), then by last activity."""
        query = (
            self._owned()
            .order_by(
                Conversation.is_pinned.desc(),
                Conversation.pinned_at.desc().nulls_last(),
                Conversation.last_activity_at.desc(),
            )
            .limit(limit)
        )
        return list(self.db.scalars(query))

    def get(self, conversation_id: str) -> Optional[Conversation]:
        return self.db.scalars(self._owned().where(Conversation.id == conversation_id)).first()

    def create(self, title: str = DEFAULT_TITLE, messages: Optional[list[MessageIn]] = None) -> Conversation:
        row = Conversation(user_id=self.user_id, title=title, last_activity_at=utcnow())
        row.set_messages([m.to_storage() for m in (messages or [])][:MAX_MESSAGES])
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def update(self, conversation_id: str, changes: ConversationUpdate) -> Optional[Conversation]:
        row = self.get(conversation_id)
        if not row:
            return None
        if changes.title is not None:
            row.title = changes.title
        if changes.is_pinned is not None:
            self._set_pinned(row, changes.is_pinned)
        if changes.messages is not None:
            row.set_messages([m.to_storage() for m in changes.messages])
            row.touch_activity()
        return self._save(row)

    def append_messages(self, conversation_id: str, messages: list[MessageIn]) -> Optional[Conversation]:
        row = self.get(conversation_id)
        if not row:
            return None
        combined = row.messages + [m.to_storage() for m in messages]
        row.set_messages(combined[:MAX_MESSAGES])
        row.touch_activity()
        return self._save(row)

    def pin(self, conversation_id: str) -> Optional[Conversation]:
        return self._update_pin(conversation_id, True)

    def unpin(self, conversation_id: str) -> Optional[Conversation]:
        return self._update_pin(conversation_id, False)

    def soft_delete(self, conversation_id: str) -> Optional[Conversation]:
        row = self.get(conversation_id)
        if not row:
            return None
        row.is_deleted = True
        row.deleted_at = utcnow()
        return self._save(row)

    def _update_pin(self, conversation_id: str, pinned: bool) -> Optional[Conversation]:
        row = self.get(conversation_id)
        if not row:
            return None
        self._set_pinned(row, pinned)
        return self._save(row)

    @staticmethod
    def _set_pinned(row: Conversation, pinned: bool) -> None:
        row.is_pinned = pinned
        row.pinned_at = utcnow() if pinned else None

    def _save(self, row: Conversation) -> Conversation:
        row.updated_by = self.user_id
        self.db.commit()
        self.db.refresh(row)
        return row
