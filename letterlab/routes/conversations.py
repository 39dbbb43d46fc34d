"""Conversation routes — saved history, scoped to the authenticated user."""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from letterlab.auth import get_current_user_id
from letterlab.conversation.models import (
    AppendMessagesRequest,
    ConversationCreate,
    ConversationOut,
    ConversationSummary,
    ConversationUpdate,
    DeleteConversationResponse,
    to_conversation,
    to_summary,
)
from letterlab.conversation.store import ConversationStore, is_valid_id
from letterlab.database import get_db
from letterlab.models_db import Conversation

router = APIRouter()


def _get_store(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> ConversationStore:
    return ConversationStore(db, user_id)


def _check_id(conversation_id: str) -> None:
    if not is_valid_id(conversation_id):
        raise HTTPException(status_code=400, detail="invalid id")


def _found(row: Optional[Conversation]) -> Conversation:
    # Someone else's conversation is reported exactly like a missing one
    if row is None:
        raise HTTPException(status_code=404, detail="not found")
    return row


@router.get("/conversations", response_model=list[ConversationSummary])
def list_conversations(store: ConversationStore = Depends(_get_store)):
    """List the caller's conversations, pinned first, then most recent."""
    return [to_summary(row) for row in store.list_recent()]


@router.post("/conversations", response_model=ConversationOut, status_code=201)
def create_conversation(
    body: Optional[ConversationCreate] = None,
    store: ConversationStore = Depends(_get_store),
):
    body = body or ConversationCreate()
    row = store.create(title=body.title, messages=body.messages)
    return to_conversation(row)


@router.get("/conversations/{conversation_id}", response_model=ConversationOut)
def get_conversation(conversation_id: str, store: ConversationStore = Depends(_get_store)):
    _check_id(conversation_id)
    return to_conversation(_found(store.get(conversation_id)))


@router.patch("/conversations/{conversation_id}", response_model=ConversationOut)
def update_conversation(
    conversation_id: str,
    body: ConversationUpdate,
    store: ConversationStore = Depends(_get_store),
):
    """Rename, pin/unpin or replace messages."""
    _check_id(conversation_id)
    return to_conversation(_found(store.update(conversation_id, body)))


@router.post("/conversations/{conversation_id}/messages", response_model=ConversationOut)
def append_messages(
    conversation_id: str,
    body: AppendMessagesRequest,
    store: ConversationStore = Depends(_get_store),
):
    _check_id(conversation_id)
    return to_conversation(_found(store.append_messages(conversation_id, body.messages)))


@router.post("/conversations/{conversation_id}/pin", response_model=ConversationOut)
def pin_conversation(conversation_id: str, store: ConversationStore = Depends(_get_store)):
    _check_id(conversation_id)
    return to_conversation(_found(store.pin(conversation_id)))


@router.post("/conversations/{conversation_id}/unpin", response_model=ConversationOut)
def unpin_conversation(conversation_id: str, store: ConversationStore = Depends(_get_store)):
    _check_id(conversation_id)
    return to_conversation(_found(store.unpin(conversation_id)))


@router.delete("/conversations/{conversation_id}", response_model=DeleteConversationResponse)
def delete_conversation(conversation_id: str, store: ConversationStore = Depends(_get_store)):
    """Soft delete: the row and its messages stay, but disappear from every read."""
    _check_id(conversation_id)
    row = _found(store.soft_delete(conversation_id))
    return DeleteConversationResponse(id=row.id)
