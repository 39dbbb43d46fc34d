"""Drafting routes — email generation and casual chat proxied to the model."""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from letterlab.ai import client as ai
from letterlab.ai.prompts import (
    CHAT_GREETING_REPLY,
    GREETING_GUIDANCE,
    build_chat_messages,
    build_email_messages,
    looks_like_chat_greeting,
    looks_like_email_greeting,
)
from letterlab.auth import optional_user_id
from letterlab.database import get_db
from letterlab.middleware.feature_flags import require_feature
from letterlab.models import ChatRequest, GenerateEmailRequest, GenerateResponse
from letterlab.services.usage import upsert_usage

logger = logging.getLogger(__name__)

router = APIRouter()


def _record_draft(db: Session, user_id: str, tokens: int) -> None:
    """Count a finished draft against the caller's day; a database error is logged, not raised."""
    try:
        upsert_usage(db, user_id, datetime.now(timezone.utc), daily_tokens=tokens, emails_drafted=1)
    except SQLAlchemyError:
        db.rollback()
        logger.error("Failed to record usage for user %s", user_id, exc_info=True)


@router.post(
    "/generate-email",
    response_model=GenerateResponse,
    dependencies=[Depends(require_feature("email"))],
)
def generate_email(
    body: GenerateEmailRequest,
    user_id: Optional[str] = Depends(optional_user_id),
    db: Session = Depends(get_db),
):
    """Turn free-form notes into a drafted email."""
    if looks_like_email_greeting(body.notes):
        raise HTTPException(status_code=400, detail=GREETING_GUIDANCE)
    if not body.notes:
        raise HTTPException(status_code=400, detail='Missing "notes"')

    system, messages = build_email_messages(body.notes, body.tone)
    try:
        result = ai.generate(system, messages)
    except ai.ModelError:
        logger.error("Email generation failed", exc_info=True)
        raise HTTPException(status_code=502, detail="Generation failed. Please try again.")

    if not result.text.strip():
        raise HTTPException(status_code=502, detail="Empty response")

    if user_id:
        _record_draft(db, user_id, result.total_tokens)

    return GenerateResponse(text=result.text)


@router.post(
    "/chat",
    response_model=GenerateResponse,
    dependencies=[Depends(require_feature("chat"))],
)
def chat(body: ChatRequest):
    """Casual conversation; greetings are answered without a model call."""
    if not body.message:
        raise HTTPException(status_code=400, detail="Missing 'message'")

    if looks_like_chat_greeting(body.message):
        return GenerateResponse(text=CHAT_GREETING_REPLY)

    system, messages = build_chat_messages(body.message)
    try:
        result = ai.generate(system, messages)
    except ai.ModelError:
        logger.error("Chat generation failed", exc_info=True)
        raise HTTPException(status_code=502, detail="Chat failed. Please try again.")

    return GenerateResponse(text=result.text.strip() or "(no reply)")
