"""User routes — registration, login and profile."""

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from letterlab.auth import (
    MAX_PASSWORD_BYTES,
    create_access_token,
    get_current_user,
    hash_password,
    password_too_long,
    verify_password,
)
from letterlab.conversation.models import as_utc
from letterlab.database import get_db
from letterlab.models import (
    MIN_PASSWORD_LENGTH,
    AuthResponse,
    LoginRequest,
    RegisterRequest,
    UserResponse,
)
from letterlab.models_db import User

logger = logging.getLogger(__name__)

router = APIRouter()


def _auth_response(user: User) -> AuthResponse:
    return AuthResponse(
        id=user.id,
        name=user.name,
        email=user.email,
        token=create_access_token(user.id),
    )


@router.get("/users/ping")
async def ping():
    return {"ok": True, "where": "users router"}


@router.post("/users/register", response_model=AuthResponse, status_code=201)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    """Create a new user account."""
    if not body.name or not body.email or not body.password:
        raise HTTPException(status_code=400, detail="All fields are required.")
    if len(body.password) < MIN_PASSWORD_LENGTH:
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at least {MIN_PASSWORD_LENGTH} characters.",
        )
    if password_too_long(body.password):
        raise HTTPException(
            status_code=400,
            detail=f"Password must be at most {MAX_PASSWORD_BYTES} bytes.",
        )

    existing = db.query(User).filter(User.email == body.email).first()
    if existing:
        raise HTTPException(status_code=400, detail="Email already in use.")

    user = User(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration for the same email
        db.rollback()
        raise HTTPException(status_code=400, detail="Email already in use.")
    db.refresh(user)

    logger.info("Registered user %s", user.id)
    return _auth_response(user)


@router.post("/users/login", response_model=AuthResponse)
def login(body: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password."""
    user = db.query(User).filter(User.email == body.email).first()
    if not user or not verify_password(body.password, user.password_hash):
        raise HTTPException(status_code=400, detail="Invalid credentials.")

    return _auth_response(user)


@router.get("/users/me", response_model=UserResponse)
def get_me(current_user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return UserResponse(
        id=current_user.id,
        name=current_user.name,
        email=current_user.email,
        plan=current_user.plan,
        tokens_remaining=current_user.tokens_remaining,
        created_at=as_utc(current_user.created_at),
        updated_at=as_utc(current_user.updated_at),
    )
