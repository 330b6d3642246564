"""
Auth Service

Email/password accounts plus throwaway guest accounts. Every successful call
returns a fresh access/refresh token pair and the public user view.
"""
from __future__ import annotations

import logging
import uuid

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from saysense.core.config import get_settings
from saysense.core.errors import ConflictError, UnauthorizedError
from saysense.core.security import (
    TokenClaims,
    create_access_token,
    create_refresh_token,
    decode_access_token,
    decode_refresh_token,
    hash_password,
    verify_password,
)
from saysense.models import User, UserRole
from saysense.schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserRead

logger = logging.getLogger(__name__)

GUEST_NAME = "Guest User"


def _normalize_email(email: str) -> str:
    return email.strip().lower()


def _active_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == _normalize_email(email), User.deleted_at.is_(None)).first()


def _issue_tokens(user: User) -> AuthResponse:
    claims = TokenClaims(sub=user.id, email=user.email, role=user.role.value, is_guest=user.is_guest)
    return AuthResponse(
        access_token=create_access_token(claims),
        refresh_token=create_refresh_token(claims),
        user=UserRead.model_validate(user),
    )


def register(db: Session, payload: RegisterRequest) -> AuthResponse:
    if _active_user_by_email(db, payload.email) is not None:
        raise ConflictError("Email already registered")

    user = User(
        email=_normalize_email(payload.email),
        password_hash=hash_password(payload.password),
        name=payload.name.strip(),
        role=UserRole.USER,
        is_guest=False,
        preferred_lang=payload.preferred_lang or "en",
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # lost a race with a concurrent registration for the same email
        db.rollback()
        logger.info("register_conflict email=%s", user.email)
        raise ConflictError("Email already registered")
    db.refresh(user)
    logger.info("user_registered user_id=%s", user.id)
    return _issue_tokens(user)


def login(db: Session, payload: LoginRequest) -> AuthResponse:
    user = _active_user_by_email(db, payload.email)
    if user is None or user.is_guest or not verify_password(payload.password, user.password_hash):
        logger.info("login_rejected email=%s", _normalize_email(payload.email))
        raise UnauthorizedError("Invalid credentials")
    logger.info("user_logged_in user_id=%s", user.id)
    return _issue_tokens(user)


def create_guest(db: Session) -> AuthResponse:
    domain = get_settings().guest_email_domain
    user = User(
        email=f"guest-{uuid.uuid4()}@{domain}",
        name=GUEST_NAME,
        role=UserRole.USER,
        is_guest=True,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info("guest_created user_id=%s", user.id)
    return _issue_tokens(user)


def refresh(db: Session, refresh_token: str) -> AuthResponse:
    claims = decode_refresh_token(refresh_token)
    user = db.get(User, claims.sub)
    if user is None or user.deleted_at is not None:
        raise UnauthorizedError("User no longer exists")
    return _issue_tokens(user)


def get_user_from_access_token(db: Session, token: str) -> User:
    claims = decode_access_token(token)
    user = db.get(User, claims.sub)
    if user is None or user.deleted_at is not None:
        raise UnauthorizedError("User no longer exists")
    return user
