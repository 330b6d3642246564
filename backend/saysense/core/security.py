from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

import bcrypt
import jwt

from saysense.core.config import get_settings
from saysense.core.errors import UnauthorizedError


@dataclass(frozen=True)
class TokenClaims:
    sub: str
    email: str
    role: str
    is_guest: bool


def hash_password(password: str) -> str:
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: Optional[str]) -> bool:
    if not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False


def _encode(claims: TokenClaims, secret: str, ttl_seconds: int) -> str:
    settings = get_settings()
    now = int(time.time())
    payload: Dict[str, Any] = {
        "sub": claims.sub,
        "email": claims.email,
        "role": claims.role,
        "isGuest": claims.is_guest,
        "iat": now,
        "exp": now + ttl_seconds,
    }
    return jwt.encode(payload, secret, algorithm=settings.jwt_algorithm)


def _decode(token: str, secret: str) -> TokenClaims:
    settings = get_settings()
    try:
        payload = jwt.decode(token, secret, algorithms=[settings.jwt_algorithm])
    except jwt.ExpiredSignatureError as exc:
        raise UnauthorizedError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        raise UnauthorizedError("Invalid token") from exc
    sub = payload.get("sub")
    if not sub:
        raise UnauthorizedError("Invalid token")
    return TokenClaims(
        sub=str(sub),
        email=str(payload.get("email") or ""),
        role=str(payload.get("role") or "user"),
        is_guest=bool(payload.get("isGuest")),
    )


def create_access_token(claims: TokenClaims) -> str:
    settings = get_settings()
    return _encode(claims, settings.jwt_secret, settings.access_token_expire_seconds)


def create_refresh_token(claims: TokenClaims) -> str:
    settings = get_settings()
    return _encode(claims, settings.jwt_refresh_secret, settings.refresh_token_expire_seconds)


def decode_access_token(token: str) -> TokenClaims:
    return _decode(token, get_settings().jwt_secret)


def decode_refresh_token(token: str) -> TokenClaims:
    return _decode(token, get_settings().jwt_refresh_secret)
