from typing import Optional

from pydantic import EmailStr, Field

from saysense.models.enums import UserRole
from saysense.schemas.common import CamelModel


class RegisterRequest(CamelModel):
    email: EmailStr
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=1, max_length=255)
    preferred_lang: Optional[str] = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class RefreshRequest(CamelModel):
    refresh_token: str


class UserRead(CamelModel):
    id: str
    email: str
    name: str
    role: UserRole
    is_guest: bool
    preferred_lang: str
    avatar_url: Optional[str] = None


class AuthResponse(CamelModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    user: UserRead
