"""Pydantic schemas for users and auth requests."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import Field

from chathub.db.models import User
from chathub.schemas.base import CamelModel


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=6, max_length=128)
    profile_picture: str = Field(default="", max_length=500)


class LoginRequest(CamelModel):
    username: str
    password: str


class TokenResponse(CamelModel):
    token: str
    token_type: str = "bearer"
    expires_in: int


class UserRead(CamelModel):
    """Public view of a user — never includes the password hash."""

    id: uuid.UUID
    username: str
    profile_picture: str
    create_at: datetime
    update_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user: User) -> "UserRead":
        return cls(
            id=user.id,
            username=user.username,
            profile_picture=user.profile_picture,
            create_at=user.created_at,
            update_at=user.updated_at,
        )
