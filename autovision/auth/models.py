"""
Auth models: roles, user records, identity claims and token pairs.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, EmailStr, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Role(str, Enum):
    """Closed set of user roles. Adding one means revisiting is_admin()."""

    ADMIN = "admin"
    COMMON = "common"


def is_admin(role: Role) -> bool:
    """Every authorization decision about elevated rights goes through here."""
    if role is Role.ADMIN:
        return True
    if role is Role.COMMON:
        return False
    raise ValueError(f"Unhandled role: {role!r}")


class User(BaseModel):
    """Stored user record."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    email: EmailStr
    password_hash: str
    role: Role = Role.COMMON
    phone: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class IdentityClaim(BaseModel):
    """Decoded token content. iat/exp are unset before issuance."""

    model_config = ConfigDict(frozen=True)

    id: str
    email: str
    role: Role
    iat: Optional[int] = None
    exp: Optional[int] = None

    @classmethod
    def for_user(cls, user: User) -> "IdentityClaim":
        return cls(id=user.id, email=user.email, role=user.role)

    @property
    def is_admin(self) -> bool:
        return is_admin(self.role)


class TokenPair(BaseModel):
    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
