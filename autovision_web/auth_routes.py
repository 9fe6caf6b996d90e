"""
FastAPI routes for authentication.

Prefix: /api/auth

Login and refresh both answer with the same shape:

    {
      "user": {"id": "...", "name": "...", "email": "...", "role": "common", ...},
      "accessToken": "<15 min JWT>",
      "refreshToken": "<7 day JWT>"
    }
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel

from autovision.activity import ActivityLogger, RequestContext
from autovision.auth.models import IdentityClaim, Role, User
from autovision.auth.service import UserDirectory
from autovision.auth.tokens import TokenService
from autovision.core.exceptions import NotFound, Unauthenticated

from .auth_middleware import require_auth
from .deps import get_audit, get_token_service, get_users, request_context

router = APIRouter(prefix="/api/auth", tags=["auth"])


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UserPublic(_CamelModel):
    id: str
    name: str
    email: EmailStr
    role: Role
    phone: Optional[str] = None
    profile_image_url: Optional[str] = None
    created_at: str


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(min_length=1)


class RefreshRequest(_CamelModel):
    refresh_token: Optional[str] = None


class AuthResponse(_CamelModel):
    user: UserPublic
    access_token: str
    refresh_token: str


def user_to_public(user: User) -> UserPublic:
    return UserPublic(
        id=user.id,
        name=user.name,
        email=user.email,
        role=user.role,
        phone=user.phone,
        profile_image_url=user.profile_image_url,
        created_at=user.created_at.isoformat(),
    )


def _auth_response(user: User, tokens: TokenService) -> AuthResponse:
    pair = tokens.issue(IdentityClaim.for_user(user))
    return AuthResponse(
        user=user_to_public(user),
        access_token=pair.access_token,
        refresh_token=pair.refresh_token,
    )


@router.post("/login", response_model=AuthResponse)
async def login(
    body: LoginRequest,
    background_tasks: BackgroundTasks,
    users: UserDirectory = Depends(get_users),
    tokens: TokenService = Depends(get_token_service),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> AuthResponse:
    """
    Sign in with email and password.

    A single message covers unknown email and wrong password so the
    endpoint does not reveal which accounts exist.
    """
    user = users.authenticate(body.email, body.password)
    if not user:
        raise Unauthenticated("Invalid email or password")
    background_tasks.add_task(
        audit.record, user.id, "LOGIN", "user", user.id, None, context
    )
    return _auth_response(user, tokens)


@router.post("/refresh", response_model=AuthResponse)
async def refresh(
    body: RefreshRequest,
    users: UserDirectory = Depends(get_users),
    tokens: TokenService = Depends(get_token_service),
) -> AuthResponse:
    """
    Exchange a refresh token for a new pair.

    The pair is issued from the current user record, so role changes take
    effect here.
    """
    if not body.refresh_token:
        raise Unauthenticated("Refresh token required")
    identity = tokens.verify(body.refresh_token)
    user = users.get_user(identity.id)
    if not user:
        raise Unauthenticated("User not found")
    return _auth_response(user, tokens)


@router.get("/me", response_model=UserPublic)
async def me(
    identity: IdentityClaim = Depends(require_auth),
    users: UserDirectory = Depends(get_users),
) -> UserPublic:
    user = users.get_user(identity.id)
    if not user:
        raise NotFound("User not found")
    return user_to_public(user)
