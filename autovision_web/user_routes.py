"""
User management routes.

Prefix: /api/users (admin management, activity trail)
Prefix: /api/profile (self-service profile edit)
"""

from __future__ import annotations

from typing import Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl
from pydantic.alias_generators import to_camel

from autovision.activity import ActivityLogEntry, ActivityLogger, RequestContext
from autovision.auth.models import IdentityClaim, Role, is_admin
from autovision.auth.service import UserDirectory
from autovision.core.exceptions import Forbidden, ValidationFailed

from .auth_middleware import require_admin, require_auth
from .auth_routes import UserPublic, user_to_public
from .deps import get_audit, get_users, request_context

router = APIRouter(prefix="/api/users", tags=["users"])
profile_router = APIRouter(prefix="/api/profile", tags=["profile"])


class UserCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=6)
    role: Role = Role.COMMON
    phone: Optional[str] = Field(default=None, max_length=20)


class UserUpdate(BaseModel):
    """Admin edit; omitted or null fields stay as they are."""

    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(default=None, min_length=6)
    role: Optional[Role] = None
    phone: Optional[str] = Field(default=None, max_length=20)


class ProfileUpdate(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    phone: Optional[str] = Field(default=None, max_length=20)
    profile_image_url: Optional[HttpUrl] = None
    password: Optional[str] = Field(default=None, min_length=6)


@router.get("", response_model=List[UserPublic])
async def list_users(
    _: IdentityClaim = Depends(require_admin),
    users: UserDirectory = Depends(get_users),
) -> List[UserPublic]:
    return [user_to_public(u) for u in users.list_users()]


@router.post("", response_model=UserPublic, status_code=status.HTTP_201_CREATED)
async def create_user(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    admin: IdentityClaim = Depends(require_admin),
    users: UserDirectory = Depends(get_users),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> UserPublic:
    user = users.create_user(
        email=body.email,
        password=body.password,
        name=body.name,
        role=body.role,
        phone=body.phone,
    )
    background_tasks.add_task(
        audit.record,
        admin.id,
        "CREATE_USER",
        "user",
        user.id,
        {"email": user.email, "role": user.role.value},
        context,
    )
    return user_to_public(user)


@router.put("/{user_id}", response_model=UserPublic)
async def update_user(
    user_id: str,
    body: UserUpdate,
    background_tasks: BackgroundTasks,
    admin: IdentityClaim = Depends(require_admin),
    users: UserDirectory = Depends(get_users),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> UserPublic:
    """Admins cannot change their own role."""
    if user_id == admin.id and body.role is not None and body.role != admin.role:
        raise ValidationFailed("Cannot change your own role")
    changes = body.model_dump(exclude_none=True)
    user = users.update_user(user_id, **changes)
    background_tasks.add_task(
        audit.record,
        admin.id,
        "UPDATE_USER",
        "user",
        user_id,
        {"updatedFields": sorted(changes)},
        context,
    )
    return user_to_public(user)


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    background_tasks: BackgroundTasks,
    admin: IdentityClaim = Depends(require_admin),
    users: UserDirectory = Depends(get_users),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> Dict[str, str]:
    if user_id == admin.id:
        raise ValidationFailed("Cannot delete your own account")
    removed = users.delete_user(user_id)
    background_tasks.add_task(
        audit.record,
        admin.id,
        "DELETE_USER",
        "user",
        user_id,
        {"deletedUserName": removed.name, "deletedUserEmail": removed.email},
        context,
    )
    return {"message": "User deleted"}


@router.get("/{user_id}/activity", response_model=List[ActivityLogEntry])
async def user_activity(
    user_id: str,
    limit: int = Query(50, ge=1, le=500),
    identity: IdentityClaim = Depends(require_auth),
    audit: ActivityLogger = Depends(get_audit),
) -> List[ActivityLogEntry]:
    """Admins read anyone's trail; everyone else only their own."""
    if identity.id != user_id and not is_admin(identity.role):
        raise Forbidden("Access denied")
    return audit.list_by_user(user_id, limit)


@profile_router.put("", response_model=UserPublic)
async def update_profile(
    body: ProfileUpdate,
    background_tasks: BackgroundTasks,
    identity: IdentityClaim = Depends(require_auth),
    users: UserDirectory = Depends(get_users),
    audit: ActivityLogger = Depends(get_audit),
    context: RequestContext = Depends(request_context),
) -> UserPublic:
    """Signed-in users edit their own name, email, phone, picture and password."""
    user = users.update_user(
        identity.id,
        name=body.name,
        email=body.email,
        phone=body.phone,
        profile_image_url=str(body.profile_image_url) if body.profile_image_url else None,
        password=body.password,
    )
    updated_fields = sorted(body.model_dump(exclude_none=True, by_alias=True))
    background_tasks.add_task(
        audit.record,
        identity.id,
        "UPDATE_PROFILE",
        "user",
        identity.id,
        {"updatedFields": updated_fields},
        context,
    )
    return user_to_public(user)
