# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, status

from app.api.deps import AdminDep, AuthDep
from app.exceptions import AppError, NotFound
from app.schemas.user import UpsertUserRequest, UserListResponse
from app.services.directory import (
    InMemoryUserDirectory,
    UserDirectory,
    UserInfo,
    get_user_directory,
    list_team_leads,
)

users_router = APIRouter(prefix="/users", tags=["users"])

DirectoryDep = Annotated[UserDirectory, Depends(get_user_directory)]


@users_router.get("/team-leads", response_model=UserListResponse)
async def get_team_leads(
    auth: AuthDep,
    directory: DirectoryDep,
) -> UserListResponse:
    """Approved team leads, for the picker on the leave form."""
    leads = await list_team_leads(directory)
    return UserListResponse(items=leads, total=len(leads))


@users_router.put("/{user_id}", response_model=UserInfo)
async def upsert_user(
    user_id: uuid.UUID,
    payload: UpsertUserRequest,
    auth: AdminDep,
    directory: DirectoryDep,
) -> UserInfo:
    """Create or update a user in the stub directory (admin only)."""
    if not isinstance(directory, InMemoryUserDirectory):
        raise AppError("User directory is read-only", status_code=status.HTTP_501_NOT_IMPLEMENTED)
    user = UserInfo(id=user_id, **payload.model_dump())
    directory.seed(user)
    return user


@users_router.get("/{user_id}", response_model=UserInfo)
async def get_user(
    user_id: uuid.UUID,
    auth: AuthDep,
    directory: DirectoryDep,
) -> UserInfo:
    """Get a user from the directory."""
    user = await directory.get_user(user_id)
    if user is None:
        raise NotFound("User not found")
    return user
