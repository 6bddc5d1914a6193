# ruff: noqa: TC001, TC003
from __future__ import annotations

from datetime import date

from pydantic import BaseModel, Field

from app.models.enums import Role
from app.services.directory import UserInfo


class UpsertUserRequest(BaseModel):
    """Request body for upserting a user in the stub directory."""

    full_name: str = Field(min_length=1, max_length=200)
    employee_id: int = Field(ge=0)
    email: str = Field(min_length=1, max_length=255)
    department: str = ""
    branch: str = ""
    city: str = ""
    designation: str = ""
    joining_date: date | None = None
    role: Role = Role.EMPLOYEE
    is_team_lead: bool = False
    is_approved: bool = True


class UserListResponse(BaseModel):
    """List of directory users."""

    items: list[UserInfo]
    total: int
