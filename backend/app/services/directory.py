# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date
from typing import Protocol, runtime_checkable

from pydantic import BaseModel

from app.models.enums import Role


class UserInfo(BaseModel):
    """User profile as exposed by the user directory."""

    id: uuid.UUID
    full_name: str
    employee_id: int
    email: str
    department: str = ""
    branch: str = ""
    city: str = ""
    designation: str = ""
    joining_date: date | None = None
    role: Role = Role.EMPLOYEE
    is_team_lead: bool = False
    is_approved: bool = False


@runtime_checkable
class UserDirectory(Protocol):
    """Read-only view of the user records owned by the accounts service."""

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        """Fetch a user profile. Returns None if not found."""
        ...

    async def list_users(self) -> list[UserInfo]:
        """List all users."""
        ...


class InMemoryUserDirectory:
    """In-memory stub implementation for development."""

    def __init__(self) -> None:
        self._users: dict[uuid.UUID, UserInfo] = {}

    def seed(self, user: UserInfo) -> None:
        """Insert or replace a user."""
        self._users[user.id] = user

    async def get_user(self, user_id: uuid.UUID) -> UserInfo | None:
        return self._users.get(user_id)

    async def list_users(self) -> list[UserInfo]:
        return list(self._users.values())


async def find_available_team_lead(directory: UserDirectory, user_id: uuid.UUID) -> UserInfo | None:
    """Return the user if they are an approved team lead, else None."""
    user = await directory.get_user(user_id)
    if user is None or not user.is_team_lead or not user.is_approved:
        return None
    return user


async def list_team_leads(directory: UserDirectory) -> list[UserInfo]:
    """Approved team leads ordered by name."""
    users = await directory.list_users()
    return sorted((u for u in users if u.is_team_lead and u.is_approved), key=lambda u: u.full_name.lower())


_user_directory: UserDirectory = InMemoryUserDirectory()


def get_user_directory() -> UserDirectory:
    """FastAPI dependency for the user directory."""
    return _user_directory


def set_user_directory(directory: UserDirectory) -> None:
    """Override the directory (for testing or production wiring)."""
    global _user_directory
    _user_directory = directory
