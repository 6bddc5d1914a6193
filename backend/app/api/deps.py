# ruff: noqa: B008
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import Depends, Header

from app.exceptions import Forbidden, Unauthorized
from app.models.enums import Role
from app.schemas.auth import AuthContext


async def get_auth_context(
    x_user_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
) -> AuthContext:
    """Extract dev auth context from request headers."""
    if not x_user_id:
        raise Unauthorized()
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise Unauthorized("Invalid token") from None
    try:
        role = Role(x_role or Role.EMPLOYEE)
    except ValueError:
        raise Unauthorized("Invalid token") from None
    return AuthContext(user_id=user_id, role=role)


AuthDep = Annotated[AuthContext, Depends(get_auth_context)]


async def require_admin(
    auth: AuthDep,
) -> AuthContext:
    """Require an admin-class role (superadmin, admin, hr)."""
    if not auth.is_admin:
        raise Forbidden("Admin access required")
    return auth


AdminDep = Annotated[AuthContext, Depends(require_admin)]
