from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import update
from sqlmodel import col

from app.exceptions import Conflict

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.models.allowance import LeaveAllowance
    from app.models.leave import LeaveRequest


def check_expected_version(row: LeaveRequest | LeaveAllowance, expected_version: int | None) -> None:
    """Fail fast when the caller edited a stale copy of the row."""
    if expected_version is not None and expected_version != row.version:
        raise Conflict(f"{type(row).__name__} was modified concurrently; reload and retry")


async def claim_next_version(session: AsyncSession, row: LeaveRequest | LeaveAllowance) -> None:
    """Bump ``row.version`` only if nobody else has written it since it was loaded.

    Issues ``UPDATE ... SET version = v + 1 WHERE id = :id AND version = v`` and
    raises 409 when no row matched.
    """
    model = type(row)
    loaded_version = row.version
    result = await session.execute(
        update(model)
        .where(col(model.id) == row.id, col(model.version) == loaded_version)
        .values(version=loaded_version + 1)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        raise Conflict(f"{model.__name__} was modified concurrently; reload and retry")
    row.version = loaded_version + 1
