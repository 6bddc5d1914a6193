"""Annual leave allowance: ledger usage, admin overrides and their reconciliation."""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import math
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlmodel import col

from app.config import get_settings
from app.exceptions import Conflict, ValidationFailed, format_days
from app.models.allowance import LeaveAllowance
from app.models.base import now_utc
from app.models.enums import AuditAction, AuditEntityType, LeaveStatus
from app.models.leave import LeaveRequest
from app.schemas.allowance import AllowanceOverrideResponse, AnnualAllowanceResponse
from app.services.audit import model_to_audit_dict, write_audit_log
from app.services.duration import charged_days
from app.services.versioning import claim_next_version

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.allowance import SetAllowancePayload
    from app.schemas.auth import AuthContext

logger = logging.getLogger(__name__)

_USAGE_EPSILON = 0.0001

# Last year whose following Jan 1 is still a valid `date`.
MAX_SUPPORTED_YEAR = 9998


@dataclass(frozen=True)
class AnnualAllowance:
    allowed: float
    used: float
    remaining: float
    actual_used: float

    def to_response(self) -> AnnualAllowanceResponse:
        return AnnualAllowanceResponse(
            allowed=self.allowed,
            used=self.used,
            remaining=self.remaining,
            actual_used=self.actual_used,
        )


class AllowanceCache:
    """Memo of allowance lookups for a single request.

    Built by the caller and passed down explicitly so nothing leaks between
    requests.
    """

    def __init__(self) -> None:
        self._allowances: dict[tuple[uuid.UUID, int], AnnualAllowance] = {}
        self._overrides: dict[tuple[uuid.UUID, int], LeaveAllowance | None] = {}

    def get_allowance(self, user_id: uuid.UUID, year: int) -> AnnualAllowance | None:
        return self._allowances.get((user_id, year))

    def put_allowance(self, user_id: uuid.UUID, year: int, allowance: AnnualAllowance) -> None:
        self._allowances[(user_id, year)] = allowance

    def has_override(self, user_id: uuid.UUID, year: int) -> bool:
        return (user_id, year) in self._overrides

    def get_override(self, user_id: uuid.UUID, year: int) -> LeaveAllowance | None:
        return self._overrides.get((user_id, year))

    def put_override(self, user_id: uuid.UUID, year: int, override: LeaveAllowance | None) -> None:
        self._overrides[(user_id, year)] = override


def default_allowed() -> float:
    return get_settings().annual_leave_allowance


def default_allowance() -> AnnualAllowance:
    """Allowance shown when no date context is known."""
    allowed = default_allowed()
    return AnnualAllowance(allowed=allowed, used=0, remaining=allowed, actual_used=0)


def is_supported_year(year: int, minimum: int = 1) -> bool:
    return minimum <= year <= MAX_SUPPORTED_YEAR


def year_bounds(year: int) -> tuple[date, date]:
    """Half-open [Jan 1, next Jan 1) range for a calendar year."""
    return date(year, 1, 1), date(year + 1, 1, 1)


def _finite(value: float | None) -> bool:
    return value is not None and math.isfinite(value)


def reconcile_allowance(
    base_used: float,
    override: LeaveAllowance | None,
    allowed_default: float,
) -> AnnualAllowance:
    """Combine ledger usage with an admin override.

    The effective ``used`` is the largest of: ledger usage, the override's
    ``used``, and ``allowed - remaining`` from the override. An override can
    therefore raise ``used`` but never push it below accepted leave on record.
    """
    allowed = allowed_default
    candidates = [base_used]
    if override is not None:
        if _finite(override.allowed):
            allowed = max(override.allowed, 0)
        if _finite(override.used):
            candidates.append(max(override.used, 0))
        if _finite(override.remaining):
            candidates.append(max(allowed - max(override.remaining, 0), 0))
    allowed = max(allowed, 0)
    used = max(candidates)
    return AnnualAllowance(
        allowed=allowed,
        used=used,
        remaining=max(allowed - used, 0),
        actual_used=base_used,
    )


async def compute_yearly_usage(
    session: AsyncSession,
    user_id: uuid.UUID,
    year: int,
    exclude_ids: Iterable[uuid.UUID] = (),
) -> float:
    """Sum the day-equivalent of accepted leaves starting in ``year``."""
    start, end = year_bounds(year)
    query = select(col(LeaveRequest.duration_days), col(LeaveRequest.duration_hours)).where(
        col(LeaveRequest.user_id) == user_id,
        col(LeaveRequest.status) == LeaveStatus.ACCEPTED.value,
        col(LeaveRequest.from_date) >= start,
        col(LeaveRequest.from_date) < end,
    )
    excluded = list(exclude_ids)
    if excluded:
        query = query.where(col(LeaveRequest.id).not_in(excluded))

    result = await session.execute(query)
    return sum(charged_days(days, hours) for days, hours in result.all())


async def get_override(
    session: AsyncSession,
    user_id: uuid.UUID,
    year: int,
    cache: AllowanceCache | None = None,
    *,
    for_update: bool = False,
) -> LeaveAllowance | None:
    """Load the (user, year) override, consulting the per-request cache for plain reads."""
    if cache is not None and not for_update and cache.has_override(user_id, year):
        return cache.get_override(user_id, year)

    query = select(LeaveAllowance).where(
        col(LeaveAllowance.user_id) == user_id,
        col(LeaveAllowance.year) == year,
    )
    if for_update:
        query = query.with_for_update()
    result = await session.execute(query)
    override = result.scalar_one_or_none()

    if cache is not None:
        cache.put_override(user_id, year, override)
    return override


async def get_annual_allowance(
    session: AsyncSession,
    user_id: uuid.UUID,
    reference_date: date | None,
    cache: AllowanceCache | None = None,
) -> AnnualAllowance:
    """Effective allowance for the calendar year containing ``reference_date``."""
    if reference_date is None:
        return default_allowance()

    year = reference_date.year
    if cache is not None:
        cached = cache.get_allowance(user_id, year)
        if cached is not None:
            return cached

    override = await get_override(session, user_id, year, cache)
    base_used = await compute_yearly_usage(session, user_id, year)
    allowance = reconcile_allowance(base_used, override, default_allowed())

    if cache is not None:
        cache.put_allowance(user_id, year, allowance)
    return allowance


async def save_override(
    session: AsyncSession,
    existing: LeaveAllowance | None,
    *,
    user_id: uuid.UUID,
    year: int,
    allowed: float,
    used: float,
    remaining: float,
    actor_id: uuid.UUID,
) -> LeaveAllowance:
    """Insert or update the (user, year) override inside the caller's transaction."""
    before = model_to_audit_dict(existing) if existing is not None else None

    if existing is None:
        override = LeaveAllowance(
            user_id=user_id,
            year=year,
            allowed=allowed,
            used=used,
            remaining=remaining,
            updated_by=actor_id,
        )
        session.add(override)
        try:
            await session.flush()
        except IntegrityError:
            raise Conflict("Allowance for this user and year was created concurrently; retry") from None
    else:
        override = existing
        await claim_next_version(session, override)
        override.allowed = allowed
        override.used = used
        override.remaining = remaining
        override.updated_by = actor_id
        override.updated_at = now_utc()
        await session.flush()

    await write_audit_log(
        session,
        actor_id=actor_id,
        entity_type=AuditEntityType.ALLOWANCE,
        entity_id=override.id,
        action=AuditAction.OVERRIDE,
        before_json=before,
        after_json=model_to_audit_dict(override),
    )
    return override


def _approved_phrase(actual_used: float) -> str:
    if actual_used == 1:
        return "1 day has already been approved this year"
    return f"{format_days(actual_used)} days have already been approved this year"


async def set_allowance_override(
    session: AsyncSession,
    auth: AuthContext,
    payload: SetAllowancePayload,
) -> AllowanceOverrideResponse:
    """Write an admin allowance override for one user-year.

    Rejects a ``remaining`` that would imply fewer used days than the
    accepted leave already on record for that year.
    """
    if not is_supported_year(payload.year, minimum=1970):
        raise ValidationFailed("Invalid year value")
    if not math.isfinite(payload.allowed) or payload.allowed < 0:
        raise ValidationFailed("Allowed leaves must be a non-negative number")
    if not math.isfinite(payload.remaining) or payload.remaining < 0:
        raise ValidationFailed("Remaining balance must be a non-negative number")
    if payload.remaining > payload.allowed:
        raise ValidationFailed("Remaining balance cannot exceed total allowance")

    used = max(payload.allowed - payload.remaining, 0)
    actual_used = await compute_yearly_usage(session, payload.user_id, payload.year)
    if used + _USAGE_EPSILON < actual_used:
        max_remaining = max(payload.allowed - actual_used, 0)
        raise ValidationFailed(
            f"Remaining balance cannot exceed {format_days(max_remaining)} day(s) "
            f"because {_approved_phrase(actual_used)}.",
            details={"actual_used": actual_used, "max_remaining": max_remaining},
        )

    existing = await get_override(session, payload.user_id, payload.year, for_update=True)
    override = await save_override(
        session,
        existing,
        user_id=payload.user_id,
        year=payload.year,
        allowed=payload.allowed,
        used=used,
        remaining=payload.remaining,
        actor_id=auth.user_id,
    )

    await session.commit()
    await session.refresh(override)
    logger.info("Allowance override set user=%s year=%d by=%s", payload.user_id, payload.year, auth.user_id)

    return AllowanceOverrideResponse(
        user_id=override.user_id,
        year=override.year,
        allowed=override.allowed,
        remaining=override.remaining,
        used=override.used,
        actual_used=actual_used,
        max_remaining=max(override.allowed - actual_used, 0),
        updated_at=override.updated_at,
    )
