# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import datetime

from pydantic import BaseModel


class AnnualAllowanceResponse(BaseModel):
    """Effective allowance for one user-year.

    ``used`` may include an admin override; ``actual_used`` is always the sum
    of accepted leave on record.
    """

    allowed: float
    used: float
    remaining: float
    actual_used: float


class AllowanceSnapshot(BaseModel):
    """Point-in-time allowance copied onto a leave's HR section."""

    allowed: float
    used: float
    remaining: float


class SetAllowancePayload(BaseModel):
    """Request body for PUT /leaves/allowance."""

    user_id: uuid.UUID
    year: int
    allowed: float
    remaining: float


class AllowanceOverrideResponse(BaseModel):
    user_id: uuid.UUID
    year: int
    allowed: float
    remaining: float
    used: float
    actual_used: float
    max_remaining: float
    updated_at: datetime
