# ruff: noqa: TC003
from __future__ import annotations

import uuid

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import TimestampMixin, UUIDBase, VersionedMixin


class LeaveAllowance(UUIDBase, TimestampMixin, VersionedMixin, table=True):
    """Admin correction of one user's annual leave budget for one calendar year.

    ``used`` and ``remaining`` may be written independently; readers reconcile
    them against the accepted leaves on record.
    """

    __tablename__ = "leave_allowance"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "year", name="uq_allowance_user_year"),
        sa.CheckConstraint("year >= 1970", name="ck_allowance_year"),
        sa.CheckConstraint("allowed >= 0", name="ck_allowance_allowed"),
        sa.CheckConstraint("used >= 0", name="ck_allowance_used"),
        sa.CheckConstraint("remaining >= 0", name="ck_allowance_remaining"),
    )

    user_id: uuid.UUID = Field(index=True)
    year: int = Field(index=True)
    allowed: float = Field(ge=0)
    used: float = Field(ge=0)
    remaining: float = Field(ge=0)
    updated_by: uuid.UUID
