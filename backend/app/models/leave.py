# ruff: noqa: TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

import sqlalchemy as sa
from sqlmodel import Field

from app.models.base import TimestampMixin, UUIDBase, VersionedMixin
from app.models.enums import HrDecision, LeaveStatus


def default_team_lead_review() -> dict[str, Any]:
    return {"remarks": "", "status": "pending", "reviewed_at": None, "reviewer": None}


def default_hr_section() -> dict[str, Any]:
    return {
        "received_by": "",
        "received_at": None,
        "employment_status": None,
        "decision_for_form": HrDecision.NOT_APPLICABLE.value,
        "annual_allowance": None,
    }


class LeaveRequest(UUIDBase, TimestampMixin, VersionedMixin, table=True):
    """A leave application with its workflow state and a frozen copy of the applicant's profile.

    JSON columns are replaced wholesale on every change; in-place mutation is
    not tracked by the ORM.
    """

    __tablename__ = "leave_request"
    __table_args__ = (sa.Index("ix_leave_user_dates", "user_id", "from_date", "to_date"),)

    user_id: uuid.UUID = Field(index=True)
    employee_snapshot: dict[str, Any] = Field(sa_type=sa.JSON)

    employer_name: str = ""
    designation: str = ""
    contact_number: str = ""

    leave_type: str = Field(max_length=20)
    leave_category: str = Field(max_length=20)
    from_date: date
    to_date: date
    duration_days: float | None = None
    duration_hours: float | None = None
    short_leave_window: dict[str, str] | None = Field(default=None, sa_type=sa.JSON)
    half_day_session: str | None = Field(default=None, max_length=20)
    leave_reason: str

    applicant_signed_at: datetime | None = Field(
        default=None,
        sa_type=sa.DateTime(timezone=True),  # ty: ignore[invalid-argument-type]
    )
    tasks_during_absence: str = ""
    backup_staff_name: str = ""
    team_lead_assignee: uuid.UUID | None = Field(default=None, index=True)
    team_lead: dict[str, Any] = Field(default_factory=default_team_lead_review, sa_type=sa.JSON)
    hr_section: dict[str, Any] = Field(default_factory=default_hr_section, sa_type=sa.JSON)
    attachments: list[str] = Field(default_factory=list, sa_type=sa.JSON)

    status: str = Field(
        default=LeaveStatus.PENDING, max_length=20, index=True, sa_column_kwargs={"server_default": "pending"}
    )
    status_history: list[dict[str, Any]] = Field(default_factory=list, sa_type=sa.JSON)

    created_by: uuid.UUID
    updated_by: uuid.UUID | None = None
    reviewed_by: uuid.UUID | None = None
