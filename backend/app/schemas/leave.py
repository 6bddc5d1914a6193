# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Self

from pydantic import BaseModel, ConfigDict, Field

from app.models.enums import (
    EmploymentStatus,
    HrDecision,
    LeaveCategory,
    LeaveStatus,
    LeaveType,
    TeamLeadReviewStatus,
)
from app.schemas.allowance import AllowanceSnapshot, AnnualAllowanceResponse
from app.services.directory import UserInfo

# ---------------------------------------------------------------------------
# Value types
# ---------------------------------------------------------------------------


class EmployeeSnapshot(BaseModel):
    """Applicant profile copied onto the leave when it is filed; never re-synced."""

    model_config = ConfigDict(frozen=True)

    full_name: str
    employee_id: int
    email: str
    department: str = ""
    branch: str = ""
    city: str = ""
    joining_date: date | None = None
    role: str = ""

    @classmethod
    def from_user(cls, user: UserInfo) -> Self:
        return cls(
            full_name=user.full_name,
            employee_id=user.employee_id,
            email=user.email,
            department=user.department or "",
            branch=user.branch or "",
            city=user.city or "",
            joining_date=user.joining_date,
            role=user.role.value,
        )


class ShortLeaveWindow(BaseModel):
    start_time: str = ""
    end_time: str = ""


class BackupStaff(BaseModel):
    name: str | None = None


# ---------------------------------------------------------------------------
# Request payloads
# ---------------------------------------------------------------------------


class AllowanceSnapshotInput(BaseModel):
    allowed: float | None = None
    used: float | None = None
    remaining: float | None = None


class HrSectionInput(BaseModel):
    """Free-form HR fields; only keys present in the body are applied."""

    received_by: str | None = None
    received_at: datetime | None = None
    employment_status: EmploymentStatus | None = None
    decision_for_form: HrDecision | None = None
    annual_allowance: AllowanceSnapshotInput | None = None


class TeamLeadReviewInput(BaseModel):
    remarks: str | None = None
    status: str | None = None


class AdminTeamLeadReviewInput(TeamLeadReviewInput):
    reviewed_at: datetime | None = None
    reviewer: str | None = None


class ApplyLeavePayload(BaseModel):
    """Request body for filing a leave.

    Type-specific rules (short-leave window, half-day session, required
    fields) are checked by the workflow so they fail in a fixed order.
    """

    user_id: uuid.UUID | None = None
    employer_name: str | None = None
    designation: str | None = None
    contact_number: str | None = None
    leave_type: LeaveType | None = None
    leave_category: LeaveCategory | None = None
    from_date: str | None = None
    to_date: str | None = None
    duration_days: float | None = None
    duration_hours: float | None = None
    leave_reason: str | None = None
    short_leave_window: ShortLeaveWindow | None = None
    half_day_session: str | None = None
    tasks_during_absence: str | None = None
    backup_staff: BackupStaff | None = None
    backup_staff_name: str | None = None
    team_lead_id: str | None = None
    team_lead: TeamLeadReviewInput | None = None
    attachments: list[str] = Field(default_factory=list)
    status_remark: str | None = None
    hr_section: HrSectionInput | None = None


class UpdateLeavePayload(BaseModel):
    """Admin edit of a leave's form fields. Never touches status or the allowance."""

    employer_name: str | None = None
    designation: str | None = None
    contact_number: str | None = None
    tasks_during_absence: str | None = None
    applicant_signed_at: datetime | None = None
    backup_staff: BackupStaff | None = None
    team_lead_assignee: str | None = None
    team_lead: AdminTeamLeadReviewInput | None = None
    attachments: list[str] | None = None
    hr_section: HrSectionInput | None = None
    expected_version: int | None = None


class TeamLeadUpdatePayload(BaseModel):
    """Fields the assigned team lead may change."""

    tasks_during_absence: str | None = None
    backup_staff: BackupStaff | None = None
    team_lead: TeamLeadReviewInput | None = None
    expected_version: int | None = None


class StatusUpdatePayload(BaseModel):
    status: str | None = None
    remark: str | None = Field(default=None, max_length=1000)
    expected_version: int | None = None


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class StatusHistoryEntry(BaseModel):
    status: LeaveStatus
    remark: str
    changed_by: uuid.UUID
    changed_at: datetime


class TeamLeadReviewResponse(BaseModel):
    remarks: str = ""
    status: TeamLeadReviewStatus = TeamLeadReviewStatus.PENDING
    reviewed_at: datetime | None = None
    reviewer: uuid.UUID | None = None


class HrSectionResponse(BaseModel):
    received_by: str = ""
    received_at: datetime | None = None
    employment_status: EmploymentStatus | None = None
    decision_for_form: HrDecision = HrDecision.NOT_APPLICABLE
    annual_allowance: AllowanceSnapshot | None = None


class LeaveResponse(BaseModel):
    """Response schema for a single leave request."""

    id: uuid.UUID
    user_id: uuid.UUID
    employee_snapshot: EmployeeSnapshot
    employer_name: str
    designation: str
    contact_number: str
    leave_type: LeaveType
    leave_category: LeaveCategory
    from_date: date
    to_date: date
    duration_days: float | None
    duration_hours: float | None
    short_leave_window: ShortLeaveWindow | None
    half_day_session: str | None
    leave_reason: str
    applicant_signed_at: datetime | None
    tasks_during_absence: str
    backup_staff: BackupStaff
    team_lead_assignee: uuid.UUID | None
    team_lead: TeamLeadReviewResponse
    hr_section: HrSectionResponse
    attachments: list[str]
    status: LeaveStatus
    status_history: list[StatusHistoryEntry]
    created_by: uuid.UUID
    updated_by: uuid.UUID | None
    reviewed_by: uuid.UUID | None
    version: int
    created_at: datetime
    updated_at: datetime
    annual_allowance: AnnualAllowanceResponse | None = None


class LeaveListResponse(BaseModel):
    """List of leave requests, newest first."""

    items: list[LeaveResponse]
    total: int
