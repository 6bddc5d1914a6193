# ruff: noqa: TC001, TC003
from __future__ import annotations

import uuid
from datetime import date, datetime

from pydantic import BaseModel

from app.models.enums import HrDecision, LeaveCategory, LeaveStatus, LeaveType
from app.schemas.allowance import AnnualAllowanceResponse
from app.schemas.leave import BackupStaff, HrSectionResponse, TeamLeadReviewResponse


class ReportUser(BaseModel):
    """Header block identifying whose report this is."""

    id: uuid.UUID
    full_name: str
    employee_id: int
    department: str
    branch: str
    city: str
    joining_date: date | None


class DateRange(BaseModel):
    start: date
    end: date


class ReportPeriod(BaseModel):
    year: int
    month: int
    range: DateRange


class MonthlyTotals(BaseModel):
    requested: float
    approved: float
    remaining: float


class MonthlyReportEntry(BaseModel):
    """One leave that starts inside the reported month."""

    id: uuid.UUID
    status: LeaveStatus
    leave_type: LeaveType
    leave_category: LeaveCategory
    from_date: date
    to_date: date
    duration_days: float | None
    duration_hours: float | None
    reason: str
    employer_name: str
    designation: str
    contact_number: str
    tasks_during_absence: str
    backup_staff: BackupStaff
    team_lead: TeamLeadReviewResponse
    applicant_signed_at: datetime | None
    hr_section: HrSectionResponse
    hr_decision: HrDecision | None
    created_at: datetime


class MonthlyReportResponse(BaseModel):
    user: ReportUser
    period: ReportPeriod
    allowance: AnnualAllowanceResponse
    totals: MonthlyTotals
    entries: list[MonthlyReportEntry]


class MonthBucket(BaseModel):
    month: int
    requested: float = 0
    approved: float = 0


class YearlyTotals(BaseModel):
    requested: float
    approved: float
    allowed: float
    remaining: float


class YearlyReportResponse(BaseModel):
    user: ReportUser
    year: int
    months: list[MonthBucket]
    totals: YearlyTotals
