"""Reporting service: monthly and yearly leave summaries for one user."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlmodel import col

from app.exceptions import NotFound, ValidationFailed
from app.models.enums import LeaveStatus
from app.models.leave import LeaveRequest
from app.schemas.leave import BackupStaff, HrSectionResponse, TeamLeadReviewResponse
from app.schemas.report import (
    DateRange,
    MonthBucket,
    MonthlyReportEntry,
    MonthlyReportResponse,
    MonthlyTotals,
    ReportPeriod,
    ReportUser,
    YearlyReportResponse,
    YearlyTotals,
)
from app.services.allowance import AllowanceCache, get_annual_allowance, is_supported_year, year_bounds
from app.services.duration import charged_days

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.auth import AuthContext
    from app.services.directory import UserDirectory, UserInfo


async def _resolve_report_user(
    auth: AuthContext,
    directory: UserDirectory,
    user_id: uuid.UUID | None,
) -> UserInfo:
    """Employees always report on themselves; other roles may pick a user."""
    target_id = auth.user_id if auth.is_employee else (user_id or auth.user_id)
    user = await directory.get_user(target_id)
    if user is None:
        raise NotFound("User not found")
    return user


def _report_user(user: UserInfo) -> ReportUser:
    return ReportUser(
        id=user.id,
        full_name=user.full_name,
        employee_id=user.employee_id,
        department=user.department,
        branch=user.branch,
        city=user.city,
        joining_date=user.joining_date,
    )


def month_bounds(year: int, month: int) -> tuple[date, date]:
    """Half-open [first day, first day of next month) range."""
    if not is_supported_year(year) or not 1 <= month <= 12:
        raise ValidationFailed("Invalid year/month")
    start = date(year, month, 1)
    end = date(year + 1, 1, 1) if month == 12 else date(year, month + 1, 1)
    return start, end


async def _leaves_starting_between(
    session: AsyncSession,
    user_id: uuid.UUID,
    start: date,
    end: date,
) -> list[LeaveRequest]:
    result = await session.execute(
        select(LeaveRequest)
        .where(
            col(LeaveRequest.user_id) == user_id,
            col(LeaveRequest.from_date) >= start,
            col(LeaveRequest.from_date) < end,
        )
        .order_by(col(LeaveRequest.from_date))
    )
    return list(result.scalars().all())


def _report_entry(leave: LeaveRequest) -> MonthlyReportEntry:
    hr_section = HrSectionResponse.model_validate(leave.hr_section or {})
    return MonthlyReportEntry(
        id=leave.id,
        status=leave.status,
        leave_type=leave.leave_type,
        leave_category=leave.leave_category,
        from_date=leave.from_date,
        to_date=leave.to_date,
        duration_days=leave.duration_days,
        duration_hours=leave.duration_hours,
        reason=leave.leave_reason,
        employer_name=leave.employer_name,
        designation=leave.designation,
        contact_number=leave.contact_number,
        tasks_during_absence=leave.tasks_during_absence,
        backup_staff=BackupStaff(name=leave.backup_staff_name),
        team_lead=TeamLeadReviewResponse.model_validate(leave.team_lead or {}),
        applicant_signed_at=leave.applicant_signed_at,
        hr_section=hr_section,
        hr_decision=hr_section.decision_for_form,
        created_at=leave.created_at,
    )


async def monthly_report(
    session: AsyncSession,
    auth: AuthContext,
    directory: UserDirectory,
    *,
    year: int | None,
    month: int | None,
    user_id: uuid.UUID | None = None,
) -> MonthlyReportResponse:
    """Leaves starting in one month, with requested/approved totals and the year's allowance."""
    if year is None or month is None:
        raise ValidationFailed("year and month are required")

    user = await _resolve_report_user(auth, directory, user_id)
    start, end = month_bounds(year, month)

    leaves = await _leaves_starting_between(session, user.id, start, end)
    allowance = await get_annual_allowance(session, user.id, start, AllowanceCache())

    requested = 0.0
    approved = 0.0
    for leave in leaves:
        days = charged_days(leave.duration_days, leave.duration_hours)
        requested += days
        if leave.status == LeaveStatus.ACCEPTED.value:
            approved += days

    return MonthlyReportResponse(
        user=_report_user(user),
        period=ReportPeriod(year=year, month=month, range=DateRange(start=start, end=end)),
        allowance=allowance.to_response(),
        totals=MonthlyTotals(requested=requested, approved=approved, remaining=allowance.remaining),
        entries=[_report_entry(leave) for leave in leaves],
    )


async def yearly_report(
    session: AsyncSession,
    auth: AuthContext,
    directory: UserDirectory,
    *,
    year: int | None,
    user_id: uuid.UUID | None = None,
) -> YearlyReportResponse:
    """Per-month requested/approved buckets for one calendar year."""
    if year is None:
        raise ValidationFailed("year is required")
    if not is_supported_year(year):
        raise ValidationFailed("Invalid year")

    user = await _resolve_report_user(auth, directory, user_id)
    start, end = year_bounds(year)

    leaves = await _leaves_starting_between(session, user.id, start, end)
    months = [MonthBucket(month=m) for m in range(1, 13)]
    total_requested = 0.0
    total_approved = 0.0
    for leave in leaves:
        days = charged_days(leave.duration_days, leave.duration_hours)
        bucket = months[leave.from_date.month - 1]
        bucket.requested += days
        total_requested += days
        if leave.status == LeaveStatus.ACCEPTED.value:
            bucket.approved += days
            total_approved += days

    allowance = await get_annual_allowance(session, user.id, start, AllowanceCache())

    return YearlyReportResponse(
        user=_report_user(user),
        year=year,
        months=months,
        totals=YearlyTotals(
            requested=total_requested,
            approved=total_approved,
            allowed=allowance.allowed,
            remaining=allowance.remaining,
        ),
    )
