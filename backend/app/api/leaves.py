# ruff: noqa: B008, TC001, TC003
from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, Depends, Query, status

from app.api.deps import AdminDep, AuthDep
from app.db import SessionDep
from app.schemas.allowance import AllowanceOverrideResponse, SetAllowancePayload
from app.schemas.leave import (
    ApplyLeavePayload,
    LeaveListResponse,
    LeaveResponse,
    StatusUpdatePayload,
    TeamLeadUpdatePayload,
    UpdateLeavePayload,
)
from app.schemas.report import MonthlyReportResponse, YearlyReportResponse
from app.services import allowance as allowance_service
from app.services import leave as leave_service
from app.services import report as report_service
from app.services.directory import UserDirectory, get_user_directory
from app.services.notifier import Notifier, get_notifier

DirectoryDep = Annotated[UserDirectory, Depends(get_user_directory)]
NotifierDep = Annotated[Notifier, Depends(get_notifier)]

leaves_router = APIRouter(prefix="/leaves", tags=["leaves"])


@leaves_router.post("", response_model=LeaveResponse, status_code=status.HTTP_201_CREATED)
async def apply_leave(
    payload: ApplyLeavePayload,
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    notifier: NotifierDep,
) -> LeaveResponse:
    """File a leave request."""
    return await leave_service.apply_leave(session, auth, payload, directory, notifier)


@leaves_router.get("", response_model=LeaveListResponse)
async def list_leaves(
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    status_filter: str | None = Query(default=None, alias="status"),
    user_id: uuid.UUID | None = Query(default=None),
    scope: str | None = Query(default=None),
    team_lead_status: str | None = Query(default=None),
) -> LeaveListResponse:
    """List leave requests visible to the caller."""
    return await leave_service.list_leaves(
        session,
        auth,
        directory,
        status_filter=status_filter,
        user_id=user_id,
        scope=scope,
        team_lead_status=team_lead_status,
    )


# Static paths must be registered before /{leave_id}.


@leaves_router.get("/report/monthly", response_model=MonthlyReportResponse)
async def monthly_report(
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    year: int | None = Query(default=None),
    month: int | None = Query(default=None),
    user_id: uuid.UUID | None = Query(default=None),
) -> MonthlyReportResponse:
    return await report_service.monthly_report(session, auth, directory, year=year, month=month, user_id=user_id)


@leaves_router.get("/report/yearly", response_model=YearlyReportResponse)
async def yearly_report(
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
    year: int | None = Query(default=None),
    user_id: uuid.UUID | None = Query(default=None),
) -> YearlyReportResponse:
    return await report_service.yearly_report(session, auth, directory, year=year, user_id=user_id)


@leaves_router.put("/allowance", response_model=AllowanceOverrideResponse)
async def set_allowance(
    payload: SetAllowancePayload,
    session: SessionDep,
    auth: AdminDep,
) -> AllowanceOverrideResponse:
    """Override a user's allowance for one year (admin only)."""
    return await allowance_service.set_allowance_override(session, auth, payload)


@leaves_router.get("/{leave_id}", response_model=LeaveResponse)
async def get_leave(
    leave_id: uuid.UUID,
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
) -> LeaveResponse:
    """Get a single leave request."""
    return await leave_service.get_leave(session, auth, directory, leave_id)


@leaves_router.patch("/{leave_id}", response_model=LeaveResponse)
async def update_leave(
    leave_id: uuid.UUID,
    payload: UpdateLeavePayload,
    session: SessionDep,
    auth: AdminDep,
    directory: DirectoryDep,
) -> LeaveResponse:
    """Edit a leave's form fields (admin only)."""
    return await leave_service.update_leave(session, auth, directory, leave_id, payload)


@leaves_router.patch("/{leave_id}/team-lead", response_model=LeaveResponse)
async def update_leave_team_lead(
    leave_id: uuid.UUID,
    payload: TeamLeadUpdatePayload,
    session: SessionDep,
    auth: AuthDep,
    directory: DirectoryDep,
) -> LeaveResponse:
    """Record the assigned team lead's review."""
    return await leave_service.update_leave_team_lead(session, auth, directory, leave_id, payload)


@leaves_router.patch("/{leave_id}/status", response_model=LeaveResponse)
async def update_leave_status(
    leave_id: uuid.UUID,
    payload: StatusUpdatePayload,
    session: SessionDep,
    auth: AdminDep,
) -> LeaveResponse:
    """Move a leave to a new status (admin only)."""
    return await leave_service.update_leave_status(session, auth, leave_id, payload)
