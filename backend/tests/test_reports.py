"""Tests for the monthly and yearly leave reports."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING

import pytest

from app.models.allowance import LeaveAllowance
from app.models.enums import LeaveStatus, Role
from app.models.leave import LeaveRequest
from app.services.directory import InMemoryUserDirectory, UserInfo

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

EMPLOYEE_ID = uuid.uuid4()
OTHER_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()

EMPLOYEE_HEADERS = {"X-User-Id": str(EMPLOYEE_ID), "X-Role": "employee"}
ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "admin"}

MONTHLY_URL = "/leaves/report/monthly"
YEARLY_URL = "/leaves/report/yearly"


@pytest.fixture(autouse=True)
def _seed_directory(directory: InMemoryUserDirectory) -> None:
    directory.seed(
        UserInfo(
            id=EMPLOYEE_ID,
            full_name="Ayesha Khan",
            employee_id=1001,
            email="a@example.com",
            department="Engineering",
            branch="Main",
            city="Lahore",
            joining_date=date(2022, 5, 1),
        )
    )
    directory.seed(UserInfo(id=OTHER_ID, full_name="Bilal Ahmed", employee_id=1002, email="b@example.com"))
    directory.seed(
        UserInfo(id=ADMIN_ID, full_name="Hina Admin", employee_id=9001, email="h@example.com", role=Role.ADMIN)
    )


async def _add_leave(
    session: AsyncSession,
    from_date: date,
    days: float,
    status: LeaveStatus,
    user_id: uuid.UUID = EMPLOYEE_ID,
) -> LeaveRequest:
    leave = LeaveRequest(
        user_id=user_id,
        employee_snapshot={"full_name": "Ayesha Khan", "employee_id": 1001, "email": "a@example.com"},
        leave_type="full",
        leave_category="casual",
        from_date=from_date,
        to_date=from_date,
        duration_days=days,
        leave_reason="Personal",
        status=status.value,
        status_history=[],
        created_by=user_id,
    )
    session.add(leave)
    await session.commit()
    return leave


async def test_monthly_report_totals(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _add_leave(db_session, date(2025, 3, 20), 2, LeaveStatus.PENDING)
    await _add_leave(db_session, date(2025, 3, 10), 3, LeaveStatus.ACCEPTED)
    await _add_leave(db_session, date(2025, 3, 25), 1, LeaveStatus.REJECTED)
    await _add_leave(db_session, date(2025, 4, 1), 5, LeaveStatus.ACCEPTED)

    resp = await async_client.get(MONTHLY_URL, params={"year": 2025, "month": 3}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    data = resp.json()

    assert data["user"]["full_name"] == "Ayesha Khan"
    assert data["user"]["joining_date"] == "2022-05-01"
    assert data["period"] == {"year": 2025, "month": 3, "range": {"start": "2025-03-01", "end": "2025-04-01"}}
    assert data["totals"] == {"requested": 6, "approved": 3, "remaining": 4}
    assert data["allowance"]["used"] == 8
    assert [entry["from_date"] for entry in data["entries"]] == ["2025-03-10", "2025-03-20", "2025-03-25"]
    assert data["entries"][0]["reason"] == "Personal"
    assert data["entries"][0]["hr_decision"] == "not_applicable"


async def test_monthly_report_december_range(async_client: AsyncClient) -> None:
    resp = await async_client.get(MONTHLY_URL, params={"year": 2025, "month": 12}, headers=EMPLOYEE_HEADERS)
    assert resp.json()["period"]["range"] == {"start": "2025-12-01", "end": "2026-01-01"}


async def test_monthly_report_requires_year_and_month(async_client: AsyncClient) -> None:
    resp = await async_client.get(MONTHLY_URL, params={"year": 2025}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "year and month are required"

    resp = await async_client.get(MONTHLY_URL, params={"year": 2025, "month": 13}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid year/month"


async def test_employee_report_is_forced_to_self(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _add_leave(db_session, date(2025, 3, 10), 4, LeaveStatus.ACCEPTED, user_id=OTHER_ID)

    resp = await async_client.get(
        MONTHLY_URL, params={"year": 2025, "month": 3, "user_id": str(OTHER_ID)}, headers=EMPLOYEE_HEADERS
    )
    data = resp.json()
    assert data["user"]["id"] == str(EMPLOYEE_ID)
    assert data["entries"] == []


async def test_admin_reports_on_selected_user(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _add_leave(db_session, date(2025, 3, 10), 4, LeaveStatus.ACCEPTED, user_id=OTHER_ID)

    resp = await async_client.get(
        MONTHLY_URL, params={"year": 2025, "month": 3, "user_id": str(OTHER_ID)}, headers=ADMIN_HEADERS
    )
    data = resp.json()
    assert data["user"]["id"] == str(OTHER_ID)
    assert data["totals"]["approved"] == 4


async def test_report_for_unknown_user_not_found(async_client: AsyncClient) -> None:
    resp = await async_client.get(
        YEARLY_URL, params={"year": 2025, "user_id": str(uuid.uuid4())}, headers=ADMIN_HEADERS
    )
    assert resp.status_code == 404
    assert resp.json()["detail"] == "User not found"


async def test_yearly_report_buckets(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _add_leave(db_session, date(2025, 1, 15), 2, LeaveStatus.ACCEPTED)
    await _add_leave(db_session, date(2025, 1, 20), 1, LeaveStatus.PENDING)
    await _add_leave(db_session, date(2025, 6, 2), 0.5, LeaveStatus.ACCEPTED)
    await _add_leave(db_session, date(2024, 6, 2), 9, LeaveStatus.ACCEPTED)

    resp = await async_client.get(YEARLY_URL, params={"year": 2025}, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 200
    data = resp.json()

    assert data["year"] == 2025
    assert len(data["months"]) == 12
    assert data["months"][0] == {"month": 1, "requested": 3, "approved": 2}
    assert data["months"][5] == {"month": 6, "requested": 0.5, "approved": 0.5}
    assert data["months"][11] == {"month": 12, "requested": 0, "approved": 0}
    assert data["totals"] == {"requested": 3.5, "approved": 2.5, "allowed": 12, "remaining": 9.5}


async def test_yearly_report_uses_override(async_client: AsyncClient, db_session: AsyncSession) -> None:
    await _add_leave(db_session, date(2025, 2, 3), 2, LeaveStatus.ACCEPTED)
    db_session.add(
        LeaveAllowance(user_id=EMPLOYEE_ID, year=2025, allowed=15, used=10, remaining=5, updated_by=ADMIN_ID)
    )
    await db_session.commit()

    resp = await async_client.get(YEARLY_URL, params={"year": 2025}, headers=EMPLOYEE_HEADERS)
    totals = resp.json()["totals"]
    assert totals["allowed"] == 15
    assert totals["remaining"] == 5
    assert totals["approved"] == 2


async def test_yearly_report_requires_year(async_client: AsyncClient) -> None:
    resp = await async_client.get(YEARLY_URL, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 400
    assert resp.json()["detail"] == "year is required"
