"""Tests for HR status transitions and the annual allowance cap."""

from __future__ import annotations

import uuid
from datetime import date
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import select, update
from sqlmodel import col

from app.exceptions import Conflict
from app.models.allowance import LeaveAllowance
from app.models.enums import Role
from app.models.leave import LeaveRequest
from app.services.allowance import get_annual_allowance
from app.services.directory import InMemoryUserDirectory, UserInfo
from app.services.versioning import claim_next_version

if TYPE_CHECKING:
    from httpx import AsyncClient
    from sqlalchemy.ext.asyncio import AsyncSession

EMPLOYEE_ID = uuid.uuid4()
LEAD_ID = uuid.uuid4()
ADMIN_ID = uuid.uuid4()

EMPLOYEE_HEADERS = {"X-User-Id": str(EMPLOYEE_ID), "X-Role": "employee"}
ADMIN_HEADERS = {"X-User-Id": str(ADMIN_ID), "X-Role": "admin"}

LEAVES_URL = "/leaves"


@pytest.fixture(autouse=True)
def _seed_directory(directory: InMemoryUserDirectory) -> None:
    directory.seed(UserInfo(id=EMPLOYEE_ID, full_name="Ayesha Khan", employee_id=1001, email="a@example.com"))
    directory.seed(
        UserInfo(
            id=LEAD_ID,
            full_name="Sara Lead",
            employee_id=2001,
            email="s@example.com",
            is_team_lead=True,
            is_approved=True,
        )
    )
    directory.seed(UserInfo(id=ADMIN_ID, full_name="Hina Admin", employee_id=9001, email="h@example.com", role=Role.HR))


async def _apply(client: AsyncClient, from_date: str, to_date: str, **extra: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "leave_type": "full",
        "leave_category": "annual",
        "from_date": from_date,
        "to_date": to_date,
        "leave_reason": "Vacation",
        "team_lead_id": str(LEAD_ID),
        "tasks_during_absence": "Handover notes",
        "backup_staff": {"name": "Bilal"},
        **extra,
    }
    resp = await client.post(LEAVES_URL, json=payload, headers=EMPLOYEE_HEADERS)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def _set_status(client: AsyncClient, leave_id: str, status: str, **extra: Any) -> Any:
    return await client.patch(
        f"{LEAVES_URL}/{leave_id}/status", json={"status": status, **extra}, headers=ADMIN_HEADERS
    )


async def test_accept_records_allowance_snapshot(async_client: AsyncClient, db_session: AsyncSession) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-12")

    resp = await _set_status(async_client, leave["id"], "accepted", remark="Enjoy")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "accepted"
    assert data["reviewed_by"] == str(ADMIN_ID)
    assert data["hr_section"]["annual_allowance"] == {"allowed": 12, "used": 3, "remaining": 9}
    assert data["status_history"][-1]["status"] == "accepted"
    assert data["status_history"][-1]["remark"] == "Enjoy"

    allowance = await get_annual_allowance(db_session, EMPLOYEE_ID, date(2025, 3, 10))
    assert (allowance.allowed, allowance.used, allowance.remaining) == (12, 3, 9)


async def test_scenario_full_then_short_leave(async_client: AsyncClient, db_session: AsyncSession) -> None:
    full = await _apply(async_client, "2025-03-10", "2025-03-12")
    await _set_status(async_client, full["id"], "accepted")

    short = await _apply(
        async_client,
        "2025-03-15",
        "2025-03-15",
        leave_type="short",
        duration_hours=1.5,
        short_leave_window={"start_time": "09:00", "end_time": "10:30"},
    )
    assert short["duration_days"] == 0.25
    resp = await _set_status(async_client, short["id"], "accepted")
    assert resp.status_code == 200

    allowance = await get_annual_allowance(db_session, EMPLOYEE_ID, date(2025, 3, 10))
    assert allowance.used == 3.25
    assert allowance.remaining == 8.75


async def test_accept_beyond_allowance_rejected(async_client: AsyncClient) -> None:
    first = await _apply(async_client, "2025-01-06", "2025-01-15")
    assert (await _set_status(async_client, first["id"], "accepted")).status_code == 200

    second = await _apply(async_client, "2025-02-03", "2025-02-05")
    resp = await _set_status(async_client, second["id"], "accepted")

    assert resp.status_code == 400
    body = resp.json()
    assert body["detail"] == "Annual leave limit exceeded. Remaining leaves: 2"
    assert body["details"] == {"remaining": 2}

    current = await async_client.get(f"{LEAVES_URL}/{second['id']}", headers=ADMIN_HEADERS)
    assert current.json()["status"] == "pending"
    assert len(current.json()["status_history"]) == 1
    assert current.json()["version"] == 1


async def test_accept_exactly_to_the_limit(async_client: AsyncClient) -> None:
    first = await _apply(async_client, "2025-01-06", "2025-01-15")
    await _set_status(async_client, first["id"], "accepted")
    second = await _apply(async_client, "2025-02-03", "2025-02-04")

    resp = await _set_status(async_client, second["id"], "accepted")
    assert resp.status_code == 200
    assert resp.json()["hr_section"]["annual_allowance"] == {"allowed": 12, "used": 12, "remaining": 0}


async def test_reaccepting_is_idempotent(async_client: AsyncClient, db_session: AsyncSession) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-12")
    await _set_status(async_client, leave["id"], "accepted")

    resp = await _set_status(async_client, leave["id"], "accepted")
    assert resp.status_code == 200
    assert resp.json()["hr_section"]["annual_allowance"]["used"] == 3

    allowance = await get_annual_allowance(db_session, EMPLOYEE_ID, date(2025, 3, 10))
    assert allowance.used == 3


async def test_rejecting_an_accepted_leave_releases_days(async_client: AsyncClient, db_session: AsyncSession) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-12")
    await _set_status(async_client, leave["id"], "accepted")

    resp = await _set_status(async_client, leave["id"], "rejected")
    assert resp.json()["hr_section"]["annual_allowance"] == {"allowed": 12, "used": 0, "remaining": 12}

    allowance = await get_annual_allowance(db_session, EMPLOYEE_ID, date(2025, 3, 10))
    assert allowance.used == 0


async def test_non_accept_transition_without_override_writes_nothing(
    async_client: AsyncClient, db_session: AsyncSession
) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-12")

    resp = await _set_status(async_client, leave["id"], "on_hold", remark="Need documents")
    assert resp.status_code == 200
    assert resp.json()["hr_section"]["annual_allowance"] == {"allowed": 12, "used": 0, "remaining": 12}

    result = await db_session.execute(select(LeaveAllowance).where(col(LeaveAllowance.user_id) == EMPLOYEE_ID))
    assert result.scalar_one_or_none() is None


async def test_override_used_is_baseline(async_client: AsyncClient) -> None:
    put = await async_client.put(
        f"{LEAVES_URL}/allowance",
        json={"user_id": str(EMPLOYEE_ID), "year": 2025, "allowed": 12, "remaining": 2},
        headers=ADMIN_HEADERS,
    )
    assert put.status_code == 200

    leave = await _apply(async_client, "2025-03-10", "2025-03-12")
    resp = await _set_status(async_client, leave["id"], "accepted")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Annual leave limit exceeded. Remaining leaves: 2"


async def test_leave_in_other_year_not_counted(async_client: AsyncClient) -> None:
    old = await _apply(async_client, "2024-12-20", "2024-12-31")
    await _set_status(async_client, old["id"], "accepted")

    leave = await _apply(async_client, "2025-01-02", "2025-01-03")
    resp = await _set_status(async_client, leave["id"], "accepted")
    assert resp.json()["hr_section"]["annual_allowance"]["used"] == 2


async def test_each_status_call_appends_one_history_entry(async_client: AsyncClient) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-10")

    for step, status in enumerate(["on_hold", "rejected", "pending", "accepted"], start=2):
        resp = await _set_status(async_client, leave["id"], status)
        history = resp.json()["status_history"]
        assert len(history) == step
        assert history[-1]["status"] == status
        assert history[-1]["changed_by"] == str(ADMIN_ID)


async def test_invalid_status_rejected(async_client: AsyncClient) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-10")

    resp = await _set_status(async_client, leave["id"], "approved")
    assert resp.status_code == 400
    assert resp.json()["detail"] == "Invalid status"


async def test_employee_cannot_change_status(async_client: AsyncClient) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-10")

    resp = await async_client.patch(
        f"{LEAVES_URL}/{leave['id']}/status", json={"status": "accepted"}, headers=EMPLOYEE_HEADERS
    )
    assert resp.status_code == 403


async def test_status_on_unknown_leave_not_found(async_client: AsyncClient) -> None:
    resp = await _set_status(async_client, str(uuid.uuid4()), "accepted")
    assert resp.status_code == 404


async def test_stale_expected_version_conflicts(async_client: AsyncClient) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-12")
    await _set_status(async_client, leave["id"], "on_hold")

    resp = await _set_status(async_client, leave["id"], "accepted", expected_version=1)
    assert resp.status_code == 409

    current = await async_client.get(f"{LEAVES_URL}/{leave['id']}", headers=ADMIN_HEADERS)
    assert current.json()["status"] == "on_hold"
    assert current.json()["version"] == 2


async def test_matching_expected_version_succeeds(async_client: AsyncClient) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-12")

    resp = await _set_status(async_client, leave["id"], "accepted", expected_version=1)
    assert resp.status_code == 200
    assert resp.json()["version"] == 2


async def _bump_version_elsewhere(session: AsyncSession, leave_id: uuid.UUID, version: int) -> None:
    """Write a new version straight to the table, leaving loaded objects stale."""
    await session.execute(
        update(LeaveRequest)
        .where(col(LeaveRequest.id) == leave_id)
        .values(version=version)
        .execution_options(synchronize_session=False)
    )
    await session.commit()


async def _reload(session: AsyncSession, leave_id: uuid.UUID) -> LeaveRequest:
    result = await session.execute(
        select(LeaveRequest).where(col(LeaveRequest.id) == leave_id).execution_options(populate_existing=True)
    )
    return result.scalar_one()


async def test_claim_next_version_rejects_stale_row(async_client: AsyncClient, db_session: AsyncSession) -> None:
    leave_id = uuid.UUID((await _apply(async_client, "2025-03-10", "2025-03-12"))["id"])
    leave = await db_session.get(LeaveRequest, leave_id)
    assert leave is not None
    assert leave.version == 1

    await _bump_version_elsewhere(db_session, leave_id, 5)

    with pytest.raises(Conflict):
        await claim_next_version(db_session, leave)
    assert leave.version == 1

    await db_session.rollback()
    assert (await _reload(db_session, leave_id)).version == 5


async def test_status_change_after_concurrent_write_conflicts(
    async_client: AsyncClient, db_session: AsyncSession
) -> None:
    leave = await _apply(async_client, "2025-03-10", "2025-03-12")
    leave_id = uuid.UUID(leave["id"])

    # Keep the copy loaded before the concurrent write alive in the identity map.
    loaded = await db_session.get(LeaveRequest, leave_id)
    assert loaded is not None

    await _bump_version_elsewhere(db_session, leave_id, 5)

    resp = await _set_status(async_client, leave["id"], "accepted")
    assert resp.status_code == 409

    await db_session.rollback()
    stored = await _reload(db_session, leave_id)
    assert stored.version == 5
    assert stored.status == "pending"
    assert len(stored.status_history) == 1
