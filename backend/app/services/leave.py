"""Leave workflow: filing, listing, HR status decisions and the two edit surfaces."""

# ruff: noqa: TC003
from __future__ import annotations

import logging
import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlmodel import col

from app.exceptions import AllowanceExceeded, Forbidden, NotFound, ValidationFailed
from app.models.base import now_utc
from app.models.enums import AuditAction, AuditEntityType, LeaveStatus, TeamLeadReviewStatus
from app.models.leave import LeaveRequest, default_hr_section, default_team_lead_review
from app.schemas.leave import (
    BackupStaff,
    EmployeeSnapshot,
    HrSectionResponse,
    LeaveListResponse,
    LeaveResponse,
    ShortLeaveWindow,
    StatusHistoryEntry,
    TeamLeadReviewResponse,
)
from app.services.allowance import (
    AllowanceCache,
    AnnualAllowance,
    compute_yearly_usage,
    default_allowed,
    get_annual_allowance,
    get_override,
    is_supported_year,
    save_override,
)
from app.services.audit import model_to_audit_dict, write_audit_log
from app.services.directory import find_available_team_lead
from app.services.duration import HalfDaySpan, ShortLeaveSpan, charged_days, resolve_leave_span
from app.services.notifier import notify_quietly
from app.services.versioning import check_expected_version, claim_next_version

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from app.schemas.auth import AuthContext
    from app.schemas.leave import (
        AllowanceSnapshotInput,
        ApplyLeavePayload,
        HrSectionInput,
        StatusUpdatePayload,
        TeamLeadUpdatePayload,
        UpdateLeavePayload,
    )
    from app.services.directory import UserDirectory
    from app.services.notifier import Notifier

logger = logging.getLogger(__name__)

LEAVE_CREATED_EVENT = "leave:new"
_DEFAULT_CREATION_REMARK = "Leave request created"


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _iso(value: datetime | date | None) -> str | None:
    return value.isoformat() if value is not None else None


def parse_calendar_date(value: str | None) -> date | None:
    """Parse ``YYYY-MM-DD`` or an ISO timestamp down to its calendar day.

    Days in years the allowance calendar cannot represent count as invalid.
    """
    if not value:
        return None
    text = value.strip()
    try:
        parsed = date.fromisoformat(text)
    except ValueError:
        try:
            parsed = datetime.fromisoformat(text).date()
        except ValueError:
            return None
    return parsed if is_supported_year(parsed.year) else None


def _history_entry(status: LeaveStatus, remark: str, actor_id: uuid.UUID) -> dict[str, Any]:
    return {
        "status": status.value,
        "remark": remark,
        "changed_by": str(actor_id),
        "changed_at": now_utc().isoformat(),
    }


def _apply_review_status(review: dict[str, Any], status: TeamLeadReviewStatus, actor_id: uuid.UUID) -> None:
    """Set the team-lead review status; a decision stamps the reviewer, pending clears it."""
    review["status"] = status.value
    if status is TeamLeadReviewStatus.PENDING:
        review["reviewed_at"] = None
        review["reviewer"] = None
    else:
        review["reviewed_at"] = now_utc().isoformat()
        review["reviewer"] = str(actor_id)


def _parse_review_status(value: str, message: str) -> TeamLeadReviewStatus:
    try:
        return TeamLeadReviewStatus(value)
    except ValueError:
        raise ValidationFailed(message) from None


async def _resolve_team_lead(
    directory: UserDirectory,
    raw_id: str,
    invalid_message: str,
    unavailable_message: str,
) -> uuid.UUID:
    try:
        lead_id = uuid.UUID(raw_id)
    except ValueError:
        raise ValidationFailed(invalid_message) from None
    lead = await find_available_team_lead(directory, lead_id)
    if lead is None:
        raise ValidationFailed(unavailable_message)
    return lead.id


def reconcile_allowance_snapshot(
    current: dict[str, Any] | None,
    update: AllowanceSnapshotInput,
) -> dict[str, float]:
    """Merge manual allowance figures into a leave's HR snapshot.

    Values are clamped at zero. A missing ``remaining`` is derived from
    ``used`` and vice versa, then ``used`` is capped at ``allowed``.
    """
    snapshot: dict[str, float | None] = {
        "allowed": None,
        "used": None,
        "remaining": None,
        **(current or {}),
    }
    for key in ("allowed", "used", "remaining"):
        value = getattr(update, key)
        if value is not None:
            snapshot[key] = max(value, 0)

    allowed = snapshot["allowed"] if snapshot["allowed"] is not None else default_allowed()
    used = snapshot["used"]
    remaining = snapshot["remaining"]
    if remaining is None and used is not None:
        remaining = max(allowed - used, 0)
    elif used is None and remaining is not None:
        used = max(allowed - remaining, 0)

    used = min(used or 0, allowed)
    return {"allowed": allowed, "used": used, "remaining": max(allowed - used, 0)}


def merge_hr_section(current: dict[str, Any] | None, updates: HrSectionInput) -> dict[str, Any]:
    """Return a new HR section with the keys present in ``updates`` applied."""
    section = {**default_hr_section(), **(current or {})}
    provided = updates.model_fields_set

    if "received_by" in provided:
        section["received_by"] = _clean(updates.received_by)
    if "received_at" in provided:
        section["received_at"] = _iso(updates.received_at)
    if "employment_status" in provided:
        section["employment_status"] = updates.employment_status.value if updates.employment_status else None
    if "decision_for_form" in provided and updates.decision_for_form is not None:
        section["decision_for_form"] = updates.decision_for_form.value
    if updates.annual_allowance is not None:
        section["annual_allowance"] = reconcile_allowance_snapshot(
            section.get("annual_allowance"), updates.annual_allowance
        )
    return section


def _build_leave_response(leave: LeaveRequest, allowance: AnnualAllowance | None = None) -> LeaveResponse:
    """Map a leave model to its response schema."""
    return LeaveResponse(
        id=leave.id,
        user_id=leave.user_id,
        employee_snapshot=EmployeeSnapshot.model_validate(leave.employee_snapshot),
        employer_name=leave.employer_name,
        designation=leave.designation,
        contact_number=leave.contact_number,
        leave_type=leave.leave_type,
        leave_category=leave.leave_category,
        from_date=leave.from_date,
        to_date=leave.to_date,
        duration_days=leave.duration_days,
        duration_hours=leave.duration_hours,
        short_leave_window=ShortLeaveWindow.model_validate(leave.short_leave_window)
        if leave.short_leave_window
        else None,
        half_day_session=leave.half_day_session,
        leave_reason=leave.leave_reason,
        applicant_signed_at=leave.applicant_signed_at,
        tasks_during_absence=leave.tasks_during_absence,
        backup_staff=BackupStaff(name=leave.backup_staff_name),
        team_lead_assignee=leave.team_lead_assignee,
        team_lead=TeamLeadReviewResponse.model_validate(leave.team_lead or {}),
        hr_section=HrSectionResponse.model_validate(leave.hr_section or {}),
        attachments=list(leave.attachments or []),
        status=leave.status,
        status_history=[StatusHistoryEntry.model_validate(entry) for entry in leave.status_history],
        created_by=leave.created_by,
        updated_by=leave.updated_by,
        reviewed_by=leave.reviewed_by,
        version=leave.version,
        created_at=leave.created_at,
        updated_at=leave.updated_at,
        annual_allowance=allowance.to_response() if allowance is not None else None,
    )


async def _get_leave_or_404(session: AsyncSession, leave_id: uuid.UUID) -> LeaveRequest:
    result = await session.execute(select(LeaveRequest).where(col(LeaveRequest.id) == leave_id))
    leave = result.scalar_one_or_none()
    if leave is None:
        raise NotFound("Leave not found")
    return leave


async def _persist(
    session: AsyncSession,
    leave: LeaveRequest,
    auth: AuthContext,
    action: AuditAction,
    before: dict[str, Any] | None,
) -> LeaveRequest:
    """Flush, audit, commit and reload a leave."""
    await session.flush()
    await write_audit_log(
        session,
        actor_id=auth.user_id,
        entity_type=AuditEntityType.LEAVE,
        entity_id=leave.id,
        action=action,
        before_json=before,
        after_json=model_to_audit_dict(leave),
    )
    await session.commit()
    await session.refresh(leave)
    return leave


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


async def apply_leave(
    session: AsyncSession,
    auth: AuthContext,
    payload: ApplyLeavePayload,
    directory: UserDirectory,
    notifier: Notifier,
) -> LeaveResponse:
    """File a leave request in ``pending`` status.

    Checks run in a fixed order and the first failure wins:
    1. Required fields
    2. Only admins may file for someone else
    3. Target user exists
    4. Team lead is available (mandatory for employees)
    5. Dates parse and are ordered
    6. Type-specific duration rules
    7. Hand-over fields (mandatory for employees)
    Then the applicant snapshot and first history entry are written and the
    assigned team lead is notified. The allowance is not touched.
    """
    # 1. Required fields.
    if not (
        payload.leave_type and payload.leave_category and payload.from_date and payload.to_date and payload.leave_reason
    ):
        raise ValidationFailed("leave_type, leave_category, from_date, to_date and leave_reason are required")

    # 2. Filing on behalf of another user.
    if payload.user_id is not None and payload.user_id != auth.user_id and not auth.is_admin:
        raise Forbidden("You do not have permission to apply leave for another user")
    target_id = payload.user_id or auth.user_id

    # 3. Target user.
    target_user = await directory.get_user(target_id)
    if target_user is None:
        raise NotFound("User not found")

    # 4. Team lead.
    assigned_lead: uuid.UUID | None = None
    if payload.team_lead_id:
        assigned_lead = await _resolve_team_lead(
            directory, payload.team_lead_id, "Invalid team lead selected", "Selected team lead is not available"
        )
    elif auth.is_employee:
        raise ValidationFailed("Team lead selection is required")

    # 5. Dates.
    start = parse_calendar_date(payload.from_date)
    end = parse_calendar_date(payload.to_date)
    if start is None or end is None:
        raise ValidationFailed("Invalid from_date or to_date")
    if end < start:
        raise ValidationFailed("to_date cannot be earlier than from_date")

    # 6. Duration.
    window = payload.short_leave_window
    span = resolve_leave_span(
        payload.leave_type,
        start,
        end,
        duration_days=payload.duration_days,
        duration_hours=payload.duration_hours,
        start_time=window.start_time if window else None,
        end_time=window.end_time if window else None,
        half_day_session=payload.half_day_session,
    )

    # 7. Hand-over details.
    tasks = _clean(payload.tasks_during_absence)
    backup_name = payload.backup_staff.name if payload.backup_staff and payload.backup_staff.name is not None else None
    backup_name = _clean(backup_name if backup_name is not None else payload.backup_staff_name)
    if auth.is_employee:
        if not tasks:
            raise ValidationFailed("Tasks during absence are required")
        if not backup_name:
            raise ValidationFailed("Primary backup colleague is required")

    review = default_team_lead_review()
    if payload.team_lead is not None and auth.is_admin:
        review["remarks"] = _clean(payload.team_lead.remarks)
        if payload.team_lead.status in TeamLeadReviewStatus.__members__.values():
            _apply_review_status(review, TeamLeadReviewStatus(payload.team_lead.status), auth.user_id)

    # 8-9. Snapshot and first history entry.
    snapshot = EmployeeSnapshot.from_user(target_user)
    leave = LeaveRequest(
        user_id=target_user.id,
        employee_snapshot=snapshot.model_dump(mode="json"),
        employer_name=_clean(payload.employer_name),
        designation=_clean(payload.designation),
        contact_number=_clean(payload.contact_number),
        leave_type=span.leave_type.value,
        leave_category=payload.leave_category.value,
        from_date=start,
        to_date=end,
        duration_days=span.duration_days,
        duration_hours=span.hours if isinstance(span, ShortLeaveSpan) else None,
        short_leave_window={"start_time": span.start_time, "end_time": span.end_time}
        if isinstance(span, ShortLeaveSpan)
        else None,
        half_day_session=span.session.value if isinstance(span, HalfDaySpan) else None,
        leave_reason=payload.leave_reason,
        applicant_signed_at=now_utc(),
        tasks_during_absence=tasks,
        backup_staff_name=backup_name,
        team_lead_assignee=assigned_lead,
        team_lead=review,
        attachments=[str(a) for a in payload.attachments],
        status=LeaveStatus.PENDING.value,
        status_history=[
            _history_entry(
                LeaveStatus.PENDING, _clean(payload.status_remark) or _DEFAULT_CREATION_REMARK, auth.user_id
            )
        ],
        created_by=auth.user_id,
    )
    if payload.hr_section is not None and auth.is_admin:
        leave.hr_section = merge_hr_section(leave.hr_section, payload.hr_section)

    session.add(leave)
    await _persist(session, leave, auth, AuditAction.CREATE, before=None)
    logger.info("Leave %s filed for user=%s by=%s", leave.id, leave.user_id, auth.user_id)

    # 10. Notify the team lead; never fails the request.
    if assigned_lead is not None:
        await notify_quietly(
            notifier,
            assigned_lead,
            LEAVE_CREATED_EVENT,
            {
                "leave_id": str(leave.id),
                "employee_name": snapshot.full_name,
                "leave_type": leave.leave_type,
                "leave_category": leave.leave_category,
                "from_date": leave.from_date.isoformat(),
                "to_date": leave.to_date.isoformat(),
                "submitted_at": _iso(leave.created_at),
                "team_lead_status": leave.team_lead.get("status", TeamLeadReviewStatus.PENDING.value),
                "team_lead_assignee": str(assigned_lead),
            },
        )

    return _build_leave_response(leave)


async def list_leaves(
    session: AsyncSession,
    auth: AuthContext,
    directory: UserDirectory,
    *,
    status_filter: str | None = None,
    user_id: uuid.UUID | None = None,
    scope: str | None = None,
    team_lead_status: str | None = None,
) -> LeaveListResponse:
    """List leaves visible to the caller, newest first, each with its year's allowance."""
    filters = []

    if status_filter:
        if status_filter not in LeaveStatus.__members__.values():
            raise ValidationFailed("Invalid status value")
        filters.append(col(LeaveRequest.status) == status_filter)

    if team_lead_status:
        if team_lead_status not in TeamLeadReviewStatus.__members__.values():
            raise ValidationFailed("Invalid team lead status value")
        filters.append(col(LeaveRequest.team_lead)["status"].as_string() == team_lead_status)

    if scope == "team_lead":
        actor = await directory.get_user(auth.user_id)
        if actor is None or not actor.is_team_lead:
            raise Forbidden()
        filters.append(col(LeaveRequest.team_lead_assignee) == auth.user_id)
    elif auth.is_employee:
        filters.append(col(LeaveRequest.user_id) == auth.user_id)
    elif user_id is not None:
        filters.append(col(LeaveRequest.user_id) == user_id)

    result = await session.execute(select(LeaveRequest).where(*filters).order_by(col(LeaveRequest.created_at).desc()))
    leaves = list(result.scalars().all())

    cache = AllowanceCache()
    items = []
    for leave in leaves:
        allowance = await get_annual_allowance(session, leave.user_id, leave.from_date, cache)
        items.append(_build_leave_response(leave, allowance))
    return LeaveListResponse(items=items, total=len(items))


async def get_leave(
    session: AsyncSession,
    auth: AuthContext,
    directory: UserDirectory,
    leave_id: uuid.UUID,
) -> LeaveResponse:
    """Fetch one leave. Employees see their own and those assigned to them as team lead."""
    leave = await _get_leave_or_404(session, leave_id)

    if auth.is_employee and leave.user_id != auth.user_id:
        actor = await directory.get_user(auth.user_id)
        is_assigned = actor is not None and actor.is_team_lead and leave.team_lead_assignee == auth.user_id
        if not is_assigned:
            raise Forbidden()

    allowance = await get_annual_allowance(session, leave.user_id, leave.from_date, AllowanceCache())
    return _build_leave_response(leave, allowance)


async def update_leave_status(
    session: AsyncSession,
    auth: AuthContext,
    leave_id: uuid.UUID,
    payload: StatusUpdatePayload,
) -> LeaveResponse:
    """Apply an HR status decision, enforcing the annual cap on acceptance.

    Usage is re-derived from the ledger on every call with this leave left
    out, so repeating a decision never counts the same leave twice. An
    override's ``used`` acts as the baseline but the ledger total is a floor.
    On a cap breach nothing is written.
    """
    if not payload.status or payload.status not in LeaveStatus.__members__.values():
        raise ValidationFailed("Invalid status")
    new_status = LeaveStatus(payload.status)

    leave = await _get_leave_or_404(session, leave_id)
    check_expected_version(leave, payload.expected_version)

    year = leave.from_date.year
    this_leave_days = charged_days(leave.duration_days, leave.duration_hours)
    base_usage = await compute_yearly_usage(session, leave.user_id, year, exclude_ids=[leave.id])
    override = await get_override(session, leave.user_id, year, for_update=True)

    allowed = override.allowed if override is not None else default_allowed()
    if override is not None:
        # A stored ``used`` already includes this leave once it was accepted.
        already_counted = this_leave_days if leave.status == LeaveStatus.ACCEPTED.value else 0
        baseline_used = max(override.used - already_counted, 0)
    else:
        baseline_used = base_usage
    effective_used = max(baseline_used, base_usage)

    if new_status is LeaveStatus.ACCEPTED:
        resulting_used = effective_used + this_leave_days
        if resulting_used > allowed:
            raise AllowanceExceeded(max(allowed - effective_used, 0))
    else:
        resulting_used = effective_used
    resulting_remaining = max(allowed - resulting_used, 0)

    before = model_to_audit_dict(leave)
    await claim_next_version(session, leave)

    leave.hr_section = {
        **default_hr_section(),
        **(leave.hr_section or {}),
        "annual_allowance": {"allowed": allowed, "used": resulting_used, "remaining": resulting_remaining},
    }

    if override is not None or new_status is LeaveStatus.ACCEPTED:
        await save_override(
            session,
            override,
            user_id=leave.user_id,
            year=year,
            allowed=allowed,
            used=resulting_used,
            remaining=resulting_remaining,
            actor_id=auth.user_id,
        )

    leave.status = new_status.value
    leave.status_history = [*leave.status_history, _history_entry(new_status, _clean(payload.remark), auth.user_id)]
    leave.updated_by = auth.user_id
    leave.reviewed_by = auth.user_id
    leave.updated_at = now_utc()

    await _persist(session, leave, auth, AuditAction.STATUS_CHANGE, before)
    logger.info("Leave %s status -> %s by=%s", leave.id, new_status.value, auth.user_id)
    return _build_leave_response(leave)


async def update_leave(
    session: AsyncSession,
    auth: AuthContext,
    directory: UserDirectory,
    leave_id: uuid.UUID,
    payload: UpdateLeavePayload,
) -> LeaveResponse:
    """Admin edit of form fields, team-lead assignment and the HR section."""
    leave = await _get_leave_or_404(session, leave_id)
    check_expected_version(leave, payload.expected_version)
    provided = payload.model_fields_set

    new_assignee = leave.team_lead_assignee
    if "team_lead_assignee" in provided:
        if payload.team_lead_assignee:
            new_assignee = await _resolve_team_lead(
                directory, payload.team_lead_assignee, "Invalid team lead identifier", "Team lead not available"
            )
        else:
            new_assignee = None

    review = {**default_team_lead_review(), **(leave.team_lead or {})}
    if payload.team_lead is not None:
        lead_fields = payload.team_lead.model_fields_set
        if payload.team_lead.remarks is not None:
            review["remarks"] = _clean(payload.team_lead.remarks)
        if payload.team_lead.status is not None:
            status = _parse_review_status(payload.team_lead.status, "Invalid team lead status")
            _apply_review_status(review, status, auth.user_id)
        if "reviewed_at" in lead_fields:
            review["reviewed_at"] = _iso(payload.team_lead.reviewed_at)
        if payload.team_lead.reviewer is not None:
            try:
                review["reviewer"] = str(uuid.UUID(payload.team_lead.reviewer))
            except ValueError:
                pass

    before = model_to_audit_dict(leave)
    await claim_next_version(session, leave)

    if payload.employer_name is not None:
        leave.employer_name = _clean(payload.employer_name)
    if payload.designation is not None:
        leave.designation = _clean(payload.designation)
    if payload.contact_number is not None:
        leave.contact_number = _clean(payload.contact_number)
    if payload.tasks_during_absence is not None:
        leave.tasks_during_absence = _clean(payload.tasks_during_absence)
    if "applicant_signed_at" in provided:
        leave.applicant_signed_at = payload.applicant_signed_at
    if payload.backup_staff is not None and payload.backup_staff.name is not None:
        leave.backup_staff_name = _clean(payload.backup_staff.name)
    if payload.attachments is not None:
        leave.attachments = [str(a) for a in payload.attachments]
    if payload.hr_section is not None:
        leave.hr_section = merge_hr_section(leave.hr_section, payload.hr_section)
    leave.team_lead_assignee = new_assignee
    leave.team_lead = review
    leave.updated_by = auth.user_id
    leave.updated_at = now_utc()

    await _persist(session, leave, auth, AuditAction.UPDATE, before)
    return _build_leave_response(leave)


async def update_leave_team_lead(
    session: AsyncSession,
    auth: AuthContext,
    directory: UserDirectory,
    leave_id: uuid.UUID,
    payload: TeamLeadUpdatePayload,
) -> LeaveResponse:
    """Team-lead self-service: hand-over fields and the lead's own review."""
    leave = await _get_leave_or_404(session, leave_id)

    actor = await directory.get_user(auth.user_id)
    if actor is None or not actor.is_team_lead:
        raise Forbidden()
    if leave.team_lead_assignee != auth.user_id:
        raise Forbidden("You are not assigned to this leave")
    check_expected_version(leave, payload.expected_version)

    review = {**default_team_lead_review(), **(leave.team_lead or {})}
    if payload.team_lead is not None:
        if payload.team_lead.remarks is not None:
            review["remarks"] = _clean(payload.team_lead.remarks)
        if payload.team_lead.status is not None:
            status = _parse_review_status(payload.team_lead.status, "Invalid review status")
            _apply_review_status(review, status, auth.user_id)

    before = model_to_audit_dict(leave)
    await claim_next_version(session, leave)

    if payload.tasks_during_absence is not None:
        leave.tasks_during_absence = _clean(payload.tasks_during_absence)
    if payload.backup_staff is not None and payload.backup_staff.name is not None:
        leave.backup_staff_name = _clean(payload.backup_staff.name)
    leave.team_lead = review
    leave.updated_by = auth.user_id
    leave.updated_at = now_utc()

    await _persist(session, leave, auth, AuditAction.TEAM_LEAD_REVIEW, before)
    return _build_leave_response(leave)
