from __future__ import annotations

import enum


class Role(enum.StrEnum):
    """Roles carried by the authenticated user."""

    SUPERADMIN = "superadmin"
    ADMIN = "admin"
    HR = "hr"
    EMPLOYEE = "employee"


ADMIN_ROLES = frozenset({Role.SUPERADMIN, Role.ADMIN, Role.HR})


class LeaveType(enum.StrEnum):
    """Shape of a leave: multi-day, half a day or a short absence."""

    FULL = "full"
    HALF = "half"
    SHORT = "short"


class LeaveCategory(enum.StrEnum):
    CASUAL = "casual"
    MEDICAL = "medical"
    ANNUAL = "annual"
    SICK = "sick"
    UNPAID = "unpaid"
    OTHER = "other"


class LeaveStatus(enum.StrEnum):
    """HR decision state of a leave request."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    ON_HOLD = "on_hold"


class TeamLeadReviewStatus(enum.StrEnum):
    """Informational review state set by the assigned team lead."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class HalfDaySession(enum.StrEnum):
    FIRST_HALF = "first_half"
    SECOND_HALF = "second_half"


class EmploymentStatus(enum.StrEnum):
    INTERN = "intern"
    APPRENTICE = "apprentice"
    PERMANENT = "permanent"
    PROBATION = "probation"
    CONTRACT = "contract"


class HrDecision(enum.StrEnum):
    """HR decision recorded on the paper form."""

    PAID = "paid"
    UNPAID = "unpaid"
    PARTIALLY_PAID = "partially_paid"
    NOT_APPLICABLE = "not_applicable"


class AuditEntityType(enum.StrEnum):
    """Entity type recorded in the audit log."""

    LEAVE = "LEAVE"
    ALLOWANCE = "ALLOWANCE"


class AuditAction(enum.StrEnum):
    """Action recorded in the audit log."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    STATUS_CHANGE = "STATUS_CHANGE"
    TEAM_LEAD_REVIEW = "TEAM_LEAD_REVIEW"
    OVERRIDE = "OVERRIDE"
