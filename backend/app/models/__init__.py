from sqlmodel import SQLModel

from app.models.allowance import LeaveAllowance
from app.models.audit import AuditLog
from app.models.base import TimestampMixin, UUIDBase, VersionedMixin
from app.models.enums import (
    ADMIN_ROLES,
    AuditAction,
    AuditEntityType,
    EmploymentStatus,
    HalfDaySession,
    HrDecision,
    LeaveCategory,
    LeaveStatus,
    LeaveType,
    Role,
    TeamLeadReviewStatus,
)
from app.models.leave import LeaveRequest

__all__ = [
    "ADMIN_ROLES",
    "AuditAction",
    "AuditEntityType",
    "AuditLog",
    "EmploymentStatus",
    "HalfDaySession",
    "HrDecision",
    "LeaveAllowance",
    "LeaveCategory",
    "LeaveRequest",
    "LeaveStatus",
    "LeaveType",
    "Role",
    "SQLModel",
    "TeamLeadReviewStatus",
    "TimestampMixin",
    "UUIDBase",
    "VersionedMixin",
]
