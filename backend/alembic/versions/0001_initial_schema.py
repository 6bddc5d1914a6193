"""0001 - Initial schema: leave requests, allowance overrides and the audit log.

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-17 09:00:00.000000+00:00
"""

from alembic import op
import sqlalchemy as sa

revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "leave_request",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("employee_snapshot", sa.JSON(), nullable=False),
        sa.Column("employer_name", sa.String(), nullable=False),
        sa.Column("designation", sa.String(), nullable=False),
        sa.Column("contact_number", sa.String(), nullable=False),
        sa.Column("leave_type", sa.String(length=20), nullable=False),
        sa.Column("leave_category", sa.String(length=20), nullable=False),
        sa.Column("from_date", sa.Date(), nullable=False),
        sa.Column("to_date", sa.Date(), nullable=False),
        sa.Column("duration_days", sa.Float(), nullable=True),
        sa.Column("duration_hours", sa.Float(), nullable=True),
        sa.Column("short_leave_window", sa.JSON(), nullable=True),
        sa.Column("half_day_session", sa.String(length=20), nullable=True),
        sa.Column("leave_reason", sa.String(), nullable=False),
        sa.Column("applicant_signed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tasks_during_absence", sa.String(), nullable=False),
        sa.Column("backup_staff_name", sa.String(), nullable=False),
        sa.Column("team_lead_assignee", sa.Uuid(), nullable=True),
        sa.Column("team_lead", sa.JSON(), nullable=False),
        sa.Column("hr_section", sa.JSON(), nullable=False),
        sa.Column("attachments", sa.JSON(), nullable=False),
        sa.Column("status", sa.String(length=20), server_default="pending", nullable=False),
        sa.Column("status_history", sa.JSON(), nullable=False),
        sa.Column("created_by", sa.Uuid(), nullable=False),
        sa.Column("updated_by", sa.Uuid(), nullable=True),
        sa.Column("reviewed_by", sa.Uuid(), nullable=True),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_leave_request_user_id", "leave_request", ["user_id"])
    op.create_index("ix_leave_request_status", "leave_request", ["status"])
    op.create_index("ix_leave_request_team_lead_assignee", "leave_request", ["team_lead_assignee"])
    op.create_index("ix_leave_user_dates", "leave_request", ["user_id", "from_date", "to_date"])

    op.create_table(
        "leave_allowance",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("allowed", sa.Float(), nullable=False),
        sa.Column("used", sa.Float(), nullable=False),
        sa.Column("remaining", sa.Float(), nullable=False),
        sa.Column("updated_by", sa.Uuid(), nullable=False),
        sa.Column("version", sa.Integer(), server_default="1", nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "year", name="uq_allowance_user_year"),
        sa.CheckConstraint("year >= 1970", name="ck_allowance_year"),
        sa.CheckConstraint("allowed >= 0", name="ck_allowance_allowed"),
        sa.CheckConstraint("used >= 0", name="ck_allowance_used"),
        sa.CheckConstraint("remaining >= 0", name="ck_allowance_remaining"),
    )
    op.create_index("ix_leave_allowance_user_id", "leave_allowance", ["user_id"])
    op.create_index("ix_leave_allowance_year", "leave_allowance", ["year"])

    op.create_table(
        "audit_log",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("actor_id", sa.Uuid(), nullable=False),
        sa.Column("entity_type", sa.String(length=50), nullable=False),
        sa.Column("entity_id", sa.Uuid(), nullable=False),
        sa.Column("action", sa.String(length=50), nullable=False),
        sa.Column("before_json", sa.JSON(), nullable=True),
        sa.Column("after_json", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_audit_entity", "audit_log", ["entity_type", "entity_id"])
    op.create_index("ix_audit_log_created_at", "audit_log", ["created_at"])


def downgrade() -> None:
    op.drop_table("audit_log")
    op.drop_table("leave_allowance")
    op.drop_table("leave_request")
