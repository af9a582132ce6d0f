"""Employees and shift scheduling schema.

Adds tenant-scoped tables with UUID PKs, timestamps, indexes, and RLS policies:
- Employees: positions, employee_positions
- Scheduling: schedules, schedule_shifts, employee_availability, shift_swap_requests
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "5e8f3a1b2c47"
down_revision: Union[str, None] = "1c4d2e7a9b10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


TENANT_DEFAULT = sa.text("current_setting('app.tenant_id', true)::uuid")
UUID_DEFAULT = sa.text("uuid_generate_v4()")
NOW = sa.text("now()")
JSONB_EMPTY = sa.text("'{}'::jsonb")

TABLES = [
    "positions",
    "employee_positions",
    "schedules",
    "schedule_shifts",
    "employee_availability",
    "shift_swap_requests",
]


def _enable_rls_with_policy(table: str) -> None:
    op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;")
    op.execute(
        f"""
        CREATE POLICY {table}_tenant_isolation ON {table}
        USING (tenant_id = current_setting('app.tenant_id', true)::uuid)
        WITH CHECK (tenant_id = current_setting('app.tenant_id', true)::uuid);
        """
    )


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("tenant_id", sa.UUID(), nullable=False, server_default=TENANT_DEFAULT, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    ]


def upgrade() -> None:
    # EMPLOYEES
    op.create_table(
        "positions",
        *_base_columns(),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("department", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("tenant_id", "title", name="uq_positions_tenant_title"),
    )

    op.create_table(
        "employee_positions",
        *_base_columns(),
        sa.Column("user_id", sa.UUID(), nullable=False, index=True),
        sa.Column("position_id", sa.UUID(), nullable=False),
        sa.Column("active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["position_id"], ["positions.id"], ondelete="CASCADE"),
    )

    # SCHEDULING
    op.create_table(
        "schedules",
        *_base_columns(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("timezone", sa.Text(), server_default=sa.text("'America/New_York'"), nullable=False),
        sa.Column("status", sa.Text(), server_default=sa.text("'DRAFT'"), nullable=False),
        sa.Column("published_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("published_by_id", sa.UUID(), nullable=True),
        sa.Column("created_by_id", sa.UUID(), nullable=True),
        sa.Column("metadata", postgresql.JSONB(), server_default=JSONB_EMPTY, nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["published_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.CheckConstraint("end_date >= start_date", name="schedule_dates"),
        sa.CheckConstraint("status IN ('DRAFT', 'PUBLISHED', 'ARCHIVED')", name="schedule_status"),
    )

    op.create_table(
        "schedule_shifts",
        *_base_columns(),
        sa.Column("schedule_id", sa.UUID(), nullable=False, index=True),
        sa.Column("employee_position_id", sa.UUID(), nullable=True),
        sa.Column("position_id", sa.UUID(), nullable=True),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("start_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column("break_minutes", sa.Integer(), nullable=True),
        sa.Column("station_name", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
        sa.Column("is_open_shift", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("status", sa.Text(), server_default=sa.text("'SCHEDULED'"), nullable=False),
        sa.ForeignKeyConstraint(["tenant_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["schedule_id"], ["schedules.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_position_id"], ["employee_positions.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["position_id"], ["positions.id"], ondelete="SET NULL"),
        sa.CheckConstraint("end_time > start_time", name="shift_times"),
        sa.CheckConstraint(
            "status IN ('SCHEDULED', 'OPEN', 'FILLED', 'CANCELLED', 'COMPLETED')", name="shift_status"
        ),
        sa.Index("ix_schedule_shifts_tenant_start_time", "tenant_id", "start_time"),
        sa.Index("ix_schedule_shifts_employee_start_time", "employee_position_id", "start_time"),
    )
    # Open shifts are scanned constantly by the employee feed.
    op.create_index(
        "ix_schedule_shifts_open",
        "schedule_shifts",
        ["tenant_id", "start_time"],
        postgresql_where=sa.text("is_open_shift AND status = 'OPEN'"),
    )

    op.create_table(
        "employee_availability",
        *_base_columns(),
        sa.Column("employee_position_id", sa.UUID(), nullable=False, index=True),
        sa.Column("day_of_week", sa.Text(), nullable=False),
        sa.Column("start_time", sa.Text(), nullable=False),
        sa.Column("end_time", sa.Text(), nullable=False),
        sa.Column("availability_type", sa.Text(), server_default=sa.text("'AVAILABLE'"), nullable=False),
        sa.Column("effective_from", sa.Date(), nullable=False),
        sa.Column("effective_to", sa.Date(), nullable=True),
        sa.Column("recurring", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["employee_position_id"], ["employee_positions.id"], ondelete="CASCADE"),
    )

    op.create_table(
        "shift_swap_requests",
        *_base_columns(),
        sa.Column("original_shift_id", sa.UUID(), nullable=False, index=True),
        sa.Column("requested_by_id", sa.UUID(), nullable=False),
        sa.Column("requested_to_id", sa.UUID(), nullable=True),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("status", sa.Text(), server_default=sa.text("'PENDING'"), nullable=False),
        sa.Column("approved_by_id", sa.UUID(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["original_shift_id"], ["schedule_shifts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requested_by_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["requested_to_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"], ondelete="SET NULL"),
    )

    for tbl in TABLES:
        _enable_rls_with_policy(tbl)


def downgrade() -> None:
    for tbl in TABLES:
        op.execute(f"DROP POLICY IF EXISTS {tbl}_tenant_isolation ON {tbl};")
        op.execute(f"ALTER TABLE {tbl} DISABLE ROW LEVEL SECURITY;")

    op.drop_table("shift_swap_requests")
    op.drop_table("employee_availability")
    op.drop_index("ix_schedule_shifts_open", table_name="schedule_shifts")
    op.drop_table("schedule_shifts")
    op.drop_table("schedules")
    op.drop_table("employee_positions")
    op.drop_table("positions")
