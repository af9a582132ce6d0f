"""Business stations.

- stations (tenant-scoped, RLS, unique name per business)
- schedule_shifts.station_id referencing the station a shift is staffed at
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "8d3b6f2e4c19"
down_revision: Union[str, None] = "5e8f3a1b2c47"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


TENANT_DEFAULT = sa.text("current_setting('app.tenant_id', true)::uuid")
UUID_DEFAULT = sa.text("uuid_generate_v4()")
NOW = sa.text("now()")


def upgrade() -> None:
    op.create_table(
        "stations",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("tenant_id", sa.UUID(), nullable=False, server_default=TENANT_DEFAULT, index=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("station_type", sa.Text(), nullable=False),
        sa.Column("job_function", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("color", sa.Text(), nullable=True),
        sa.Column("is_required", sa.Boolean(), server_default=sa.text("false"), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=True),
        sa.Column("is_active", sa.Boolean(), server_default=sa.text("true"), nullable=False),
        sa.Column("default_start_time", sa.Text(), nullable=True),
        sa.Column("default_end_time", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["tenant_id"], ["businesses.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("tenant_id", "name", name="uq_stations_tenant_name"),
    )
    op.execute("ALTER TABLE stations ENABLE ROW LEVEL SECURITY;")
    op.execute(
        """
        CREATE POLICY stations_tenant_isolation ON stations
        USING (tenant_id = current_setting('app.tenant_id', true)::uuid)
        WITH CHECK (tenant_id = current_setting('app.tenant_id', true)::uuid);
        """
    )

    op.add_column("schedule_shifts", sa.Column("station_id", sa.UUID(), nullable=True))
    op.create_foreign_key(
        "fk_schedule_shifts_station_id",
        "schedule_shifts",
        "stations",
        ["station_id"],
        ["id"],
        ondelete="SET NULL",
    )
    op.create_index("ix_schedule_shifts_station_id", "schedule_shifts", ["station_id"])


def downgrade() -> None:
    op.drop_index("ix_schedule_shifts_station_id", table_name="schedule_shifts")
    op.drop_constraint("fk_schedule_shifts_station_id", "schedule_shifts", type_="foreignkey")
    op.drop_column("schedule_shifts", "station_id")

    op.execute("DROP POLICY IF EXISTS stations_tenant_isolation ON stations;")
    op.execute("ALTER TABLE stations DISABLE ROW LEVEL SECURITY;")
    op.drop_table("stations")
