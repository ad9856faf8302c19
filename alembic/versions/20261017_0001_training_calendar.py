"""training calendar schema

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17
"""

from alembic import op
import sqlalchemy as sa


revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "periods",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("color", sa.String(length=16), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_periods_owner_id", "periods", ["owner_id"])

    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("kind", sa.String(length=20), nullable=False),
        sa.Column("zone", sa.String(length=1), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("rolling", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.UniqueConstraint("owner_id", "kind", "zone", name="uq_plan_owner_kind_zone"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_plans_owner_id", "plans", ["owner_id"])

    op.create_table(
        "plan_weeks",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("plan_id", sa.Integer(), sa.ForeignKey("plans.id"), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.UniqueConstraint("plan_id", "week_number", name="uq_plan_week_number"),
        sa.CheckConstraint("week_number >= 1", name="ck_plan_week_number_positive"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_plan_weeks_plan_id", "plan_weeks", ["plan_id"])

    op.create_table(
        "plan_days",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("owner_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("zone", sa.String(length=1), nullable=False),
        sa.Column("day_of_week", sa.Integer(), nullable=False),
        sa.Column("week_number", sa.Integer(), nullable=False),
        sa.Column("week_id", sa.Integer(), sa.ForeignKey("plan_weeks.id"), nullable=True),
        sa.Column("period_id", sa.Integer(), sa.ForeignKey("periods.id"), nullable=False),
        sa.Column("weather", sa.String(length=120), nullable=False, server_default=""),
        sa.Column("feeling_status", sa.String(length=8), nullable=False, server_default="5"),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.UniqueConstraint("owner_id", "date", "zone", name="uq_plan_day_owner_date_zone"),
        sa.CheckConstraint("day_of_week between 1 and 7", name="ck_plan_day_of_week"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_plan_days_owner_id", "plan_days", ["owner_id"])
    op.create_index("ix_plan_days_date", "plan_days", ["date"])
    op.create_index("ix_plan_days_week_id", "plan_days", ["week_id"])


def downgrade() -> None:
    for table in ["plan_days", "plan_weeks", "plans", "periods"]:
        op.drop_table(table)
