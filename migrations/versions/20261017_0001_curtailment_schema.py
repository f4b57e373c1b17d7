"""Curtailment, mining calculation and summary tables.

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17

This migration:
  * Creates curtailment_records (natural key date/period/unit) and unit_ownership.
  * Creates mining_calculations (natural key date/period/unit/device_model).
  * Creates daily/monthly/yearly curtailment summaries and their per-model
    mining counterparts.
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261017_0001"
down_revision: str | None = None
branch_labels: Sequence[str] | None = None
depends_on: Sequence[str] | None = None


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    """Apply the migration."""
    op.create_table(
        "curtailment_records",
        sa.Column("settlement_date", sa.Date, nullable=False),
        sa.Column("settlement_period", sa.Integer, nullable=False),
        sa.Column("unit_id", sa.String(64), nullable=False),
        sa.Column("volume", sa.Numeric(20, 8), nullable=False),
        sa.Column("payment", sa.Numeric(20, 8), nullable=False),
        sa.Column("original_price", sa.Numeric(20, 8), nullable=False),
        sa.Column("final_price", sa.Numeric(20, 8), nullable=False),
        sa.Column("so_flag", sa.Boolean, nullable=False),
        sa.Column("cadl_flag", sa.Boolean, nullable=False),
        _updated_at(),
        sa.PrimaryKeyConstraint(
            "settlement_date", "settlement_period", "unit_id", name="pk_curtailment_records"
        ),
        sa.CheckConstraint(
            "settlement_period BETWEEN 1 AND 48", name="ck_curtailment_records_period_range"
        ),
        sa.CheckConstraint("volume >= 0", name="ck_curtailment_records_volume_non_negative"),
    )
    op.create_index("ix_curtailment_records_date", "curtailment_records", ["settlement_date"])

    op.create_table(
        "unit_ownership",
        sa.Column("unit_id", sa.String(64), nullable=False),
        sa.Column("lead_party_name", sa.String(255), nullable=False),
        _updated_at(),
        sa.PrimaryKeyConstraint("unit_id", name="pk_unit_ownership"),
    )

    op.create_table(
        "mining_calculations",
        sa.Column("settlement_date", sa.Date, nullable=False),
        sa.Column("settlement_period", sa.Integer, nullable=False),
        sa.Column("unit_id", sa.String(64), nullable=False),
        sa.Column("device_model", sa.String(32), nullable=False),
        sa.Column("mined_units", sa.Numeric(20, 8), nullable=False),
        sa.Column("difficulty", sa.Numeric(30, 2), nullable=False),
        sa.Column(
            "calculated_at",
            sa.TIMESTAMP(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint(
            "settlement_date",
            "settlement_period",
            "unit_id",
            "device_model",
            name="pk_mining_calculations",
        ),
    )
    op.create_index("ix_mining_calculations_date", "mining_calculations", ["settlement_date"])

    for table, key, key_type in (
        ("daily_summaries", "summary_date", sa.Date()),
        ("monthly_summaries", "year_month", sa.String(7)),
        ("yearly_summaries", "year", sa.String(4)),
    ):
        op.create_table(
            table,
            sa.Column(key, key_type, nullable=False),
            sa.Column("total_curtailed_energy", sa.Numeric(20, 8), nullable=False),
            sa.Column("total_payment", sa.Numeric(20, 8), nullable=False),
            _updated_at(),
            sa.PrimaryKeyConstraint(key, name=f"pk_{table}"),
        )

    for table, key, key_type in (
        ("mining_daily_summaries", "summary_date", sa.Date()),
        ("mining_monthly_summaries", "year_month", sa.String(7)),
        ("mining_yearly_summaries", "year", sa.String(4)),
    ):
        op.create_table(
            table,
            sa.Column(key, key_type, nullable=False),
            sa.Column("device_model", sa.String(32), nullable=False),
            sa.Column("mined_units", sa.Numeric(20, 8), nullable=False),
            _updated_at(),
            sa.PrimaryKeyConstraint(key, "device_model", name=f"pk_{table}"),
        )


def downgrade() -> None:
    """Revert the migration."""
    for table in (
        "mining_yearly_summaries",
        "mining_monthly_summaries",
        "mining_daily_summaries",
        "yearly_summaries",
        "monthly_summaries",
        "daily_summaries",
    ):
        op.drop_table(table)
    op.drop_index("ix_mining_calculations_date", table_name="mining_calculations")
    op.drop_table("mining_calculations")
    op.drop_table("unit_ownership")
    op.drop_index("ix_curtailment_records_date", table_name="curtailment_records")
    op.drop_table("curtailment_records")
