# Copyright (c)
# SPDX-License-Identifier: MIT
"""Curtailment ORM models.

Volumes are MWh in NUMERIC(20,8); prices GBP/MWh and payments GBP in
NUMERIC(20,8). The natural key is the primary key.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Boolean, CheckConstraint, Date, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from windcurtail.infrastructure.database.models.base import Base, UpdatedAtMixin


class CurtailmentRecordModel(UpdatedAtMixin, Base):
    """One unit's curtailment in one settlement period."""

    __tablename__ = "curtailment_records"
    __table_args__ = (
        CheckConstraint("settlement_period BETWEEN 1 AND 48", name="period_range"),
        CheckConstraint("volume >= 0", name="volume_non_negative"),
        Index("ix_curtailment_records_date", "settlement_date"),
    )

    settlement_date: Mapped[date] = mapped_column(Date, primary_key=True)
    settlement_period: Mapped[int] = mapped_column(Integer, primary_key=True)
    unit_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    volume: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    payment: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    original_price: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    final_price: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    so_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    cadl_flag: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)


class UnitOwnershipModel(UpdatedAtMixin, Base):
    """Lookup of unit id to lead party, joined at query time."""

    __tablename__ = "unit_ownership"

    unit_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    lead_party_name: Mapped[str] = mapped_column(String(255), nullable=False)
