# Copyright (c)
# SPDX-License-Identifier: MIT
"""Summary ORM models.

Curtailment summaries carry energy (MWh) and payment (GBP) totals; mining
summaries carry per-device-model mined totals. Each level is rebuilt from the
next-finer one.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from windcurtail.infrastructure.database.models.base import Base, UpdatedAtMixin


class DailySummaryModel(UpdatedAtMixin, Base):
    """Daily curtailment totals."""

    __tablename__ = "daily_summaries"

    summary_date: Mapped[date] = mapped_column(Date, primary_key=True)
    total_curtailed_energy: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    total_payment: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)


class MonthlySummaryModel(UpdatedAtMixin, Base):
    """Monthly curtailment totals keyed by ``YYYY-MM``."""

    __tablename__ = "monthly_summaries"

    year_month: Mapped[str] = mapped_column(String(7), primary_key=True)
    total_curtailed_energy: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    total_payment: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)


class YearlySummaryModel(UpdatedAtMixin, Base):
    """Yearly curtailment totals keyed by ``YYYY``."""

    __tablename__ = "yearly_summaries"

    year: Mapped[str] = mapped_column(String(4), primary_key=True)
    total_curtailed_energy: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    total_payment: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)


class MiningDailySummaryModel(UpdatedAtMixin, Base):
    """Daily mined totals per device model."""

    __tablename__ = "mining_daily_summaries"

    summary_date: Mapped[date] = mapped_column(Date, primary_key=True)
    device_model: Mapped[str] = mapped_column(String(32), primary_key=True)
    mined_units: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)


class MiningMonthlySummaryModel(UpdatedAtMixin, Base):
    """Monthly mined totals per device model."""

    __tablename__ = "mining_monthly_summaries"

    year_month: Mapped[str] = mapped_column(String(7), primary_key=True)
    device_model: Mapped[str] = mapped_column(String(32), primary_key=True)
    mined_units: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)


class MiningYearlySummaryModel(UpdatedAtMixin, Base):
    """Yearly mined totals per device model."""

    __tablename__ = "mining_yearly_summaries"

    year: Mapped[str] = mapped_column(String(4), primary_key=True)
    device_model: Mapped[str] = mapped_column(String(32), primary_key=True)
    mined_units: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
