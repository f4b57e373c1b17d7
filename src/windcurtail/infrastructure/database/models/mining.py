# Copyright (c)
# SPDX-License-Identifier: MIT
"""Mining calculation ORM model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal

from sqlalchemy import Date, DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from windcurtail.infrastructure.database.models.base import Base


class MiningCalculationModel(Base):
    """Bitcoin one device model could have mined with one curtailment fact."""

    __tablename__ = "mining_calculations"
    __table_args__ = (Index("ix_mining_calculations_date", "settlement_date"),)

    settlement_date: Mapped[date] = mapped_column(Date, primary_key=True)
    settlement_period: Mapped[int] = mapped_column(Integer, primary_key=True)
    unit_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    device_model: Mapped[str] = mapped_column(String(32), primary_key=True)
    mined_units: Mapped[Decimal] = mapped_column(Numeric(20, 8), nullable=False)
    difficulty: Mapped[Decimal] = mapped_column(Numeric(30, 2), nullable=False)
    calculated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
