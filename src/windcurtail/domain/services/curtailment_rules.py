# Copyright (c)
# SPDX-License-Identifier: MIT
"""Curtailment rules (Domain Service).

Synopsis:
    The single place that decides whether an upstream settlement-stack entry
    is a curtailment event, and how much it was paid. Ingestion, the drift
    check and the spot-fix path all call into these functions.

Conventions:
    * A curtailment is an accepted turn-down of an in-scope unit: negative
      volume with the SO flag or the CADL flag set.
    * Volume is stored as an absolute value.
    * ``payment = |volume| * original_price``. The sign follows the submitted
      price, so a negative price (the unit pays to be turned down) yields a
      negative payment.
    * Several entries for the same unit in one period (bid and offer stacks,
      or repeated acceptances) are merged: volumes and payments are summed,
      prices become volume-weighted averages and flags are OR-ed.

Layer:
    domain/services
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from datetime import date
from decimal import Decimal

from windcurtail.domain.entities.curtailment_record import CurtailmentRecord
from windcurtail.domain.entities.settlement import SettlementStackEntry

_PRICE_QUANTUM = Decimal("0.00000001")


def is_curtailment(entry: SettlementStackEntry, valid_ids: Collection[str]) -> bool:
    """Return True when ``entry`` is a curtailment of an in-scope unit."""
    return (
        entry.unit_id in valid_ids
        and entry.volume < 0
        and (entry.so_flag or entry.cadl_flag)
    )


def compute_payment(volume: Decimal, original_price: Decimal) -> Decimal:
    """Return the payment for a curtailed volume at the submitted price."""
    return abs(volume) * original_price


def build_curtailment_records(
    settlement_date: date,
    settlement_period: int,
    entries: Iterable[SettlementStackEntry],
    valid_ids: Collection[str],
) -> list[CurtailmentRecord]:
    """Filter and merge one period's stack entries into curtailment facts.

    Args:
        settlement_date: Date of the period.
        settlement_period: Period number (1..48).
        entries: Raw bid and offer entries for the period.
        valid_ids: In-scope unit identifiers.

    Returns:
        One record per unit, ordered by unit id.
    """
    grouped: dict[str, list[SettlementStackEntry]] = {}
    for entry in entries:
        if is_curtailment(entry, valid_ids):
            grouped.setdefault(entry.unit_id, []).append(entry)

    records: list[CurtailmentRecord] = []
    for unit_id in sorted(grouped):
        group = grouped[unit_id]
        if len(group) == 1:
            only = group[0]
            volume = abs(only.volume)
            payment = compute_payment(only.volume, only.original_price)
            original_price = only.original_price
            final_price = only.final_price
        else:
            volume = sum((abs(e.volume) for e in group), Decimal(0))
            payment = sum((compute_payment(e.volume, e.original_price) for e in group), Decimal(0))
            original_price = (payment / volume).quantize(_PRICE_QUANTUM)
            final_price = (
                sum((abs(e.volume) * e.final_price for e in group), Decimal(0)) / volume
            ).quantize(_PRICE_QUANTUM)

        records.append(
            CurtailmentRecord(
                settlement_date=settlement_date,
                settlement_period=settlement_period,
                unit_id=unit_id,
                volume=volume,
                payment=payment,
                original_price=original_price,
                final_price=final_price,
                so_flag=any(e.so_flag for e in group),
                cadl_flag=any(e.cadl_flag for e in group),
            )
        )
    return records


def totals(records: Iterable[CurtailmentRecord]) -> tuple[Decimal, Decimal]:
    """Return ``(total_volume, total_payment)`` over ``records``."""
    volume = Decimal(0)
    payment = Decimal(0)
    for r in records:
        volume += r.volume
        payment += r.payment
    return volume, payment
