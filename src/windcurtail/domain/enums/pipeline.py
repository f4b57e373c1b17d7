# Copyright (c)
# SPDX-License-Identifier: MIT
"""Pipeline enumerations (Domain Layer)."""

from __future__ import annotations

from enum import StrEnum


class StackSide(StrEnum):
    """Settlement stack side; doubles as the upstream path segment."""

    BID = "bid"
    OFFER = "offer"


class IngestMode(StrEnum):
    """How ingestion treats rows already stored for a date."""

    UPSERT = "upsert"
    FULL_REINGEST = "full_reingest"


class CoverageState(StrEnum):
    """Completeness of a date's derived calculations."""

    COMPLETE = "complete"
    PARTIAL = "partial"
    MISSING = "missing"
    EMPTY = "empty"


class SummaryGranularity(StrEnum):
    """Rollup level of a summary row."""

    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class FailureKind(StrEnum):
    """Classification of an error raised while processing a unit of work."""

    RETRYABLE = "retryable"
    TIMEOUT = "timeout"
    FATAL = "fatal"


class CheckpointStatus(StrEnum):
    """Lifecycle of a reconciliation run."""

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
