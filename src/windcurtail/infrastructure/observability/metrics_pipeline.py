# src/windcurtail/infrastructure/observability/metrics_pipeline.py
# Copyright (c)
# SPDX-License-Identifier: MIT
"""Pipeline observability helpers and Prometheus metrics.

Exports
-------
Collectors (names are stable):

* ``windcurtail_upstream_latency_seconds`` (Histogram)
* ``windcurtail_upstream_requests_total`` (Counter)
* ``windcurtail_upstream_retries_total`` (Counter)
* ``windcurtail_rate_limit_wait_seconds`` (Histogram)
* ``windcurtail_ingested_records_total`` (Counter)
* ``windcurtail_ingest_failed_periods_total`` (Counter)
* ``windcurtail_calculations_written_total`` (Counter)
* ``windcurtail_reconcile_dates_total`` (Counter)

Design
------
Collectors are created against the current default registry and reused when
a collector of the same name already exists, so module re-imports and tests
that swap ``prom.REGISTRY`` never raise ``Duplicated timeseries``.
"""

from __future__ import annotations

from collections.abc import Sequence

import prometheus_client as prom
from prometheus_client import Counter, Histogram
from prometheus_client.registry import CollectorRegistry


def _get_or_create_histogram(
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
    buckets: Sequence[float] | None = None,
) -> Histogram:
    """Return a histogram bound to the current default registry (idempotent)."""
    registry: CollectorRegistry = prom.REGISTRY
    mapping = getattr(registry, "_names_to_collectors", {})
    existing = mapping.get(name)
    if isinstance(existing, Histogram):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    kwargs = {"buckets": tuple(buckets)} if buckets is not None else {}
    try:
        return Histogram(name, doc, labels, registry=registry, **kwargs)
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            again = getattr(registry, "_names_to_collectors", {}).get(name)
            if isinstance(again, Histogram):
                return again
        raise


def _get_or_create_counter(
    name: str,
    doc: str,
    labelnames: Sequence[str] | None = None,
) -> Counter:
    """Return a counter bound to the current default registry (idempotent)."""
    registry: CollectorRegistry = prom.REGISTRY
    mapping = getattr(registry, "_names_to_collectors", {})
    existing = mapping.get(name)
    if isinstance(existing, Counter):
        return existing

    labels = tuple(labelnames) if labelnames is not None else ()
    try:
        return Counter(name, doc, labels, registry=registry)
    except ValueError as exc:
        if "Duplicated timeseries" in str(exc):
            again = getattr(registry, "_names_to_collectors", {}).get(name)
            if isinstance(again, Counter):
                return again
        raise


def get_upstream_latency_seconds() -> Histogram:
    """Latency of settlement-stack requests by side and outcome."""
    return _get_or_create_histogram(
        "windcurtail_upstream_latency_seconds",
        "Latency of upstream settlement-stack requests (seconds).",
        labelnames=("side", "outcome"),
    )


def get_upstream_requests_total() -> Counter:
    """Upstream responses by side and HTTP status."""
    return _get_or_create_counter(
        "windcurtail_upstream_requests_total",
        "Upstream settlement-stack responses by HTTP status.",
        labelnames=("side", "status"),
    )


def get_upstream_retries_total() -> Counter:
    """Retries scheduled against the upstream API by reason."""
    return _get_or_create_counter(
        "windcurtail_upstream_retries_total",
        "Retries scheduled for upstream settlement-stack requests.",
        labelnames=("reason",),
    )


def get_rate_limit_wait_seconds() -> Histogram:
    """Time spent waiting for rate-limiter capacity."""
    return _get_or_create_histogram(
        "windcurtail_rate_limit_wait_seconds",
        "Seconds spent waiting for sliding-window capacity.",
        buckets=(0.0, 0.1, 0.5, 1.0, 5.0, 15.0, 30.0, 60.0),
    )


def get_ingested_records_total() -> Counter:
    """Curtailment records written."""
    return _get_or_create_counter(
        "windcurtail_ingested_records_total",
        "Curtailment records upserted by ingestion.",
    )


def get_ingest_failed_periods_total() -> Counter:
    """Settlement periods that could not be ingested."""
    return _get_or_create_counter(
        "windcurtail_ingest_failed_periods_total",
        "Settlement periods that failed during ingestion.",
    )


def get_calculations_written_total() -> Counter:
    """Calculation rows written by device model."""
    return _get_or_create_counter(
        "windcurtail_calculations_written_total",
        "Mining calculation rows upserted.",
        labelnames=("device_model",),
    )


def get_reconcile_dates_total() -> Counter:
    """Reconciled dates by outcome."""
    return _get_or_create_counter(
        "windcurtail_reconcile_dates_total",
        "Dates processed by reconciliation, by outcome.",
        labelnames=("outcome",),
    )
