# Copyright (c)
# SPDX-License-Identifier: MIT
"""
Pipeline Domain Exceptions

Purpose:
    Error taxonomy shared by ingestion, calculation and reconciliation.

    * TransientNetworkError: timeouts, resets, HTTP 429/5xx. Retryable.
    * DataIntegrityError: missing unit mapping, malformed upstream payload.
      Fatal for the affected unit of work only.
    * DatabaseError: deadlock, lost connection. Retryable with backoff.
    * ConfigurationError: unknown device model, unusable difficulty.
      Fatal and surfaced immediately.

Layer: domain/exceptions
"""
from __future__ import annotations

from .base import DomainError


class TransientNetworkError(DomainError):
    """Upstream dependency timed out, reset the connection or returned 5xx."""

    code = "TRANSIENT_NETWORK"
    retryable = True


class RateLimitedError(TransientNetworkError):
    """Upstream answered HTTP 429."""

    code = "RATE_LIMITED"


class DataIntegrityError(DomainError):
    """Input data is missing or malformed (mapping file, upstream payload)."""

    code = "DATA_INTEGRITY"


class DatabaseError(DomainError):
    """Persistence failure that is expected to clear on retry."""

    code = "DATABASE"
    retryable = True


class ConfigurationError(DomainError):
    """Static configuration cannot support the requested computation."""

    code = "CONFIGURATION"
