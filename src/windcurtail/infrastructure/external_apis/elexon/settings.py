# Copyright (c)
# SPDX-License-Identifier: MIT
"""Pydantic settings for the Elexon BMRS transport client."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ElexonSettings(BaseSettings):
    """Configuration for the Elexon settlement-stack client.

    Environment variables (with ``model_config.env_prefix``):

    * ``ELEXON_BASE_URL``
    * ``ELEXON_TIMEOUT_S``
    * ``ELEXON_MAX_RETRIES``
    * ``ELEXON_BACKOFF_BASE_S`` / ``ELEXON_BACKOFF_CAP_S``
    * ``ELEXON_RATE_LIMIT_PER_WINDOW`` / ``ELEXON_RATE_LIMIT_WINDOW_S``
    * ``ELEXON_RATE_LIMITED_COOLDOWN_S``
    * ``ELEXON_MAX_IN_FLIGHT``
    """

    base_url: str = Field(
        "https://data.elexon.co.uk/bmrs/api/v1",
        description="Base URL of the BMRS API.",
    )
    timeout_s: float = Field(
        30.0,
        gt=0,
        description="Per-request timeout in seconds.",
    )
    max_retries: int = Field(
        3,
        ge=0,
        le=20,
        description="Retries per request after the first attempt.",
    )
    backoff_base_s: float = Field(
        1.0,
        ge=0,
        description="Base of the exponential backoff between retries.",
    )
    backoff_cap_s: float = Field(
        30.0,
        ge=0,
        description="Upper bound of a single backoff sleep.",
    )
    rate_limit_per_window: int = Field(
        4500,
        ge=1,
        description="Requests admitted per sliding window (upstream allows 5000/min).",
    )
    rate_limit_window_s: float = Field(
        60.0,
        gt=0,
        description="Sliding window length in seconds.",
    )
    rate_limited_cooldown_s: float = Field(
        60.0,
        ge=0,
        description="Sleep after an HTTP 429 before retrying.",
    )
    max_in_flight: int = Field(
        10,
        ge=1,
        le=200,
        description="Concurrent outbound requests.",
    )

    model_config: SettingsConfigDict = SettingsConfigDict(
        env_prefix="ELEXON_",
        env_file=".env",
        extra="ignore",
    )
