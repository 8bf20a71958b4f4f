# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Application settings."""

from __future__ import annotations

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from termreplay.constants import (
    DEFAULT_COLS,
    DEFAULT_POLL_INTERVAL_S,
    DEFAULT_ROWS,
    DEFAULT_TICK_INTERVAL_MS,
    MAX_SPEED_EXPONENT,
    MIN_SPEED_EXPONENT,
)


class Settings(BaseSettings):
    log_level: str = "WARNING"
    log_format: Literal["console", "json"] = "console"
    journalctl_path: str = "journalctl"
    poll_interval_s: float = Field(default=DEFAULT_POLL_INTERVAL_S, gt=0)
    tick_interval_ms: int = Field(default=DEFAULT_TICK_INTERVAL_MS, gt=0)
    speed_exponent: int = Field(default=0, ge=MIN_SPEED_EXPONENT, le=MAX_SPEED_EXPONENT)
    cols: int = Field(default=DEFAULT_COLS, gt=0)
    rows: int = Field(default=DEFAULT_ROWS, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="TERMREPLAY_",
        env_nested_delimiter="__",
        extra="ignore",
    )
