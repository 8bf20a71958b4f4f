# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Display formatting for positions, timestamps and speeds."""

from __future__ import annotations

import math
from datetime import datetime, timezone


def format_duration(ms: float) -> str:
    """Format an interval as ``[D days ][HH:]MM:SS``."""
    total = math.floor(abs(ms) / 1000)
    seconds = total % 60
    total //= 60
    minutes = total % 60
    total //= 60
    hours = total % 24
    days = total // 24

    text = ""
    if days > 0:
        text += f"{days} days "
    if hours > 0 or text:
        text += f"{hours:02d}:"
    text += f"{minutes:02d}:{seconds:02d}"
    return ("-" if ms < 0 else "") + text


def format_datetime(ms: float) -> str:
    """Format milliseconds since the Epoch as local ``YYYY-MM-DD HH:MM:SS``."""
    return datetime.fromtimestamp(ms / 1000).strftime("%Y-%m-%d %H:%M:%S")


def format_utc(value: str | datetime) -> str:
    """Format a date for journalctl ``--since``/``--until``; empty if unparsable."""
    try:
        if isinstance(value, str):
            value = datetime.fromisoformat(value)
        return value.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S") + " UTC"
    except (TypeError, ValueError, OverflowError):
        return ""


def format_speed(exponent: int) -> str:
    """Format a speed exponent as ``x4``, ``/2``, or nothing at normal speed."""
    factor = 2 ** abs(exponent)
    if exponent > 0:
        return f"x{factor}"
    if exponent < 0:
        return f"/{factor}"
    return ""


def format_progress(position: float, duration: float) -> str:
    return f"{format_duration(position)} / {format_duration(duration)}"
