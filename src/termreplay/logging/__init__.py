# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Logging layer for termreplay."""

from __future__ import annotations

from termreplay.logging.config import bind_context, configure_logging, get_logger

__all__ = ["bind_context", "configure_logging", "get_logger"]
