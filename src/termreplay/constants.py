# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Shared constants for termreplay."""

from __future__ import annotations

# Default terminal settings
DEFAULT_COLS = 80
DEFAULT_ROWS = 25

# Playback speed exponent bounds (speed = 2 ** exponent)
MIN_SPEED_EXPONENT = -4
MAX_SPEED_EXPONENT = 4

# Packets due within this many real milliseconds are output right away
EARLY_THRESHOLD_MS = 5.0

# Interval of the playback safety tick
DEFAULT_TICK_INTERVAL_MS = 100

# Highest supported major version of the recording message format
MAX_MESSAGE_MAJOR_VERSION = 2

# Journal fields
CURSOR_FIELD = "__CURSOR"
REALTIME_FIELD = "__REALTIME_TIMESTAMP"
MESSAGE_FIELD = "MESSAGE"
RECORDING_FIELD = "TLOG_REC"

# Process names the recorder logs under. Names longer than TASK_COMM_LEN
# (16 bytes) are truncated by the kernel.
RECORDER_COMMS = ("tlog-rec", "tlog-rec-sessio")

# Default polling interval for following exported journal files
DEFAULT_POLL_INTERVAL_S = 0.3
