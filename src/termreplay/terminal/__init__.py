# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Terminal output layer."""

from __future__ import annotations

from termreplay.terminal.emulator import ScreenSink, parse_screen_text
from termreplay.terminal.sink import PlaybackSink, StreamSink, Viewport

__all__ = [
    "PlaybackSink",
    "ScreenSink",
    "StreamSink",
    "Viewport",
    "parse_screen_text",
]
