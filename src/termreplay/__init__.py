# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Decode and replay terminal session recordings."""

from __future__ import annotations

from termreplay.buffer import BufferState, PacketBuffer
from termreplay.engine import Idle, PlaybackEngine, WaitForArrival, WaitUntil, WakeCondition
from termreplay.error_sink import ErrorSink
from termreplay.models import Direction, Message, Packet, PacketKind
from termreplay.player import Player
from termreplay.timing import decode

__all__ = [
    "BufferState",
    "Direction",
    "ErrorSink",
    "Idle",
    "Message",
    "Packet",
    "PacketBuffer",
    "PacketKind",
    "PlaybackEngine",
    "Player",
    "WaitForArrival",
    "WaitUntil",
    "WakeCondition",
    "decode",
]
