# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Playback synchronization engine.

The engine keeps a virtual (recording) clock in step with the wall clock and
outputs packets when their position comes due. It never waits itself:
``step`` does all the work possible right now and tells the caller what to
wait for next. ``termreplay.player.Player`` drives it on an asyncio loop.
"""

from __future__ import annotations

import math
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol

from termreplay.constants import EARLY_THRESHOLD_MS, MAX_SPEED_EXPONENT, MIN_SPEED_EXPONENT
from termreplay.logging import get_logger
from termreplay.models import Packet
from termreplay.terminal.sink import PlaybackSink, Viewport

logger = get_logger(__name__)


class PacketStore(Protocol):
    def get(self, index: int) -> Packet | None: ...

    def is_done(self) -> bool: ...


@dataclass(frozen=True)
class Idle:
    """Nothing to do until a control changes."""


@dataclass(frozen=True)
class WaitForArrival:
    """Step again once the packet at ``index`` arrives."""

    index: int


@dataclass(frozen=True)
class WaitUntil:
    """Step again at ``deadline``, in engine clock milliseconds."""

    deadline: float


WakeCondition = Idle | WaitForArrival | WaitUntil

IDLE = Idle()


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def clamp_speed_exponent(exponent: int) -> int:
    return max(MIN_SPEED_EXPONENT, min(MAX_SPEED_EXPONENT, int(exponent)))


class PlaybackEngine:
    """Virtual clock and packet cursor over a packet store."""

    def __init__(
        self,
        buffer: PacketStore,
        sink: PlaybackSink,
        *,
        viewport: Viewport | None = None,
        clock: Callable[[], float] = monotonic_ms,
        speed_exponent: int = 0,
        paused: bool = False,
        on_packet: Callable[[Packet], None] | None = None,
    ) -> None:
        self.buffer = buffer
        self.sink = sink
        self.viewport = viewport
        self.on_packet = on_packet
        self._clock = clock

        # Recording time, ms
        self.virtual_clock = 0.0
        # Local time the virtual clock was last synced at, ms
        self.wall_clock_anchor = clock()
        # Index of the next packet to fetch
        self.cursor_index = 0
        # Fetched packet not output yet
        self.loaded_packet: Packet | None = None
        # Recording time to fast-forward to
        self.pending_seek_target: float | None = None
        # Output the loaded packet without waiting
        self.pending_skip = False
        self.paused = paused
        self.speed_exponent = clamp_speed_exponent(speed_exponent)
        # Position of the last packet output
        self.position = 0

    @property
    def speed(self) -> float:
        return 2.0**self.speed_exponent

    def now(self) -> float:
        return self._clock()

    def real_delay(self, virtual_delay: float) -> float:
        """Wall-clock milliseconds needed to cover ``virtual_delay`` at the current speed."""
        return virtual_delay / self.speed

    def step(self) -> WakeCondition:
        """Output every packet that is due and report what to wait for next."""
        while True:
            if self.loaded_packet is None:
                packet = self.buffer.get(self.cursor_index)
                if packet is None:
                    # Nothing left to fast-forward through
                    if self.pending_seek_target is not None and self.buffer.is_done():
                        self.pending_seek_target = None
                    return WaitForArrival(self.cursor_index)
                self.loaded_packet = packet
                self.cursor_index += 1

            packet = self.loaded_packet
            now = self._clock()
            elapsed = 0.0 if self.paused else now - self.wall_clock_anchor
            self.wall_clock_anchor = now

            if self.pending_skip:
                self.pending_skip = False
                self.virtual_clock = packet.pos
            elif self.pending_seek_target is not None:
                if packet.pos < self.pending_seek_target:
                    self.virtual_clock = packet.pos
                else:
                    self.virtual_clock = self.pending_seek_target
                    self.pending_seek_target = None
                    continue
            elif self.paused:
                return IDLE
            else:
                self.virtual_clock += elapsed * self.speed
                delay = self.real_delay(packet.pos - self.virtual_clock)
                if delay > EARLY_THRESHOLD_MS:
                    return WaitUntil(now + delay)

            self._output(packet)
            self.loaded_packet = None

    def _output(self, packet: Packet) -> None:
        self.position = packet.pos
        if packet.is_io:
            if packet.is_output:
                self.sink.write_output(packet.payload)
            else:
                self.sink.echo_input(packet.payload)
        else:
            assert packet.width is not None and packet.height is not None
            self.sink.resize(packet.width, packet.height)
            if self.viewport is not None and not self.viewport.scale_lock:
                self.viewport.fit(packet.width, packet.height)
        if self.on_packet is not None:
            self.on_packet(packet)

    def _resample(self) -> None:
        # Fold the time elapsed at the old rate in before the rate changes
        now = self._clock()
        if (
            not self.paused
            and self.loaded_packet is not None
            and self.pending_seek_target is None
            and not self.pending_skip
        ):
            self.virtual_clock += (now - self.wall_clock_anchor) * self.speed
        self.wall_clock_anchor = now

    def _reset(self) -> None:
        self.cursor_index = 0
        self.loaded_packet = None
        self.virtual_clock = 0.0
        self.position = 0
        self.pending_skip = False
        self.pending_seek_target = None
        self.wall_clock_anchor = self._clock()
        self.sink.reset()

    # Controls

    def play(self) -> WakeCondition:
        self._resample()
        self.paused = False
        return self.step()

    def pause(self) -> WakeCondition:
        self._resample()
        self.paused = True
        return self.step()

    def toggle_pause(self) -> WakeCondition:
        return self.play() if self.paused else self.pause()

    def set_speed_exponent(self, exponent: int) -> WakeCondition:
        self._resample()
        self.speed_exponent = clamp_speed_exponent(exponent)
        return self.step()

    def speed_up(self) -> WakeCondition:
        return self.set_speed_exponent(self.speed_exponent + 1)

    def speed_down(self) -> WakeCondition:
        return self.set_speed_exponent(self.speed_exponent - 1)

    def reset_speed(self) -> WakeCondition:
        return self.set_speed_exponent(0)

    def skip_frame(self) -> WakeCondition:
        self.pending_skip = True
        return self.step()

    def seek_to(self, target: float) -> WakeCondition:
        """Fast-forward to ``target``, restarting from the beginning if it is behind."""
        if target < self.virtual_clock:
            logger.debug("seek_backward_reset", target=target, virtual_clock=self.virtual_clock)
            self._reset()
        self.pending_seek_target = target
        return self.step()

    def fast_forward_to_end(self) -> WakeCondition:
        return self.seek_to(math.inf)

    def rewind_to_start(self) -> WakeCondition:
        self._reset()
        return self.step()
