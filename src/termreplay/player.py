# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Asyncio driver for the playback engine."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Callable
from typing import TYPE_CHECKING

from termreplay.constants import DEFAULT_TICK_INTERVAL_MS
from termreplay.engine import PlaybackEngine, WaitForArrival, WaitUntil, WakeCondition, monotonic_ms
from termreplay.errors import Cancelled
from termreplay.logging import get_logger

if TYPE_CHECKING:
    from termreplay.buffer import PacketBuffer
    from termreplay.error_sink import ErrorSink
    from termreplay.models import Packet
    from termreplay.terminal.sink import PlaybackSink, Viewport

logger = get_logger(__name__)


class Player:
    """Run a PlaybackEngine against a PacketBuffer on the running event loop.

    Wake conditions from the engine become a single timer or a single packet
    waiter. A periodic tick steps the engine as well, covering late or
    coalesced timers.
    """

    def __init__(
        self,
        buffer: PacketBuffer,
        sink: PlaybackSink,
        *,
        errors: ErrorSink | None = None,
        viewport: Viewport | None = None,
        speed_exponent: int = 0,
        paused: bool = False,
        tick_interval_ms: int = DEFAULT_TICK_INTERVAL_MS,
        clock: Callable[[], float] = monotonic_ms,
        on_packet: Callable[[Packet], None] | None = None,
    ) -> None:
        self.buffer = buffer
        self.errors = errors if errors is not None else buffer.errors
        self.engine = PlaybackEngine(
            buffer,
            sink,
            viewport=viewport,
            clock=clock,
            speed_exponent=speed_exponent,
            paused=paused,
            on_packet=on_packet,
        )
        self.tick_interval_ms = tick_interval_ms

        self._timer: asyncio.TimerHandle | None = None
        self._tick_task: asyncio.Task[None] | None = None
        self._waiting: tuple[int, asyncio.Future[None]] | None = None
        self._wake: WakeCondition | None = None
        # Packet fetching failed; resumed by the next control
        self._halted = False
        # The buffer was stopped; never resumed
        self._stopped = False
        self._finished = asyncio.Event()

    @property
    def wake(self) -> WakeCondition | None:
        return self._wake

    @property
    def halted(self) -> bool:
        return self._halted

    @property
    def stopped(self) -> bool:
        return self._stopped

    @property
    def position(self) -> int:
        return self.engine.position

    @property
    def duration(self) -> int:
        return max(self.buffer.duration, self.engine.position)

    def finished(self) -> bool:
        """True when every loaded packet was output and no more are expected soon."""
        if self._stopped or self._halted:
            return True
        engine = self.engine
        return (
            self.buffer.is_done()
            and isinstance(self._wake, WaitForArrival)
            and engine.loaded_packet is None
            and engine.pending_seek_target is None
            and engine.cursor_index >= len(self.buffer)
        )

    async def wait_finished(self) -> None:
        await self._finished.wait()

    def start(self) -> None:
        if self._tick_task is None:
            self._tick_task = asyncio.create_task(self._tick_loop())
        self.sync()

    def stop(self) -> None:
        self._stopped = True
        self._cancel_timer()
        if self._tick_task is not None:
            self._tick_task.cancel()
        self._finished.set()

    async def close(self) -> None:
        task = self._tick_task
        self.stop()
        self._tick_task = None
        if task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await task

    def sync(self) -> None:
        """Step the engine and arm whatever it asks to wait for."""
        if self._stopped or self._halted:
            return
        self._apply(self.engine.step())

    def _apply(self, wake: WakeCondition) -> None:
        self._cancel_timer()
        self._wake = wake
        if isinstance(wake, WaitUntil):
            delay_s = max(0.0, wake.deadline - self.engine.now()) / 1000.0
            self._timer = asyncio.get_running_loop().call_later(delay_s, self._on_timer)
        elif isinstance(wake, WaitForArrival):
            self._await_packet(wake.index)
        self._update_finished()

    def _update_finished(self) -> None:
        if self.finished():
            self._finished.set()
        else:
            self._finished.clear()

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _await_packet(self, index: int) -> None:
        if self._waiting is not None:
            waiting_index, future = self._waiting
            if waiting_index == index and not future.done():
                return
        future = self.buffer.await_packet(index)
        self._waiting = (index, future)
        future.add_done_callback(self._on_arrival)

    def _on_timer(self) -> None:
        self._timer = None
        self.sync()

    def _on_arrival(self, future: asyncio.Future[None]) -> None:
        if self._waiting is not None and self._waiting[1] is future:
            self._waiting = None
        if future.cancelled():
            return
        error = future.exception()
        if error is None:
            self.sync()
            return
        self._cancel_timer()
        if isinstance(error, Cancelled):
            logger.debug("player_buffer_stopped")
            self._stopped = True
        else:
            logger.debug("player_halted", error=str(error))
            self.errors.add(error)
            self._halted = True
        self._finished.set()

    async def _tick_loop(self) -> None:
        try:
            while not self._stopped:
                await asyncio.sleep(self.tick_interval_ms / 1000.0)
                self.sync()
        except asyncio.CancelledError:
            return

    def _control(self, action: Callable[[], WakeCondition]) -> None:
        if self._stopped:
            return
        self._halted = False
        self._apply(action())

    # Controls

    def play(self) -> None:
        self._control(self.engine.play)

    def pause(self) -> None:
        self._control(self.engine.pause)

    def toggle_pause(self) -> None:
        self._control(self.engine.toggle_pause)

    def set_speed_exponent(self, exponent: int) -> None:
        self._control(lambda: self.engine.set_speed_exponent(exponent))

    def speed_up(self) -> None:
        self._control(self.engine.speed_up)

    def speed_down(self) -> None:
        self._control(self.engine.speed_down)

    def reset_speed(self) -> None:
        self._control(self.engine.reset_speed)

    def skip_frame(self) -> None:
        self._control(self.engine.skip_frame)

    def seek_to(self, target: float) -> None:
        self._control(lambda: self.engine.seek_to(target))

    def fast_forward_to_end(self) -> None:
        self._control(self.engine.fast_forward_to_end)

    def rewind_to_start(self) -> None:
        self._control(self.engine.rewind_to_start)
