# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Tests for the playback engine state machine."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from termreplay.engine import IDLE, PlaybackEngine, WaitForArrival, WaitUntil, clamp_speed_exponent
from termreplay.models import Direction, Packet
from termreplay.terminal.sink import Viewport


def out(pos: int, text: str = "x") -> Packet:
    return Packet.io(pos, Direction.OUTPUT, text)


@pytest.fixture
def make_engine(clock: Any, sink: Any, store_factory: Callable[..., Any]) -> Callable[..., PlaybackEngine]:
    def _make(packets: list[Packet], *, done: bool = True, **kwargs: Any) -> PlaybackEngine:
        return PlaybackEngine(store_factory(packets, done=done), sink, clock=clock, **kwargs)

    return _make


def test_outputs_due_packets_and_waits_for_the_next(make_engine, clock, sink) -> None:
    engine = make_engine([out(0, "a"), out(1000, "b"), out(1500, "c")])

    assert engine.step() == WaitUntil(clock.now + 1000)
    assert sink.output == "a"

    clock.advance(1000)
    assert engine.step() == WaitUntil(clock.now + 500)
    assert sink.output == "ab"
    assert engine.position == 1000

    clock.advance(500)
    assert engine.step() == WaitForArrival(3)
    assert sink.output == "abc"


def test_packets_within_threshold_output_early(make_engine, sink) -> None:
    engine = make_engine([out(0, "a"), out(5, "b"), out(6, "c")])
    assert engine.step() == WaitUntil(1006.0)
    assert sink.output == "ab"


def test_speed_divides_real_delay(make_engine, clock) -> None:
    engine = make_engine([out(0), out(1000)], speed_exponent=1)
    assert engine.step() == WaitUntil(clock.now + 500)

    engine = make_engine([out(0), out(1000)], speed_exponent=-2)
    assert engine.step() == WaitUntil(clock.now + 4000)


def test_speed_exponent_is_clamped(make_engine) -> None:
    engine = make_engine([])
    engine.set_speed_exponent(10)
    assert engine.speed_exponent == 4
    assert engine.speed == 16
    engine.set_speed_exponent(-9)
    assert engine.speed_exponent == -4
    engine.speed_down()
    assert engine.speed_exponent == -4
    engine.reset_speed()
    assert engine.speed_exponent == 0
    assert clamp_speed_exponent(3) == 3


def test_speed_change_keeps_time_elapsed_at_old_rate(make_engine, clock) -> None:
    engine = make_engine([out(0), out(1000)])
    engine.step()

    clock.advance(500)
    # 500 ms covered at 1x, the remaining 500 ms at 2x
    assert engine.set_speed_exponent(1) == WaitUntil(clock.now + 250)
    assert engine.virtual_clock == 500


def test_pause_holds_virtual_clock(make_engine, clock, sink) -> None:
    engine = make_engine([out(0, "a"), out(1000, "b")])
    engine.step()
    clock.advance(400)

    assert engine.pause() is IDLE
    assert engine.virtual_clock == 400

    clock.advance(10_000)
    assert engine.step() is IDLE
    assert sink.output == "a"

    assert engine.play() == WaitUntil(clock.now + 600)


def test_starting_paused_outputs_nothing(make_engine, sink) -> None:
    engine = make_engine([out(0, "a")], paused=True)
    assert engine.step() is IDLE
    assert sink.output == ""
    assert engine.toggle_pause() == WaitForArrival(1)
    assert sink.output == "a"


def test_skip_frame_outputs_one_packet_ignoring_timing(make_engine, sink) -> None:
    engine = make_engine([out(0, "a"), out(60_000, "b"), out(120_000, "c")], paused=True)
    engine.step()

    assert engine.skip_frame() is IDLE
    assert sink.output == "a"
    assert engine.skip_frame() is IDLE
    assert sink.output == "ab"
    assert engine.virtual_clock == 60_000
    assert engine.position == 60_000


def test_seek_forward_fast_forwards_without_reset(make_engine, clock, sink) -> None:
    engine = make_engine([out(0, "a"), out(1000, "b"), out(2000, "c"), out(3000, "d")])
    engine.step()

    assert engine.seek_to(2500) == WaitUntil(clock.now + 500)
    assert sink.output == "abc"
    assert sink.resets == 0
    assert engine.virtual_clock == 2500
    assert engine.pending_seek_target is None


def test_seek_backward_resets_and_replays(make_engine, clock, sink) -> None:
    engine = make_engine([out(0, "a"), out(1000, "b"), out(2000, "c"), out(3000, "d")])
    engine.seek_to(2500)

    assert engine.seek_to(500) == WaitUntil(clock.now + 500)
    assert sink.resets == 1
    assert sink.output == "a"
    assert engine.cursor_index == 2
    assert engine.virtual_clock == 500


def test_seek_while_paused_stops_at_target(make_engine, sink) -> None:
    engine = make_engine([out(0, "a"), out(1000, "b"), out(2000, "c")], paused=True)
    assert engine.seek_to(1000) is IDLE
    assert sink.output == "a"
    assert engine.loaded_packet == out(1000, "b")


def test_seek_past_end_clears_target_once_loaded(make_engine, sink) -> None:
    engine = make_engine([out(0, "a"), out(1000, "b")])
    assert engine.seek_to(5000) == WaitForArrival(2)
    assert sink.output == "ab"
    assert engine.pending_seek_target is None


def test_seek_past_end_keeps_target_while_loading(make_engine, sink) -> None:
    engine = make_engine([out(0, "a"), out(1000, "b")], done=False)
    assert engine.seek_to(5000) == WaitForArrival(2)
    assert engine.pending_seek_target == 5000

    engine.buffer.packets.append(out(4000, "c"))
    engine.buffer.packets.append(out(6000, "d"))
    engine.step()
    assert sink.output == "abc"
    assert engine.pending_seek_target is None


def test_fast_forward_to_end_outputs_everything(make_engine, sink) -> None:
    engine = make_engine([out(0, "a"), out(10_000, "b"), out(20_000, "c")], paused=True)
    assert engine.fast_forward_to_end() == WaitForArrival(3)
    assert sink.output == "abc"
    assert engine.position == 20_000


def test_rewind_to_start(make_engine, clock, sink) -> None:
    engine = make_engine([out(0, "a"), out(1000, "b")])
    engine.fast_forward_to_end()

    assert engine.rewind_to_start() == WaitUntil(clock.now + 1000)
    assert sink.resets == 1
    assert sink.output == "a"
    assert engine.position == 0


def test_waits_for_packets_not_loaded_yet(make_engine, sink) -> None:
    engine = make_engine([], done=False)
    assert engine.step() == WaitForArrival(0)
    engine.buffer.packets.append(out(0, "a"))
    assert engine.step() == WaitForArrival(1)
    assert sink.output == "a"


def test_dispatches_input_and_resize(make_engine, sink) -> None:
    engine = make_engine([Packet.resize(0, 100, 30), Packet.io(0, Direction.INPUT, "ls"), out(0, "out")])
    engine.step()
    assert sink.events == [("resize", 100, 30), ("input", "ls"), ("output", "out")]


def test_on_packet_callback(make_engine) -> None:
    seen: list[Packet] = []
    engine = make_engine([out(0, "a"), out(0, "b")], on_packet=seen.append)
    engine.step()
    assert [p.payload for p in seen] == ["a", "b"]


def test_resize_refits_viewport_unless_locked(make_engine) -> None:
    viewport = Viewport(900, 425, cell_width=9, cell_height=17)
    engine = make_engine([Packet.resize(0, 100, 25), Packet.resize(0, 50, 25)], viewport=viewport, paused=True)

    engine.skip_frame()
    assert viewport.scale == pytest.approx(1.0)
    assert (viewport.cols, viewport.rows) == (100, 25)

    viewport.lock(3.0)
    engine.skip_frame()
    assert viewport.scale == 3.0
    assert viewport.cols == 100
