# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Pytest configuration and fixtures."""

from __future__ import annotations

import json
from collections.abc import Callable, Iterator
from typing import Any

import pytest
import structlog

from termreplay.models import Packet

EntryFactory = Callable[..., dict[str, Any]]


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, ms: float) -> None:
        self.now += ms


class RecordingSink:
    """Playback sink remembering every call."""

    def __init__(self) -> None:
        self.events: list[tuple[Any, ...]] = []
        self.output = ""
        self.input = ""
        self.resets = 0

    def write_output(self, text: str) -> None:
        self.events.append(("output", text))
        self.output += text

    def echo_input(self, text: str) -> None:
        self.events.append(("input", text))
        self.input += text

    def resize(self, width: int, height: int) -> None:
        self.events.append(("resize", width, height))

    def reset(self) -> None:
        self.resets += 1
        self.output = ""
        self.input = ""


class ListStore:
    """Packet store backed by a plain list."""

    def __init__(self, packets: list[Packet] | None = None, *, done: bool = True) -> None:
        self.packets = list(packets or [])
        self.done = done

    def get(self, index: int) -> Packet | None:
        if 0 <= index < len(self.packets):
            return self.packets[index]
        return None

    def is_done(self) -> bool:
        return self.done

    def __len__(self) -> int:
        return len(self.packets)


@pytest.fixture(autouse=True)
def reset_logging() -> Iterator[None]:
    """Undo logging configuration done by a test, e.g. through the CLI."""
    yield
    structlog.contextvars.clear_contextvars()
    structlog.reset_defaults()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def store_factory() -> Callable[..., ListStore]:
    return ListStore


@pytest.fixture
def make_message() -> Callable[..., dict[str, Any]]:
    """Build a recording message record."""

    def _make(
        id: int,
        pos: int,
        timing: str,
        in_txt: str = "",
        out_txt: str = "",
        ver: str = "2.3",
        rec: str = "rec-1",
    ) -> dict[str, Any]:
        return {
            "ver": ver,
            "host": "localhost",
            "rec": rec,
            "user": "alice",
            "term": "xterm",
            "session": 7,
            "id": id,
            "pos": pos,
            "timing": timing,
            "in_txt": in_txt,
            "out_txt": out_txt,
        }

    return _make


@pytest.fixture
def make_entry(make_message: Callable[..., dict[str, Any]]) -> EntryFactory:
    """Build a journal entry wrapping a recording message."""

    def _make(
        id: int,
        pos: int,
        timing: str,
        in_txt: str = "",
        out_txt: str = "",
        *,
        rec: str = "rec-1",
        cursor: str | None = None,
        as_bytes: bool = False,
        realtime: int | None = None,
    ) -> dict[str, Any]:
        text = json.dumps(make_message(id, pos, timing, in_txt, out_txt, rec=rec))
        entry: dict[str, Any] = {
            "MESSAGE": list(text.encode("utf-8")) if as_bytes else text,
            "TLOG_REC": rec,
            "TLOG_USER": "alice",
            "TLOG_SESSION": "7",
            "_COMM": "tlog-rec-sessio",
            "_HOSTNAME": "localhost",
            "_BOOT_ID": "boot-1",
            "_PID": "4242",
        }
        if cursor is not None:
            entry["__CURSOR"] = cursor
        if realtime is not None:
            entry["__REALTIME_TIMESTAMP"] = str(realtime)
        return entry

    return _make
