# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Playback output sinks."""

from __future__ import annotations

import sys
from typing import Protocol, TextIO

from termreplay.constants import DEFAULT_COLS, DEFAULT_ROWS


class PlaybackSink(Protocol):
    """Where replayed packets go."""

    def write_output(self, text: str) -> None:
        """Write terminal output."""

    def echo_input(self, text: str) -> None:
        """Show text the user typed."""

    def resize(self, width: int, height: int) -> None:
        """Change the terminal size."""

    def reset(self) -> None:
        """Return to a blank terminal before replaying from the start."""


class StreamSink:
    """Write output straight to a text stream, letting a real terminal render it."""

    def __init__(self, stream: TextIO | None = None, *, clear_on_reset: bool = True) -> None:
        self.stream = stream if stream is not None else sys.stdout
        self.clear_on_reset = clear_on_reset
        self.input = ""
        self.cols = DEFAULT_COLS
        self.rows = DEFAULT_ROWS

    def write_output(self, text: str) -> None:
        self.stream.write(text)
        self.stream.flush()

    def echo_input(self, text: str) -> None:
        self.input += text

    def resize(self, width: int, height: int) -> None:
        self.cols = width
        self.rows = height

    def reset(self) -> None:
        self.input = ""
        if self.clear_on_reset:
            self.stream.write("\x1b[2J\x1b[H")
            self.stream.flush()


class Viewport:
    """Scale of the terminal view inside its container.

    Every resize refits the terminal to the container unless the scale was
    locked by a manual zoom.
    """

    def __init__(
        self,
        container_width: float = 800.0,
        container_height: float = 400.0,
        *,
        cell_width: float = 9.0,
        cell_height: float = 17.0,
    ) -> None:
        self.container_width = container_width
        self.container_height = container_height
        self.cell_width = cell_width
        self.cell_height = cell_height
        self.cols = DEFAULT_COLS
        self.rows = DEFAULT_ROWS
        self.scale = 1.0
        self.scale_initial = 1.0
        self.scale_lock = False

    def fit(self, cols: int, rows: int) -> float:
        self.cols = cols
        self.rows = rows
        relation = min(
            self.container_width / (cols * self.cell_width),
            self.container_height / (rows * self.cell_height),
        )
        self.scale = relation
        self.scale_initial = relation
        return relation

    def lock(self, scale: float) -> None:
        self.scale = scale
        self.scale_lock = True

    def unlock(self) -> float:
        self.scale_lock = False
        return self.fit(self.cols, self.rows)
