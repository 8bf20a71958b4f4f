# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Terminal emulation using pyte."""

from __future__ import annotations

import hashlib
from typing import Any

import pyte

from termreplay.constants import DEFAULT_COLS, DEFAULT_ROWS


def parse_screen_text(screen: pyte.Screen) -> str:
    """Join the screen display lines with newlines."""
    return "\n".join(screen.display)


class ScreenSink:
    """Replay packets into a pyte virtual screen."""

    def __init__(self, cols: int = DEFAULT_COLS, rows: int = DEFAULT_ROWS) -> None:
        """Initialize the virtual screen.

        Args:
            cols: Terminal width in columns
            rows: Terminal height in rows
        """
        self.cols = cols
        self.rows = rows
        self.input = ""
        self._screen = pyte.Screen(cols, rows)
        self._stream = pyte.Stream(self._screen)

    def write_output(self, text: str) -> None:
        self._stream.feed(text)

    def echo_input(self, text: str) -> None:
        self.input += text

    @property
    def input_line(self) -> str:
        """Typed input on one line, line breaks shown as spaces."""
        return self.input.replace("\r\n", " ").replace("\r", " ").replace("\n", " ")

    def resize(self, width: int, height: int) -> None:
        """Resize terminal.

        Args:
            width: New terminal width
            height: New terminal height
        """
        self.cols = width
        self.rows = height
        self._screen.resize(lines=height, columns=width)

    def reset(self) -> None:
        """Reset terminal and input echo to initial state."""
        self.input = ""
        self._screen.reset()

    @property
    def text(self) -> str:
        return parse_screen_text(self._screen)

    def snapshot(self) -> dict[str, Any]:
        """Get current screen state snapshot.

        Returns:
            Dictionary containing screen state:
                - screen: Screen text
                - screen_hash: SHA256 hash of screen text
                - cursor: Cursor position {x, y}
                - cols: Terminal columns
                - rows: Terminal rows
                - input: Input echo line
        """
        screen_text = self.text
        return {
            "screen": screen_text,
            "screen_hash": hashlib.sha256(screen_text.encode("utf-8")).hexdigest(),
            "cursor": {"x": self._screen.cursor.x, "y": self._screen.cursor.y},
            "cols": self.cols,
            "rows": self.rows,
            "input": self.input_line,
        }
