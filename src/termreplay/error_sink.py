# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Collector of human-readable replay errors."""

from __future__ import annotations

from collections.abc import Iterator

from termreplay.logging import get_logger

logger = get_logger(__name__)


class ErrorSink:
    """Append-only list of error messages, deduplicated by exact text."""

    def __init__(self) -> None:
        self._messages: list[str] = []

    def add(self, message: object) -> None:
        if message is None:
            return
        text = message if isinstance(message, str) else str(message) or "unknown error"
        if text in self._messages:
            return
        self._messages.append(text)
        logger.warning("replay_error", message=text)

    @property
    def messages(self) -> list[str]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._messages))

    def __contains__(self, message: object) -> bool:
        return message in self._messages
