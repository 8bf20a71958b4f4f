# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""In-process journal entry source."""

from __future__ import annotations

import asyncio
import time
from collections.abc import AsyncIterator, Iterable

from termreplay.constants import CURSOR_FIELD, REALTIME_FIELD
from termreplay.errors import SourceError
from termreplay.sources.base import Entry, EntrySource, JournalQuery, entry_matches


class MemorySource(EntrySource):
    """Entries held in memory; ``append`` feeds followers live.

    Entries without a cursor or timestamp get one assigned on append.
    """

    def __init__(self, entries: Iterable[Entry] = (), *, batch_size: int = 64) -> None:
        self._entries: list[Entry] = []
        self._batch_size = max(1, int(batch_size))
        self._appended = asyncio.Event()
        self._error: SourceError | None = None
        for entry in entries:
            self.append(entry)

    def __len__(self) -> int:
        return len(self._entries)

    def append(self, entry: Entry) -> Entry:
        entry = dict(entry)
        entry.setdefault(CURSOR_FIELD, f"s=memory;i={len(self._entries) + 1:x}")
        entry.setdefault(REALTIME_FIELD, str(time.time_ns() // 1000))
        self._entries.append(entry)
        self._wake()
        return entry

    def fail(self, error: SourceError) -> None:
        """Make every active and future read raise ``error``."""
        self._error = error
        self._wake()

    def _wake(self) -> None:
        event = self._appended
        self._appended = asyncio.Event()
        event.set()

    def _start_index(self, cursor: str | None) -> int:
        if cursor is None:
            return 0
        for index, entry in enumerate(self._entries):
            if entry.get(CURSOR_FIELD) == cursor:
                return index
        raise SourceError(f"cursor not found: {cursor}")

    async def entries(self, query: JournalQuery) -> AsyncIterator[list[Entry]]:
        index = self._start_index(query.cursor)
        while True:
            if self._error is not None:
                raise self._error
            if index < len(self._entries):
                chunk = self._entries[index : index + self._batch_size]
                index += len(chunk)
                batch = [entry for entry in chunk if entry_matches(entry, query)]
                if batch:
                    yield batch
                continue
            if not query.follow:
                return
            await self._appended.wait()
