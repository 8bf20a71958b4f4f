# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Entry source reading a ``journalctl -o json`` export file."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from pathlib import Path

from termreplay.constants import CURSOR_FIELD, DEFAULT_POLL_INTERVAL_S
from termreplay.errors import SourceError
from termreplay.logging import get_logger
from termreplay.sources.base import Entry, EntrySource, JournalQuery, entry_matches, parse_entry_line

logger = get_logger(__name__)


class JsonlSource(EntrySource):
    """Read entries from a JSON-lines journal export.

    Following polls the file for appended lines, tail -f style. A file that
    shrinks is treated as replaced and read again from the start.
    """

    def __init__(self, path: str | Path, *, poll_interval_s: float = DEFAULT_POLL_INTERVAL_S) -> None:
        self.path = Path(path)
        self.poll_interval_s = poll_interval_s

    def _read_from(self, offset: int) -> tuple[list[str], int]:
        try:
            size = self.path.stat().st_size
            if size < offset:
                logger.warning("journal_file_truncated", path=str(self.path))
                offset = 0
            if size == offset:
                return [], offset
            with open(self.path, "rb") as f:
                f.seek(offset)
                data = f.read(size - offset)
        except OSError as e:
            raise SourceError(f"cannot read {self.path}: {e}") from e

        # Leave a partially written last line for the next poll
        end = data.rfind(b"\n")
        if end == -1:
            return [], offset
        text = data[: end + 1].decode("utf-8", errors="replace")
        return [line for line in text.splitlines() if line.strip()], offset + end + 1

    async def entries(self, query: JournalQuery) -> AsyncIterator[list[Entry]]:
        offset = 0
        started = query.cursor is None
        while True:
            lines, offset = self._read_from(offset)
            batch: list[Entry] = []
            for line in lines:
                try:
                    entry = parse_entry_line(line)
                except ValueError as e:
                    raise SourceError(f"invalid journal entry in {self.path}: {e}") from e
                if not started:
                    if entry.get(CURSOR_FIELD) != query.cursor:
                        continue
                    started = True
                if entry_matches(entry, query):
                    batch.append(entry)
            if batch:
                yield batch

            if not query.follow:
                if not started:
                    raise SourceError(f"cursor not found: {query.cursor}")
                return
            await asyncio.sleep(self.poll_interval_s)
