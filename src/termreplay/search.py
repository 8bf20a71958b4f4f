# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Full-text search within a recording."""

from __future__ import annotations

import contextlib
from collections.abc import Iterable

from termreplay.buffer import parse_container
from termreplay.constants import MESSAGE_FIELD
from termreplay.sources.base import EntrySource, JournalQuery


async def search_positions(source: EntrySource, match_list: Iterable[str], text: str) -> list[int]:
    """Return the positions of the recording's messages containing ``text``.

    Positions are in recording ms, suitable for seeking.

    Raises:
        StreamError: If a matching entry holds an unparsable message
        SourceError: If the journal cannot be read
    """
    query = JournalQuery(matches=list(match_list), grep=text)
    positions: set[int] = set()
    async with contextlib.aclosing(source.entries(query)) as batches:
        async for batch in batches:
            for entry in batch:
                data = parse_container(entry.get(MESSAGE_FIELD))
                if isinstance(data, dict) and isinstance(data.get("pos"), int):
                    positions.add(data["pos"])
    return sorted(positions)
