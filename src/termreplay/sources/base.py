# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Abstract base class for journal entry sources."""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from termreplay.constants import MESSAGE_FIELD, REALTIME_FIELD

Entry = dict[str, Any]


class JournalQuery(BaseModel):
    """What to read from a journal.

    ``matches`` are ``FIELD=value`` strings. Matches on the same field are
    alternatives, matches on different fields must all hold.
    """

    matches: list[str] = Field(default_factory=list)
    follow: bool = False
    cursor: str | None = None
    grep: str | None = None
    since: datetime | None = None
    until: datetime | None = None


class EntrySource(ABC):
    """Abstract base for ordered journal entry streams."""

    @abstractmethod
    def entries(self, query: JournalQuery) -> AsyncIterator[list[Entry]]:
        """Stream batches of entries matching ``query``, in journal order.

        If ``query.cursor`` is set, the stream starts at the entry with that
        cursor, inclusive. Without ``query.follow`` the iterator ends once all
        present entries were delivered; with it, it waits for new entries
        until the consumer stops iterating.

        Raises:
            SourceError: If the underlying journal cannot be read
        """


def group_matches(matches: list[str]) -> dict[str, set[str]]:
    grouped: dict[str, set[str]] = {}
    for match in matches:
        name, sep, value = match.partition("=")
        if not sep:
            raise ValueError(f"invalid journal match: {match!r}")
        grouped.setdefault(name, set()).add(value)
    return grouped


def message_text(entry: Entry) -> str:
    """Return an entry's MESSAGE as text, decoding raw byte arrays."""
    message = entry.get(MESSAGE_FIELD)
    if isinstance(message, list):
        return bytes(message).decode("utf-8", errors="replace")
    if message is None:
        return ""
    return str(message)


def entry_time(entry: Entry) -> datetime | None:
    raw = entry.get(REALTIME_FIELD)
    if raw is None:
        return None
    return datetime.fromtimestamp(int(raw) / 1_000_000).astimezone()


def entry_matches(entry: Entry, query: JournalQuery) -> bool:
    """Check an entry against the match, grep and time filters of a query."""
    for name, values in group_matches(query.matches).items():
        if str(entry.get(name)) not in values:
            return False
    if query.grep and query.grep not in message_text(entry):
        return False
    if query.since is not None or query.until is not None:
        ts = entry_time(entry)
        if ts is None:
            return False
        if query.since is not None and ts < query.since.astimezone():
            return False
        if query.until is not None and ts > query.until.astimezone():
            return False
    return True


def parse_entry_line(line: str) -> Entry:
    """Parse one ``journalctl -o json`` line.

    Raises:
        ValueError: If the line is not a JSON object
    """
    entry = json.loads(line)
    if not isinstance(entry, dict):
        raise ValueError("journal entry is not a JSON object")
    return entry
