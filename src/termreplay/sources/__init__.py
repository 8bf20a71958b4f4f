# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Journal entry sources."""

from __future__ import annotations

from termreplay.sources.base import Entry, EntrySource, JournalQuery, entry_matches, message_text
from termreplay.sources.journalctl import JournalctlSource
from termreplay.sources.jsonl import JsonlSource
from termreplay.sources.memory import MemorySource

__all__ = [
    "Entry",
    "EntrySource",
    "JournalQuery",
    "JournalctlSource",
    "JsonlSource",
    "MemorySource",
    "entry_matches",
    "message_text",
]
