# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Enumerate recordings from the journal."""

from __future__ import annotations

import bisect
from collections.abc import Iterable
from datetime import datetime

from pydantic import BaseModel, Field

from termreplay.constants import REALTIME_FIELD, RECORDER_COMMS, RECORDING_FIELD
from termreplay.logging import get_logger
from termreplay.sources.base import Entry, EntrySource, JournalQuery

logger = get_logger(__name__)


class RecordingInfo(BaseModel):
    """Metadata of one recording, gathered from its journal entries."""

    id: str
    user: str | None = None
    boot_id: str | None = None
    session_id: int | None = None
    pid: int | None = None
    hostname: str | None = None
    # Wall-clock ms since the Epoch
    start: int
    end: int
    duration: int = 0
    match_list: list[str] = Field(default_factory=list)


class RecordingFilter(BaseModel):
    username: str | None = None
    hostname: str | None = None
    since: datetime | None = None
    until: datetime | None = None
    search: str | None = None
    recording_id: str | None = None

    def to_query(self) -> JournalQuery:
        matches = [f"_COMM={comm}" for comm in RECORDER_COMMS]
        if self.username:
            matches.append(f"TLOG_USER={self.username}")
        if self.hostname:
            matches.append(f"_HOSTNAME={self.hostname}")
        grep = None
        if self.recording_id is not None:
            matches.append(f"{RECORDING_FIELD}={self.recording_id}")
        elif self.search:
            grep = self.search
        return JournalQuery(matches=matches, grep=grep, since=self.since, until=self.until)


def _int_or_none(value: object) -> int | None:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


class RecordingIndex:
    """Recordings seen so far, ordered by start time."""

    def __init__(self) -> None:
        self._by_id: dict[str, RecordingInfo] = {}
        self._ordered: list[RecordingInfo] = []
        self._first_host: str | None = None
        self.diff_hosts = False

    @property
    def recordings(self) -> list[RecordingInfo]:
        return list(self._ordered)

    def get(self, recording_id: str) -> RecordingInfo | None:
        return self._by_id.get(recording_id)

    def __len__(self) -> int:
        return len(self._ordered)

    def ingest(self, entries: Iterable[Entry]) -> None:
        for entry in entries:
            recording_id = entry.get(RECORDING_FIELD)
            if recording_id is None:
                continue
            realtime = _int_or_none(entry.get(REALTIME_FIELD))
            if realtime is None:
                logger.debug("recording_entry_without_timestamp", recording=recording_id)
                continue
            ts = realtime // 1000
            hostname = entry.get("_HOSTNAME")

            recording = self._by_id.get(str(recording_id))
            if recording is None:
                if self._first_host is None:
                    self._first_host = hostname
                elif hostname != self._first_host:
                    self.diff_hosts = True
                recording = RecordingInfo(
                    id=str(recording_id),
                    user=entry.get("TLOG_USER"),
                    boot_id=entry.get("_BOOT_ID"),
                    session_id=_int_or_none(entry.get("TLOG_SESSION")),
                    pid=_int_or_none(entry.get("_PID")),
                    hostname=hostname,
                    start=ts,
                    end=ts,
                    match_list=[f"{RECORDING_FIELD}={recording_id}"],
                )
                self._by_id[recording.id] = recording
                self._insert(recording)
                continue

            if ts > recording.end:
                recording.end = ts
                recording.duration = recording.end - recording.start
            if ts < recording.start:
                self._ordered.remove(recording)
                recording.start = ts
                recording.duration = recording.end - recording.start
                self._insert(recording)

    def _insert(self, recording: RecordingInfo) -> None:
        pos = bisect.bisect_right(self._ordered, recording.start, key=lambda r: r.start)
        self._ordered.insert(pos, recording)


async def list_recordings(source: EntrySource, recording_filter: RecordingFilter | None = None) -> RecordingIndex:
    """Read the journal once and index every recording found."""
    recording_filter = recording_filter or RecordingFilter()
    index = RecordingIndex()
    async for batch in source.entries(recording_filter.to_query()):
        index.ingest(batch)
    logger.info("recordings_listed", count=len(index), diff_hosts=index.diff_hosts)
    return index
