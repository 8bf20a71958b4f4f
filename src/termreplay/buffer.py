# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Auto-loading buffer of a recording's packets.

The buffer reads every journal entry already logged for a recording, then
keeps following the journal for new entries. Consumers ask for packets by
index with ``await_packet`` and get a future resolved once the packet at
that index has arrived.
"""

from __future__ import annotations

import asyncio
import bisect
import contextlib
import json
from collections.abc import Iterable, Iterator
from enum import Enum
from typing import Any

from termreplay.constants import CURSOR_FIELD, MESSAGE_FIELD
from termreplay.error_sink import ErrorSink
from termreplay.errors import Cancelled, DecodeError, EntryError, OrderingViolation, SourceError, StreamError
from termreplay.logging import get_logger
from termreplay.models import Message, Packet, parse_message
from termreplay.sources.base import Entry, EntrySource, JournalQuery
from termreplay.timing import decode_message

logger = get_logger(__name__)


class BufferState(str, Enum):
    LOADING = "loading"
    TAILING = "tailing"
    STOPPED = "stopped"
    ERRORED = "errored"


_TERMINAL_STATES = (BufferState.STOPPED, BufferState.ERRORED)


class PacketBuffer:
    """Ordered, append-only packet list fed from a journal entry source."""

    def __init__(
        self,
        source: EntrySource,
        match_list: Iterable[str],
        errors: ErrorSink | None = None,
    ) -> None:
        self.source = source
        self.match_list = list(match_list)
        self.errors = errors if errors is not None else ErrorSink()

        self._packets: list[Packet] = []
        # (packet index, future) pairs, sorted by index
        self._waiters: list[tuple[int, asyncio.Future[None]]] = []

        # Last accepted message ID and the virtual position after its timing
        self._id: int | None = None
        self._pos = 0
        # Last seen window size
        self._width: int | None = None
        self._height: int | None = None

        # Journal entries taken in, valid or not
        self.entry_count = 0
        self._state = BufferState.LOADING
        self._error: Exception | None = None
        self._done = False
        self._loaded = asyncio.Event()

        # Cursor of the last entry received while loading
        self._cursor: str | None = None
        # Cursor the follow run is expected to deliver again first
        self._skip_cursor: str | None = None

        self._task: asyncio.Task[None] | None = None

    # Packet access

    def __len__(self) -> int:
        return len(self._packets)

    def __getitem__(self, index: int) -> Packet:
        return self._packets[index]

    def __iter__(self) -> Iterator[Packet]:
        return iter(self._packets)

    def get(self, index: int) -> Packet | None:
        if 0 <= index < len(self._packets):
            return self._packets[index]
        return None

    @property
    def packets(self) -> list[Packet]:
        return list(self._packets)

    @property
    def state(self) -> BufferState:
        return self._state

    @property
    def error(self) -> Exception | None:
        return self._error

    @property
    def duration(self) -> int:
        """Virtual position reached by the messages received so far, ms."""
        return self._pos

    @property
    def pending_indices(self) -> list[int]:
        return [index for index, _ in self._waiters]

    def is_done(self) -> bool:
        """True once everything already logged was loaded and tailing has begun."""
        return self._done

    async def wait_loaded(self) -> None:
        """Wait until loading completes, or the buffer stops or fails."""
        await self._loaded.wait()

    # Lifecycle

    def start(self) -> None:
        """Start reading entries in a background task."""
        if self._task is not None or self._state is not BufferState.LOADING:
            return
        self._task = asyncio.create_task(self._reader_loop())

    def stop(self) -> None:
        """Stop receiving entries and cancel everyone waiting for packets."""
        if self._state in _TERMINAL_STATES:
            return
        self._release()
        self._state = BufferState.STOPPED
        self._loaded.set()
        self._reject_all(Cancelled())
        logger.debug("buffer_stopped", packets=len(self._packets))

    async def close(self) -> None:
        """Stop and wait for the reader task to finish."""
        task = self._task
        self.stop()
        if task is None:
            return
        try:
            await task
        except asyncio.CancelledError:
            return

    def handle_error(self, error: Exception | str) -> None:
        """Record a fatal error; the first one wins."""
        if self._state in _TERMINAL_STATES:
            return
        if not isinstance(error, Exception):
            error = StreamError(str(error))
        self._error = error
        self._release()
        self._state = BufferState.ERRORED
        self._loaded.set()
        self._reject_all(error)
        self.errors.add(error)
        logger.warning("buffer_failed", error=str(error), packets=len(self._packets))

    def _release(self) -> None:
        task = self._task
        self._task = None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()

    def _reject_all(self, error: Exception) -> None:
        waiters, self._waiters = self._waiters, []
        for _, future in waiters:
            if not future.done():
                future.set_exception(error)

    # Waiting for packets

    def await_packet(self, index: int | None = None) -> asyncio.Future[None]:
        """Return a future resolved when the packet at ``index`` is available.

        The future is rejected with the recorded error if loading failed, and
        with ``Cancelled`` if the buffer was stopped. Without an index, the
        next packet to arrive is awaited.
        """
        future: asyncio.Future[None] = asyncio.get_running_loop().create_future()

        if self._error is not None:
            future.set_exception(self._error)
            return future
        if self._state is BufferState.STOPPED:
            future.set_exception(Cancelled())
            return future

        if index is None:
            index = len(self._packets)
        elif index < 0:
            raise ValueError(f"negative packet index: {index}")
        elif index < len(self._packets):
            future.set_result(None)
            return future

        pos = bisect.bisect_left(self._waiters, index, key=lambda waiter: waiter[0])
        if pos < len(self._waiters) and self._waiters[pos][0] == index:
            existing = self._waiters[pos][1]
            if not existing.done():
                return existing
            self._waiters[pos] = (index, future)
            return future

        self._waiters.insert(pos, (index, future))
        return future

    def add_packet(self, packet: Packet) -> None:
        """Append a packet and resolve the waiters it satisfies."""
        if self._state in _TERMINAL_STATES:
            return
        self._packets.append(packet)
        while self._waiters and self._waiters[0][0] < len(self._packets):
            _, future = self._waiters.pop(0)
            if not future.done():
                future.set_result(None)

    # Ingestion

    async def _reader_loop(self) -> None:
        try:
            async with contextlib.aclosing(self.source.entries(JournalQuery(matches=self.match_list))) as batches:
                async for batch in batches:
                    self.handle_entries(batch)
                    if self._state is not BufferState.LOADING:
                        return

            self.handle_done()

            query = JournalQuery(matches=self.match_list, follow=True, cursor=self._cursor)
            async with contextlib.aclosing(self.source.entries(query)) as batches:
                async for batch in batches:
                    self.handle_entries(batch)
                    if self._state is not BufferState.TAILING:
                        return
        except asyncio.CancelledError:
            return
        except SourceError as e:
            self.handle_error(StreamError(str(e)))
        except Exception as e:
            logger.exception("buffer_reader_crashed")
            self.handle_error(StreamError(f"journal read failed: {e}"))

    def handle_done(self) -> None:
        """Switch from loading existing entries to following new ones."""
        if self._state is not BufferState.LOADING:
            return
        self._done = True
        self._state = BufferState.TAILING
        self._skip_cursor = self._cursor
        self._loaded.set()
        logger.info("buffer_tailing", packets=len(self._packets), cursor=self._cursor)

    def handle_entries(self, entries: Iterable[Entry]) -> None:
        """Ingest a batch of raw journal entries."""
        for entry in entries:
            if self._state in _TERMINAL_STATES:
                return

            cursor = entry.get(CURSOR_FIELD)
            if self._state is BufferState.TAILING:
                if self._skip_cursor is not None:
                    # The follow run starts at the last entry already loaded
                    redelivered = cursor == self._skip_cursor
                    self._skip_cursor = None
                    if redelivered:
                        continue
            elif cursor is None:
                self.handle_error(StreamError("No cursor in a journal entry"))
                return
            if cursor is not None:
                self._cursor = cursor
            self.entry_count += 1

            if MESSAGE_FIELD not in entry:
                self.handle_error(StreamError("No message in a journal entry"))
                return
            try:
                data = parse_container(entry[MESSAGE_FIELD])
            except StreamError as e:
                self.handle_error(e)
                return
            self.ingest(data)

    def ingest(self, data: Any) -> None:
        """Validate one decoded message record and add its packets.

        Invalid records are reported and skipped.
        """
        try:
            message = parse_message(data)
            self._check_order(message)
            chunk = decode_message(
                message.timing,
                message.in_txt,
                message.out_txt,
                pos=message.pos,
                width=self._width,
                height=self._height,
            )
        except (EntryError, DecodeError) as e:
            self.errors.add(e)
            logger.debug("message_skipped", error=str(e))
            return

        self._id = message.id
        self._pos = chunk.end_pos
        self._width = chunk.width
        self._height = chunk.height
        for packet in chunk.packets:
            self.add_packet(packet)

    def _check_order(self, message: Message) -> None:
        if self._id is not None and message.id <= self._id:
            raise OrderingViolation("id", message.id)
        if message.pos < self._pos:
            raise OrderingViolation("pos", message.pos)


def parse_container(raw: Any) -> Any:
    """Parse a journal MESSAGE field holding a JSON record.

    Journal fields with non-printable characters arrive as arrays of byte
    values and are UTF-8 decoded first.

    Raises:
        StreamError: If the field is neither text nor bytes, or is not valid JSON
    """
    if isinstance(raw, list):
        try:
            raw = bytes(raw).decode("utf-8", errors="replace")
        except (TypeError, ValueError) as e:
            raise StreamError(f"invalid journal message bytes: {e}") from e
    elif not isinstance(raw, str):
        raise StreamError(f"invalid journal message type: {type(raw).__name__}")
    try:
        return json.loads(raw)
    except ValueError as e:
        raise StreamError(f"invalid journal message: {e}") from e
