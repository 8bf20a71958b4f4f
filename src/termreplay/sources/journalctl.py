# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Entry source backed by a journalctl subprocess."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import AsyncIterator

from termreplay.errors import SourceError
from termreplay.formatting import format_utc
from termreplay.logging import get_logger
from termreplay.sources.base import Entry, EntrySource, JournalQuery, group_matches, parse_entry_line

logger = get_logger(__name__)

# Journal entries can carry large MESSAGE fields
_LINE_LIMIT = 16 * 1024 * 1024
_STDERR_TAIL = 4096


def build_command(query: JournalQuery, journalctl_path: str = "journalctl") -> list[str]:
    """Translate a query into a journalctl command line."""
    group_matches(query.matches)
    cmd = [journalctl_path, "--output=json", "--merge", "--no-pager", "--all", "--lines=all"]
    if query.follow:
        cmd.append("--follow")
    if query.cursor is not None:
        cmd.append(f"--cursor={query.cursor}")
    if query.grep:
        cmd.append(f"--grep={query.grep}")
    if query.since is not None:
        cmd.append(f"--since={format_utc(query.since)}")
    if query.until is not None:
        cmd.append(f"--until={format_utc(query.until)}")
    cmd.extend(query.matches)
    return cmd


class JournalctlSource(EntrySource):
    """Read entries by running journalctl, one entry per output line."""

    def __init__(self, journalctl_path: str = "journalctl") -> None:
        self.journalctl_path = journalctl_path

    async def entries(self, query: JournalQuery) -> AsyncIterator[list[Entry]]:
        cmd = build_command(query, self.journalctl_path)
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                stdin=asyncio.subprocess.DEVNULL,
                limit=_LINE_LIMIT,
            )
        except OSError as e:
            raise SourceError(f"cannot run {self.journalctl_path}: {e}") from e

        logger.debug("journalctl_started", pid=proc.pid, follow=query.follow, cursor=query.cursor)
        assert proc.stdout is not None and proc.stderr is not None
        stderr_task = asyncio.create_task(_drain(proc.stderr))
        try:
            while True:
                line = await proc.stdout.readline()
                if not line:
                    break
                if not line.strip():
                    continue
                try:
                    entry = parse_entry_line(line.decode("utf-8", errors="replace"))
                except ValueError as e:
                    raise SourceError(f"invalid journalctl output: {e}") from e
                yield [entry]

            await proc.wait()
            if proc.returncode != 0:
                stderr = await stderr_task
                message = stderr.decode("utf-8", errors="replace").strip()
                raise SourceError(f"journalctl exited with {proc.returncode}: {message}")
        finally:
            if proc.returncode is None:
                with contextlib.suppress(ProcessLookupError):
                    proc.terminate()
                with contextlib.suppress(ProcessLookupError):
                    await proc.wait()
            stderr_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await stderr_task
            logger.debug("journalctl_finished", pid=proc.pid, returncode=proc.returncode)


async def _drain(stream: asyncio.StreamReader) -> bytes:
    """Read a stream to its end, keeping only the tail."""
    tail = b""
    while chunk := await stream.read(4096):
        tail = (tail + chunk)[-_STDERR_TAIL:]
    return tail
