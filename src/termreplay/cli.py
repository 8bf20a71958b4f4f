# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

from __future__ import annotations

import asyncio
import sys
from datetime import datetime
from pathlib import Path

import click

from termreplay.buffer import PacketBuffer
from termreplay.constants import MAX_SPEED_EXPONENT, MIN_SPEED_EXPONENT, RECORDING_FIELD
from termreplay.engine import PlaybackEngine
from termreplay.error_sink import ErrorSink
from termreplay.errors import ReplayError
from termreplay.formatting import format_datetime, format_duration, format_progress, format_speed
from termreplay.logging import bind_context, configure_logging
from termreplay.player import Player
from termreplay.recordings import RecordingFilter, list_recordings
from termreplay.search import search_positions
from termreplay.settings import Settings
from termreplay.sources import EntrySource, JournalctlSource, JsonlSource
from termreplay.terminal import ScreenSink, StreamSink

file_option = click.option(
    "--file",
    "file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read a 'journalctl -o json' export instead of the system journal.",
)


def _source(settings: Settings, file: Path | None) -> EntrySource:
    if file is not None:
        return JsonlSource(file, poll_interval_s=settings.poll_interval_s)
    return JournalctlSource(settings.journalctl_path)


def _report(errors: ErrorSink) -> None:
    for message in errors:
        click.echo(f"error: {message}", err=True)


def _check_found(buffer: PacketBuffer, recording_id: str) -> None:
    if buffer.entry_count == 0 and buffer.error is None:
        raise click.ClickException(f"recording not found: {recording_id}")


async def _load(source: EntrySource, recording_id: str, errors: ErrorSink) -> PacketBuffer:
    bind_context(recording=recording_id)
    buffer = PacketBuffer(source, [f"{RECORDING_FIELD}={recording_id}"], errors)
    buffer.start()
    await buffer.wait_loaded()
    await buffer.close()
    _check_found(buffer, recording_id)
    return buffer


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.pass_context
def cli(ctx: click.Context) -> None:
    """termreplay command line interface."""
    settings = Settings()
    configure_logging(settings)
    ctx.obj = settings


@cli.command("list")
@file_option
@click.option("--user", default=None, help="Only recordings of this user.")
@click.option("--host", default=None, help="Only recordings made on this host.")
@click.option("--since", type=click.DateTime(), default=None)
@click.option("--until", type=click.DateTime(), default=None)
@click.option("--grep", default=None, help="Only recordings containing this text.")
@click.pass_obj
def list_command(
    settings: Settings,
    file: Path | None,
    user: str | None,
    host: str | None,
    since: datetime | None,
    until: datetime | None,
    grep: str | None,
) -> None:
    """List recordings, oldest first."""
    recording_filter = RecordingFilter(username=user, hostname=host, since=since, until=until, search=grep)
    try:
        index = asyncio.run(list_recordings(_source(settings, file), recording_filter))
    except ReplayError as e:
        raise click.ClickException(str(e)) from e

    for recording in index.recordings:
        columns = [
            recording.id,
            recording.user or "-",
            format_datetime(recording.start),
            format_duration(recording.duration),
        ]
        if index.diff_hosts:
            columns.append(recording.hostname or "-")
        click.echo("\t".join(columns))


@cli.command("play")
@click.argument("recording_id")
@file_option
@click.option(
    "--speed",
    type=click.IntRange(MIN_SPEED_EXPONENT, MAX_SPEED_EXPONENT),
    default=None,
    help="Speed exponent; playback runs at 2**speed.",
)
@click.option("--seek", type=int, default=None, help="Start at this recording position, ms.")
@click.option("--follow/--no-follow", default=False, show_default=True, help="Keep playing new output.")
@click.pass_obj
def play(
    settings: Settings,
    recording_id: str,
    file: Path | None,
    speed: int | None,
    seek: int | None,
    follow: bool,
) -> None:
    """Replay a recording to the terminal in real time."""
    errors = ErrorSink()
    speed_exponent = settings.speed_exponent if speed is None else speed

    async def _run() -> None:
        bind_context(recording=recording_id)
        buffer = PacketBuffer(_source(settings, file), [f"{RECORDING_FIELD}={recording_id}"], errors)
        player = Player(
            buffer,
            StreamSink(sys.stdout),
            errors=errors,
            speed_exponent=speed_exponent,
            tick_interval_ms=settings.tick_interval_ms,
        )
        buffer.start()
        player.start()
        if seek is not None:
            player.seek_to(seek)
        try:
            if follow:
                while not (player.stopped or player.halted):
                    await asyncio.sleep(settings.tick_interval_ms / 1000.0)
            else:
                await buffer.wait_loaded()
                _check_found(buffer, recording_id)
                await player.wait_finished()
        finally:
            await player.close()
            await buffer.close()
        status = format_progress(player.position, player.duration)
        if speed_text := format_speed(speed_exponent):
            status += f" {speed_text}"
        click.echo(f"\n[{status}]", err=True)

    try:
        asyncio.run(_run())
    except KeyboardInterrupt:
        pass
    finally:
        _report(errors)


@cli.command("snapshot")
@click.argument("recording_id")
@file_option
@click.option("--at", "at", type=int, default=None, help="Recording position, ms (default: the end).")
@click.pass_obj
def snapshot(settings: Settings, recording_id: str, file: Path | None, at: int | None) -> None:
    """Print the terminal screen at a recording position."""
    errors = ErrorSink()
    sink = ScreenSink(settings.cols, settings.rows)

    async def _run() -> PacketBuffer:
        buffer = await _load(_source(settings, file), recording_id, errors)
        engine = PlaybackEngine(buffer, sink, paused=True)
        if at is None:
            engine.fast_forward_to_end()
        else:
            engine.seek_to(at)
        return buffer

    try:
        buffer = asyncio.run(_run())
    finally:
        _report(errors)
    click.echo(sink.text)
    if sink.input_line:
        click.echo(f"input: {sink.input_line}")
    if buffer.error is not None:
        raise click.exceptions.Exit(1)


@cli.command("dump")
@click.argument("recording_id")
@file_option
@click.pass_obj
def dump(settings: Settings, recording_id: str, file: Path | None) -> None:
    """Print a recording's decoded packets as JSON lines."""
    errors = ErrorSink()
    try:
        buffer = asyncio.run(_load(_source(settings, file), recording_id, errors))
    finally:
        _report(errors)
    for packet in buffer:
        click.echo(packet.model_dump_json(exclude_none=True))
    if buffer.error is not None:
        raise click.exceptions.Exit(1)


@cli.command("search")
@click.argument("recording_id")
@click.argument("text")
@file_option
@click.pass_obj
def search(settings: Settings, recording_id: str, text: str, file: Path | None) -> None:
    """Print the positions where TEXT occurs in a recording."""
    match_list = [f"{RECORDING_FIELD}={recording_id}"]
    try:
        positions = asyncio.run(search_positions(_source(settings, file), match_list, text))
    except ReplayError as e:
        raise click.ClickException(str(e)) from e
    for pos in positions:
        click.echo(f"{format_duration(pos)}\t{pos}")


def main() -> None:
    cli.main()


if __name__ == "__main__":
    main()
