# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Timing string decoder.

A recording message carries its terminal IO as two text pools (``in_txt`` and
``out_txt``) plus a timing string describing how the pools are sliced and
spaced in time:

    +N      delay of N ms
    <N      N characters of text input
    [N/M    binary input, N replacement characters in the input pool (M bytes)
    >N      N characters of text output
    ]N/M    binary output, N replacement characters in the output pool (M bytes)
    =WxH    window resized to W columns by H rows

Tokens follow each other without separators; the string ends the message.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum

from termreplay.errors import DecodeError
from termreplay.models import Direction, Packet

_TOKEN_RE = re.compile(
    r"\+(?P<delay>\d+)"
    r"|<(?P<text_in>\d+)"
    r"|\[(?P<bin_in>\d+)/(?P<bin_in_bytes>\d+)"
    r"|>(?P<text_out>\d+)"
    r"|\](?P<bin_out>\d+)/(?P<bin_out_bytes>\d+)"
    r"|=(?P<width>\d+)x(?P<height>\d+)"
)


class TokenKind(str, Enum):
    DELAY = "delay"
    INPUT = "input"
    OUTPUT = "output"
    WINDOW = "window"
    END = "end"


@dataclass(frozen=True)
class Token:
    kind: TokenKind
    count: int = 0
    width: int = 0
    height: int = 0


@dataclass
class DecodedChunk:
    """Packets of one message plus the decoder state to carry into the next."""

    packets: list[Packet] = field(default_factory=list)
    end_pos: int = 0
    width: int | None = None
    height: int | None = None


def next_token(timing: str, offset: int) -> tuple[Token, int]:
    """Read one token at ``offset``.

    Returns:
        The token and the offset just past it. At the end of the string an
        END token is returned with the offset unchanged.

    Raises:
        DecodeError: If no token matches at ``offset``
    """
    if offset >= len(timing):
        return Token(TokenKind.END), offset

    match = _TOKEN_RE.match(timing, offset)
    if match is None:
        raise DecodeError("invalid timing string")

    groups = match.groupdict()
    if groups["delay"] is not None:
        token = Token(TokenKind.DELAY, count=int(groups["delay"]))
    elif groups["text_in"] is not None:
        token = Token(TokenKind.INPUT, count=int(groups["text_in"]))
    elif groups["bin_in"] is not None:
        token = Token(TokenKind.INPUT, count=int(groups["bin_in"]))
    elif groups["text_out"] is not None:
        token = Token(TokenKind.OUTPUT, count=int(groups["text_out"]))
    elif groups["bin_out"] is not None:
        token = Token(TokenKind.OUTPUT, count=int(groups["bin_out"]))
    else:
        token = Token(TokenKind.WINDOW, width=int(groups["width"]), height=int(groups["height"]))
    return token, match.end()


def decode_message(
    timing: str,
    in_txt: str,
    out_txt: str,
    *,
    pos: int = 0,
    width: int | None = None,
    height: int | None = None,
) -> DecodedChunk:
    """Decode one message's timing string into packets.

    Args:
        timing: Timing string
        in_txt: Input text pool
        out_txt: Output text pool
        pos: Virtual position of the message start, ms
        width: Last known window width, if any
        height: Last known window height, if any

    Returns:
        Decoded packets, the position after the last delay and the last window size

    Raises:
        DecodeError: On a malformed token, a pool under-run or unconsumed pool text
    """
    packets: list[Packet] = []
    io: list[str] = []
    direction: Direction | None = None
    in_pos = 0
    out_pos = 0
    offset = 0

    def flush() -> None:
        if io and direction is not None:
            packets.append(Packet.io(pos, direction, "".join(io)))
            io.clear()

    while True:
        token, offset = next_token(timing, offset)

        if token.kind is TokenKind.END:
            break

        if token.kind is TokenKind.DELAY:
            if token.count == 0:
                continue
            flush()
            pos += token.count

        elif token.kind is TokenKind.INPUT:
            if token.count == 0:
                continue
            if direction is Direction.OUTPUT:
                flush()
            direction = Direction.INPUT
            chunk = in_txt[in_pos : in_pos + token.count]
            if len(chunk) != token.count:
                raise DecodeError("timing entry out of input bounds")
            in_pos += token.count
            io.append(chunk)

        elif token.kind is TokenKind.OUTPUT:
            if token.count == 0:
                continue
            if direction is Direction.INPUT:
                flush()
            direction = Direction.OUTPUT
            chunk = out_txt[out_pos : out_pos + token.count]
            if len(chunk) != token.count:
                raise DecodeError("timing entry out of output bounds")
            out_pos += token.count
            io.append(chunk)

        else:
            if token.width == width and token.height == height:
                continue
            if token.width <= 0 or token.height <= 0:
                raise DecodeError(f"invalid window size {token.width}x{token.height}")
            flush()
            packets.append(Packet.resize(pos, token.width, token.height))
            width = token.width
            height = token.height

    if in_pos < len(in_txt):
        raise DecodeError("extra input present")
    if out_pos < len(out_txt):
        raise DecodeError("extra output present")

    flush()
    return DecodedChunk(packets=packets, end_pos=pos, width=width, height=height)


def decode(timing: str, in_txt: str, out_txt: str) -> list[Packet]:
    """Decode a timing string and its text pools into an ordered packet list.

    Raises:
        DecodeError: On malformed input
    """
    return decode_message(timing, in_txt, out_txt).packets
