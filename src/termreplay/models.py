# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Replay packets and recording messages."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from termreplay.constants import MAX_MESSAGE_MAJOR_VERSION
from termreplay.errors import FieldMissing, FieldTypeMismatch, UnsupportedVersion

_VERSION_RE = re.compile(r"(\d+)\.(\d+)")


class PacketKind(str, Enum):
    IO = "io"
    RESIZE = "resize"


class Direction(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


class Packet(BaseModel):
    """One replay event: an IO chunk or a window resize at a virtual position."""

    pos: int
    kind: PacketKind
    direction: Direction | None = None
    payload: str = ""
    width: int | None = Field(default=None, gt=0)
    height: int | None = Field(default=None, gt=0)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def io(cls, pos: int, direction: Direction, payload: str) -> Packet:
        return cls(pos=pos, kind=PacketKind.IO, direction=direction, payload=payload)

    @classmethod
    def resize(cls, pos: int, width: int, height: int) -> Packet:
        return cls(pos=pos, kind=PacketKind.RESIZE, width=width, height=height)

    @property
    def is_io(self) -> bool:
        return self.kind is PacketKind.IO

    @property
    def is_output(self) -> bool:
        return self.direction is Direction.OUTPUT


class Message(BaseModel):
    """One recording log record, prior to packet extraction."""

    ver: str
    id: int
    pos: int
    timing: str
    in_txt: str
    out_txt: str

    # Passthrough, not validated
    host: Any = None
    rec: Any = None
    user: Any = None
    term: Any = None
    session: Any = None

    model_config = ConfigDict(extra="ignore")

    @property
    def version(self) -> tuple[int, int]:
        match = _VERSION_RE.fullmatch(self.ver)
        if match is None:
            raise UnsupportedVersion(self.ver)
        return int(match.group(1)), int(match.group(2))


_REQUIRED_FIELDS = ("ver", "id", "pos", "timing", "in_txt", "out_txt")


def _type_name(value: Any) -> str:
    if isinstance(value, bool):
        return "boolean"
    if isinstance(value, (int, float)):
        return "number"
    if isinstance(value, str):
        return "string"
    if value is None:
        return "null"
    if isinstance(value, list):
        return "array"
    return "object"


def parse_message(data: Any) -> Message:
    """Validate a decoded JSON record and build a Message.

    Raises:
        FieldTypeMismatch: If the record is not an object, or a field has the wrong type
        FieldMissing: If a required field is absent
        UnsupportedVersion: If "ver" is malformed or its major number is too high
    """
    if not isinstance(data, dict):
        raise FieldTypeMismatch("message", _type_name(data))

    try:
        message = Message.model_validate(data, strict=True)
    except ValidationError as exc:
        # Report fields in declaration order so the first problem is stable
        problems = {str(err["loc"][0]): err["type"] for err in exc.errors() if err["loc"]}
        for field in _REQUIRED_FIELDS:
            if field not in problems:
                continue
            if problems[field] == "missing":
                raise FieldMissing(field) from exc
            raise FieldTypeMismatch(field, _type_name(data.get(field))) from exc
        raise FieldTypeMismatch("message", _type_name(data)) from exc

    major, _minor = message.version
    if major > MAX_MESSAGE_MAJOR_VERSION:
        raise UnsupportedVersion(message.ver)
    return message
