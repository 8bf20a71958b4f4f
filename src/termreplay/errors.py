# Copyright (c) 2025-2026 provide.io llc
# SPDX-License-Identifier: AGPL-3.0-or-later

"""Exception hierarchy for recording replay."""


class ReplayError(Exception):
    """Base exception for recording replay."""

    pass


class StreamError(ReplayError):
    """The entry stream failed or delivered an unparsable container.

    Fatal to the packet buffer.
    """

    pass


class SourceError(ReplayError):
    """The entry source (journal reader, file) failed."""

    pass


class EntryError(ReplayError):
    """A single entry is invalid. Reported, ingestion continues."""

    pass


class FieldMissing(EntryError):
    """A required message field is absent."""

    def __init__(self, field: str) -> None:
        super().__init__(f'"{field}" field is missing')
        self.field = field


class FieldTypeMismatch(EntryError):
    """A message field has the wrong type."""

    def __init__(self, field: str, type_name: str) -> None:
        super().__init__(f'invalid "{field}" field type: {type_name}')
        self.field = field
        self.type_name = type_name


class UnsupportedVersion(EntryError):
    """The message format version is malformed or too new."""

    def __init__(self, version: str) -> None:
        super().__init__(f'"ver" field has invalid value: {version}')
        self.version = version


class OrderingViolation(EntryError):
    """Message "id" or "pos" went backwards."""

    def __init__(self, field: str, value: int) -> None:
        super().__init__(f'out of order "{field}" field value: {value}')
        self.field = field
        self.value = value


class DecodeError(ReplayError):
    """Malformed timing string or text pool under/over-run."""

    pass


class Cancelled(ReplayError):
    """The packet buffer was stopped deliberately.

    A terminal rejection reason for waiters, never displayed as an error.
    """

    def __init__(self) -> None:
        super().__init__("packet buffer stopped")
