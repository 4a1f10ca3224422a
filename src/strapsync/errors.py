"""Decode errors raised while turning strap packets into typed records.

The taxonomy is closed: callers catch :class:`DecodeError` and skip the
packet.  None of these are fatal to an ingest run.
"""

from __future__ import annotations


class DecodeError(Exception):
    """Base class for every packet decode failure."""


class InvalidCommandType(DecodeError):
    """The command byte is not a known strap command."""

    def __init__(self, command: int) -> None:
        super().__init__(f"invalid command type 0x{command:02X}")
        self.command = command


class InvalidMetadataType(DecodeError):
    """The command byte of a METADATA packet is not a known metadata type."""

    def __init__(self, command: int) -> None:
        super().__init__(f"invalid metadata type 0x{command:02X}")
        self.command = command


class InvalidData(DecodeError):
    """Payload too short, or a length/count field disagrees with the data."""

    def __init__(self, message: str = "invalid data") -> None:
        super().__init__(message)


class Unimplemented(DecodeError):
    """Recognized packet type, but no decoder for this command."""

    def __init__(self, message: str = "unimplemented") -> None:
        super().__init__(message)
