"""Little-endian cursor over a packet payload."""

from __future__ import annotations

import struct

from strapsync.errors import InvalidData


class PayloadReader:
    """Sequential reader that raises :class:`InvalidData` instead of
    reading past the end of the payload."""

    def __init__(self, data: bytes | bytearray) -> None:
        self._data = bytes(data)
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._data) - self._pos

    def read(self, size: int) -> bytes:
        if size > self.remaining:
            raise InvalidData(
                f"need {size} bytes at offset {self._pos}, "
                f"only {self.remaining} left"
            )
        chunk = self._data[self._pos:self._pos + size]
        self._pos += size
        return chunk

    def skip(self, size: int) -> None:
        self.read(size)

    def u8(self) -> int:
        return self.read(1)[0]

    def u16(self) -> int:
        return struct.unpack("<H", self.read(2))[0]

    def u32(self) -> int:
        return struct.unpack("<I", self.read(4))[0]

    def rest(self) -> bytes:
        return self.read(self.remaining)
