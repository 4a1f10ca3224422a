"""Base packet parser for strap proprietary BLE packets.

    [SOF: 0xAA] [LENGTH: 2B LE] [CRC8: 1B] [TYPE] [SEQ] [CMD] [DATA...] [CRC32: 4B LE]
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from strapsync.protocol import (
    SOF,
    CRC32_SIZE,
    HEADER_SIZE,
    MIN_PACKET_SIZE,
    PacketType,
    Command,
    crc8,
    crc32,
)


@dataclass
class StrapPacket:
    """A de-framed strap packet."""

    packet_type: int | None
    seq: int | None
    command_id: int | None
    payload: bytes
    raw: bytes = b""
    crc8_valid: bool = True
    crc32_valid: bool | None = True
    complete: bool = True

    @property
    def valid(self) -> bool:
        """True when the packet is complete and both CRCs match."""
        return self.complete and self.crc8_valid and bool(self.crc32_valid)

    @property
    def type_name(self) -> str:
        if self.packet_type is None:
            return "?"
        try:
            return PacketType(self.packet_type).name
        except ValueError:
            return f"0x{self.packet_type:02X}"

    @property
    def command_name(self) -> str:
        if self.command_id is None:
            return "?"
        try:
            return Command(self.command_id).name
        except ValueError:
            return f"0x{self.command_id:02X}"

    def __repr__(self) -> str:
        status = "" if self.complete else ", INCOMPLETE"
        crc = "" if self.crc32_valid in (True, None) else ", crc32=BAD"
        return (
            f"StrapPacket(type={self.type_name}, seq={self.seq}, "
            f"cmd={self.command_name}, payload={self.payload.hex()}{crc}{status})"
        )


class PacketDecoder:
    """Decode raw notification bytes into StrapPacket structures."""

    @staticmethod
    def decode(data: bytes | bytearray) -> StrapPacket | None:
        """Parse raw bytes into a StrapPacket.

        Returns None if the data doesn't start with SOF or is too short.
        """
        data = bytes(data)

        if len(data) < MIN_PACKET_SIZE:
            return None
        if data[0] != SOF:
            return None

        length_field = struct.unpack_from("<H", data, 1)[0]
        crc8_valid = data[3] == crc8(data[1:3])

        inner_size = length_field - CRC32_SIZE
        if inner_size < 0:
            return None

        inner_end = HEADER_SIZE + inner_size
        total_end = HEADER_SIZE + length_field

        complete = len(data) >= total_end
        inner = data[HEADER_SIZE:inner_end]

        packet_type = inner[0] if len(inner) > 0 else None
        seq = inner[1] if len(inner) > 1 else None
        command_id = inner[2] if len(inner) > 2 else None
        payload = bytes(inner[3:])

        crc32_valid = None
        if complete:
            stored = struct.unpack_from("<I", data, inner_end)[0]
            crc32_valid = stored == crc32(inner)

        return StrapPacket(
            packet_type=packet_type,
            seq=seq,
            command_id=command_id,
            payload=payload,
            raw=data,
            crc8_valid=crc8_valid,
            crc32_valid=crc32_valid,
            complete=complete,
        )
