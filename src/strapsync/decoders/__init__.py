"""Decoders for strap proprietary packets."""

from strapsync.decoders.packet import PacketDecoder, StrapPacket
from strapsync.decoders.data import (
    ConsoleLog,
    HistoryMetadata,
    HistoryReading,
    RunAlarm,
    StrapData,
    StrapEvent,
    UnknownEvent,
    VersionInfo,
    decode_data,
)

__all__ = [
    "PacketDecoder",
    "StrapPacket",
    "decode_data",
    "StrapData",
    "HistoryReading",
    "HistoryMetadata",
    "ConsoleLog",
    "RunAlarm",
    "StrapEvent",
    "UnknownEvent",
    "VersionInfo",
]
