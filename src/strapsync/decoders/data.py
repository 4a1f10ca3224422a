"""Typed records decoded from strap packets.

:func:`decode_data` turns one de-framed :class:`StrapPacket` into exactly
one record, or raises a :class:`~strapsync.errors.DecodeError`.  Layouts
(all integers little-endian):

HISTORICAL_DATA
    [0:4]    unknown
    [4:8]    uint32  unix timestamp
    [8:14]   unknown
    [14]     uint8   heart rate (bpm)
    [15]     uint8   RR interval count
    [16:24]  4x uint16 RR intervals (ms), zero = unused slot
    [24:28]  uint32  activity code

METADATA (command byte = MetadataType)
    [0:4]    uint32  unix timestamp
    [4:10]   unknown
    [10:14]  uint32  data (echoed back in the HISTORY_END ack)

CONSOLE_LOGS
    [0]      unknown
    [1:5]    uint32  unix timestamp
    [5:7]    unknown
    [7:]     text, with 34 00 01 markers interleaved

EVENT (command byte = the command the event reports)
    [0]      unknown
    [1:5]    uint32  unix timestamp

COMMAND_RESPONSE to REPORT_VERSION_INFO
    [0:3]    unknown
    [3:35]   8x uint32 harvard major/minor/patch/build,
                       boylston major/minor/patch/build
"""

from __future__ import annotations

from dataclasses import dataclass, field

from strapsync.decoders.packet import StrapPacket
from strapsync.decoders.reader import PayloadReader
from strapsync.errors import (
    InvalidCommandType,
    InvalidData,
    InvalidMetadataType,
    Unimplemented,
)
from strapsync.models import RawSample, from_unix
from strapsync.protocol import EVENT_COMMANDS, Command, MetadataType, PacketType

RR_SLOTS = 4
CONSOLE_LOG_MARKER = b"\x34\x00\x01"


@dataclass
class HistoryReading:
    """A single historical HR / RR / activity reading."""

    unix: int
    bpm: int
    rr: list[int] = field(default_factory=list)
    activity: int = 0

    def is_valid(self) -> bool:
        """Readings with bpm == 0 are wake-up / garbage records."""
        return self.bpm > 0

    def to_sample(self) -> RawSample:
        return RawSample(
            time=from_unix(self.unix),
            bpm=self.bpm,
            rr_intervals=list(self.rr),
            activity_code=self.activity,
        )


@dataclass
class HistoryMetadata:
    unix: int
    data: int
    cmd: MetadataType


@dataclass
class ConsoleLog:
    unix: int
    text: str


@dataclass
class RunAlarm:
    unix: int


@dataclass
class StrapEvent:
    unix: int
    event: Command


@dataclass
class UnknownEvent:
    unix: int
    event: int


@dataclass
class VersionInfo:
    harvard: str
    boylston: str


StrapData = (
    HistoryReading
    | HistoryMetadata
    | ConsoleLog
    | RunAlarm
    | StrapEvent
    | UnknownEvent
    | VersionInfo
)


def decode_data(packet: StrapPacket) -> StrapData:
    """Decode a de-framed packet into its typed record.

    Raises:
        DecodeError: one of InvalidCommandType, InvalidMetadataType,
            InvalidData or Unimplemented.
    """
    command = packet.command_id if packet.command_id is not None else 0
    if packet.packet_type == PacketType.HISTORICAL_DATA:
        return _decode_history_reading(packet.payload)
    if packet.packet_type == PacketType.METADATA:
        return _decode_metadata(command, packet.payload)
    if packet.packet_type == PacketType.CONSOLE_LOGS:
        return _decode_console_log(packet.payload)
    if packet.packet_type == PacketType.EVENT:
        return _decode_event(command, packet.payload)
    if packet.packet_type == PacketType.COMMAND_RESPONSE:
        try:
            response_to = Command(command)
        except ValueError:
            raise InvalidCommandType(command) from None
        if response_to == Command.REPORT_VERSION_INFO:
            return _decode_version_info(packet.payload)
        raise Unimplemented(f"command response {response_to.name}")
    raise Unimplemented(f"packet type {packet.type_name}")


def _decode_history_reading(payload: bytes) -> HistoryReading:
    reader = PayloadReader(payload)
    reader.skip(4)
    unix = reader.u32()
    reader.skip(6)
    bpm = reader.u8()
    rr_count = reader.u8()
    rr = [value for value in (reader.u16() for _ in range(RR_SLOTS)) if value]
    if len(rr) != rr_count:
        raise InvalidData(f"rr count {rr_count} but {len(rr)} intervals present")
    activity = reader.u32()
    return HistoryReading(unix=unix, bpm=bpm, rr=rr, activity=activity)


def _decode_metadata(command: int, payload: bytes) -> HistoryMetadata:
    try:
        cmd = MetadataType(command)
    except ValueError:
        raise InvalidMetadataType(command) from None

    reader = PayloadReader(payload)
    unix = reader.u32()
    reader.skip(6)
    data = reader.u32()
    return HistoryMetadata(unix=unix, data=data, cmd=cmd)


def _decode_console_log(payload: bytes) -> ConsoleLog:
    reader = PayloadReader(payload)
    reader.skip(1)
    unix = reader.u32()
    # The two header bytes after the timestamp may be cut short.
    reader.skip(min(2, reader.remaining))
    body = reader.rest().replace(CONSOLE_LOG_MARKER, b"")
    # Some log chunks arrive partially corrupted; keep what is readable.
    text = body.decode("utf-8", errors="replace")
    return ConsoleLog(unix=unix, text=text)


def _decode_event(command: int, payload: bytes) -> RunAlarm | StrapEvent | UnknownEvent:
    reader = PayloadReader(payload)
    reader.skip(1)
    unix = reader.u32()

    try:
        event = Command(command)
    except ValueError:
        return UnknownEvent(unix=unix, event=command)

    if event == Command.RUN_ALARM:
        return RunAlarm(unix=unix)
    if event in EVENT_COMMANDS:
        return StrapEvent(unix=unix, event=event)
    raise Unimplemented(f"event {event.name}")


def _decode_version_info(payload: bytes) -> VersionInfo:
    reader = PayloadReader(payload)
    reader.skip(3)
    harvard = ".".join(str(reader.u32()) for _ in range(4))
    boylston = ".".join(str(reader.u32()) for _ in range(4))
    return VersionInfo(harvard=harvard, boylston=boylston)
