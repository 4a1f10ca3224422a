"""Tests for decoders/data.py: typed records from de-framed packets."""

from __future__ import annotations

import struct

import pytest

from strapsync.decoders import (
    ConsoleLog,
    HistoryMetadata,
    HistoryReading,
    PacketDecoder,
    RunAlarm,
    StrapEvent,
    StrapPacket,
    UnknownEvent,
    VersionInfo,
    decode_data,
)
from strapsync.decoders.reader import PayloadReader
from strapsync.errors import (
    DecodeError,
    InvalidCommandType,
    InvalidData,
    InvalidMetadataType,
    Unimplemented,
)
from strapsync.models import from_unix
from strapsync.protocol import Command, MetadataType, PacketType

from tests.conftest import make_history_payload, make_metadata_payload, make_packet


def _decode_hex(hex_str: str):
    return decode_data(PacketDecoder.decode(bytes.fromhex(hex_str)))


# ===================================================================
# Captured packets
# ===================================================================


class TestCapturedPackets:
    """Packets captured from a real strap, with their known decodings."""

    def test_history_reading_without_rr(self):
        data = _decode_hex(
            "aa5c00f02f0c050f0008029e7e2868906380542c01400000000000000000000021436dff"
            "904d893dec19fb3e5ccf9b3d0a03773f00000000ec19fb3e5ccf9b3d0a03773fe0015702"
            "eb02590239019004010c020c310000000000000115f49cd0"
        )
        assert data == HistoryReading(unix=1747484318, bpm=64, rr=[], activity=1833115904)

    def test_history_reading_with_rr(self):
        data = _decode_hex(
            "aa5c00f02f0c053f940900da106966280080545401360195040000000000000000a34cff"
            "0050bf3b144efb3da4a4463f299c0dbf00004c42144efb3da4a4463f299c0dbff4015502"
            "3b03530255016004010c020c2000000000000002e8c17c8d"
        )
        assert data == HistoryReading(unix=1718161626, bpm=54, rr=[1173], activity=1285750784)

    def test_longer_history_reading(self):
        data = _decode_hex(
            "aa6400a12f1805cb6cc100f7715c67300b805454015700000000000000000000005161cd"
            "a013a03dcdcc1cbbd723133ee146873f00028a46cdcc1cbbd723133ee146873f28026d02"
            "9c03700257019004010c020c3000000000000001b9120000000000000a9c4cac"
        )
        assert data == HistoryReading(unix=1734111735, bpm=87, rr=[], activity=1632698368)

    def test_history_end_metadata(self):
        data = _decode_hex("aa1c00ab31370268ae7667702d32000000c7b6000010000000000000e01eba47")
        assert data == HistoryMetadata(unix=1735831144, data=46791, cmd=MetadataType.HISTORY_END)

    def test_second_history_end_metadata(self):
        data = _decode_hex("aa1c00ab311002a9fc8367205337000000257e00000a0000000000007ac020f8")
        assert data == HistoryMetadata(unix=1736703145, data=32293, cmd=MetadataType.HISTORY_END)

    def test_history_start_metadata(self):
        data = _decode_hex(
            "aa2c005231010146fb8367404c060000001000000002000000290000001000000003000000"
            "0000000008020055fd251d"
        )
        assert data == HistoryMetadata(unix=1736702790, data=16, cmd=MetadataType.HISTORY_START)

    def test_console_log(self):
        packet = StrapPacket(
            packet_type=PacketType.CONSOLE_LOGS,
            seq=0,
            command_id=2,
            payload=bytes.fromhex(
                "007e0b6d67907b340001205472696d3a20307830303030303030303a303030316236"
                "65662028303a313132333637290a3231312c203131323633313400"
            ),
        )
        assert decode_data(packet) == ConsoleLog(
            unix=1735199614,
            text=" Trim: 0x00000000:0001b6ef (0:112367)\n211, 1126314\0",
        )

    def test_run_alarm_event(self):
        packet = StrapPacket(
            packet_type=PacketType.EVENT,
            seq=0,
            command_id=68,
            payload=bytes.fromhex("00b70c5467000c04000101ff00"),
        )
        assert decode_data(packet) == RunAlarm(unix=1733561527)

    def test_version_info(self):
        data = _decode_hex(
            "aa50000c2477070a0101290000001100000002000000000000001100000002000000020000"
            "0000000000030000000400000000000000000000000300000006000000000000000000000008"
            "050100000074b95569"
        )
        assert data == VersionInfo(harvard="41.17.2.0", boylston="17.2.2.0")


# ===================================================================
# History readings
# ===================================================================


class TestHistoryReading:
    def test_rr_zero_slots_dropped(self):
        payload = make_history_payload(unix=1_700_000_000, bpm=62, rr=[900, 950])
        data = decode_data(make_packet(PacketType.HISTORICAL_DATA, 0x05, payload))
        assert data.rr == [900, 950]
        assert data.bpm == 62
        assert data.unix == 1_700_000_000

    def test_rr_count_mismatch_is_invalid(self):
        payload = make_history_payload(rr=[900], rr_count=2)
        with pytest.raises(InvalidData):
            decode_data(make_packet(PacketType.HISTORICAL_DATA, 0x05, payload))

    def test_truncated_payload_is_invalid(self):
        payload = make_history_payload()[:20]
        with pytest.raises(InvalidData):
            decode_data(make_packet(PacketType.HISTORICAL_DATA, 0x05, payload))

    def test_zero_bpm_is_not_valid(self):
        assert not HistoryReading(unix=1, bpm=0).is_valid()
        assert HistoryReading(unix=1, bpm=40).is_valid()

    def test_to_sample(self):
        sample = HistoryReading(unix=1_700_000_000, bpm=55, rr=[1000], activity=7).to_sample()
        assert sample.time == from_unix(1_700_000_000)
        assert sample.bpm == 55
        assert sample.rr_intervals == [1000]
        assert sample.activity_code == 7
        assert sample.stress is None


# ===================================================================
# Metadata
# ===================================================================


class TestMetadata:
    @pytest.mark.parametrize("cmd", list(MetadataType))
    def test_known_types(self, cmd):
        payload = make_metadata_payload(unix=1_736_000_000, data=123)
        data = decode_data(make_packet(PacketType.METADATA, cmd, payload))
        assert data == HistoryMetadata(unix=1_736_000_000, data=123, cmd=cmd)

    def test_unknown_type(self):
        with pytest.raises(InvalidMetadataType) as exc:
            decode_data(make_packet(PacketType.METADATA, 9, make_metadata_payload()))
        assert exc.value.command == 9

    def test_truncated(self):
        with pytest.raises(InvalidData):
            decode_data(make_packet(PacketType.METADATA, MetadataType.HISTORY_END, b"\x00" * 8))


# ===================================================================
# Console logs
# ===================================================================


class TestConsoleLog:
    def test_every_marker_removed(self):
        body = b"ab\x34\x00\x01cd\x34\x00\x01ef"
        payload = b"\x00" + struct.pack("<I", 1_735_000_000) + b"\x00\x00" + body
        data = decode_data(make_packet(PacketType.CONSOLE_LOGS, 0x02, payload))
        assert data == ConsoleLog(unix=1_735_000_000, text="abcdef")

    def test_invalid_utf8_is_replaced(self):
        payload = b"\x00" + struct.pack("<I", 1) + b"\x00\x00" + b"ok\xff"
        data = decode_data(make_packet(PacketType.CONSOLE_LOGS, 0x02, payload))
        assert data.text == "ok\ufffd"

    def test_short_header_gives_empty_log(self):
        payload = b"\x00" + struct.pack("<I", 5) + b"\x00"
        data = decode_data(make_packet(PacketType.CONSOLE_LOGS, 0x02, payload))
        assert data == ConsoleLog(unix=5, text="")

    def test_truncated(self):
        with pytest.raises(InvalidData):
            decode_data(make_packet(PacketType.CONSOLE_LOGS, 0x02, b"\x00\x01\x02"))


# ===================================================================
# Events
# ===================================================================


class TestEvents:
    PAYLOAD = b"\x00" + struct.pack("<I", 1_733_561_527) + b"\x00\x00"

    @pytest.mark.parametrize("command", [
        Command.TOGGLE_REALTIME_HR,
        Command.TOGGLE_GENERIC_HR_PROFILE,
        Command.GET_CLOCK,
        Command.TOGGLE_R7_DATA_COLLECTION,
        Command.REBOOT_STRAP,
        Command.SEND_R10_R11_REALTIME,
    ])
    def test_whitelisted_commands(self, command):
        data = decode_data(make_packet(PacketType.EVENT, command, self.PAYLOAD))
        assert data == StrapEvent(unix=1_733_561_527, event=command)

    def test_run_alarm(self):
        data = decode_data(make_packet(PacketType.EVENT, Command.RUN_ALARM, self.PAYLOAD))
        assert data == RunAlarm(unix=1_733_561_527)

    def test_unknown_command_byte(self):
        data = decode_data(make_packet(PacketType.EVENT, 0x05, self.PAYLOAD))
        assert data == UnknownEvent(unix=1_733_561_527, event=0x05)

    def test_known_but_unhandled_command(self):
        with pytest.raises(Unimplemented):
            decode_data(make_packet(PacketType.EVENT, Command.GET_BATTERY_LEVEL, self.PAYLOAD))

    def test_truncated_event(self):
        with pytest.raises(InvalidData):
            decode_data(make_packet(PacketType.EVENT, Command.RUN_ALARM, b"\x00\x01"))


# ===================================================================
# Command responses and other packet types
# ===================================================================


class TestCommandResponse:
    def test_unknown_command_byte(self):
        with pytest.raises(InvalidCommandType) as exc:
            decode_data(make_packet(PacketType.COMMAND_RESPONSE, 0x05, b"\x00" * 40))
        assert exc.value.command == 0x05

    def test_known_but_unhandled_command(self):
        with pytest.raises(Unimplemented):
            decode_data(make_packet(PacketType.COMMAND_RESPONSE, Command.GET_BATTERY_LEVEL, b"\x00"))

    def test_truncated_version_info(self):
        with pytest.raises(InvalidData):
            decode_data(make_packet(PacketType.COMMAND_RESPONSE, Command.REPORT_VERSION_INFO, b"\x00" * 10))

    def test_unhandled_packet_type(self):
        with pytest.raises(Unimplemented):
            decode_data(make_packet(PacketType.REALTIME_DATA, 0x00, b"\x00" * 8))


class TestErrorTaxonomy:
    @pytest.mark.parametrize("error", [
        InvalidCommandType(1),
        InvalidMetadataType(1),
        InvalidData(),
        Unimplemented(),
    ])
    def test_all_are_decode_errors(self, error):
        assert isinstance(error, DecodeError)


class TestPayloadReader:
    def test_reads_little_endian(self):
        reader = PayloadReader(b"\x01\x02\x00\x03\x00\x00\x00\xff")
        assert reader.u8() == 1
        assert reader.u16() == 2
        assert reader.u32() == 3
        assert reader.remaining == 1
        assert reader.rest() == b"\xff"
        assert reader.remaining == 0

    def test_underrun_raises(self):
        reader = PayloadReader(b"\x01\x02")
        with pytest.raises(InvalidData):
            reader.u32()
