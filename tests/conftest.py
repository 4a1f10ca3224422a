"""Shared fixtures and helpers for the strapsync test suite."""

from __future__ import annotations

import json
import struct
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import SimpleNamespace

import pytest

from strapsync.decoders.packet import PacketDecoder, StrapPacket
from strapsync.models import RawSample
from strapsync.protocol import (
    CMD_FROM_STRAP_UUID,
    CMD_TO_STRAP_UUID,
    DATA_FROM_STRAP_UUID,
    EVENTS_FROM_STRAP_UUID,
    STRAP_SERVICE_UUID,
    PacketType,
    build_history_start,
    build_packet,
)
from strapsync.storage import MemoryStore

# Activity codes well inside each band
INACTIVE_CODE = 100_000_000
ACTIVE_CODE = 700_000_000
SLEEP_CODE = 1_200_000_000
AWAKE_CODE = 1_700_000_000

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)
MINUTE = timedelta(minutes=1)
SECOND = timedelta(seconds=1)


# ---------------------------------------------------------------------------
# Packet-building helpers
# ---------------------------------------------------------------------------


def make_packet(
    packet_type: int = PacketType.HISTORICAL_DATA,
    command: int = 0x05,
    data: bytes = b"",
    seq: int = 0,
) -> StrapPacket:
    """Build a strap packet and return the de-framed StrapPacket."""
    raw = build_packet(packet_type, command, data, seq)
    sp = PacketDecoder.decode(raw)
    assert sp is not None, f"Failed to decode built packet: {raw.hex()}"
    return sp


def make_history_payload(
    unix: int = 1_704_067_200,
    bpm: int = 60,
    rr: list[int] | None = None,
    activity: int = SLEEP_CODE,
    rr_count: int | None = None,
) -> bytes:
    """Build a HISTORICAL_DATA reading payload.

    Unused RR slots are zero.  *rr_count* overrides the count byte so that
    inconsistent readings can be built.
    """
    rr = list(rr or [])
    slots = rr + [0] * (4 - len(rr))

    buf = bytearray(4)                              # [0:4] unknown
    buf += struct.pack("<I", unix)                  # [4:8]
    buf += bytes(6)                                 # [8:14] unknown
    buf.append(bpm)                                 # [14]
    buf.append(len(rr) if rr_count is None else rr_count)  # [15]
    buf += struct.pack("<4H", *slots)               # [16:24]
    buf += struct.pack("<I", activity)              # [24:28]
    return bytes(buf)


def make_metadata_payload(unix: int = 1_704_067_200, data: int = 0) -> bytes:
    """Build a METADATA payload: unix, 6 unknown bytes, data."""
    return struct.pack("<I", unix) + bytes(6) + struct.pack("<I", data) + bytes(8)


# ---------------------------------------------------------------------------
# Sample helpers
# ---------------------------------------------------------------------------


def make_samples(
    start: datetime,
    runs: list[tuple[int, int]],
    step: timedelta = MINUTE,
    bpm: int = 60,
    rr: list[int] | None = None,
) -> list[RawSample]:
    """Build consecutive samples from ``(activity_code, count)`` runs."""
    samples: list[RawSample] = []
    t = start
    for code, count in runs:
        for _ in range(count):
            samples.append(RawSample(
                time=t,
                bpm=bpm,
                rr_intervals=list(rr or []),
                activity_code=code,
            ))
            t += step
    return samples


def fill_store(store, samples: list[RawSample]):
    for sample in samples:
        store.create_sample(sample)
    return store


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


# ---------------------------------------------------------------------------
# JSONL capture file helpers
# ---------------------------------------------------------------------------


def write_jsonl(path: Path, entries: list[dict]) -> Path:
    """Write a list of dicts as JSONL to the given path."""
    with open(path, "w") as f:
        for entry in entries:
            f.write(json.dumps(entry) + "\n")
    return path


def make_capture_entry(
    uuid: str,
    hex_data: str,
    timestamp: str = "2024-02-13T12:00:00Z",
) -> dict:
    """Create a single JSONL capture entry."""
    return {
        "uuid": uuid,
        "hex_data": hex_data,
        "timestamp": timestamp,
    }


# ---------------------------------------------------------------------------
# Fake BLE client
# ---------------------------------------------------------------------------


class FakeStrapClient:
    """Stands in for ``BleakClient`` with a scripted history download.

    Writing the history-start command pushes every ``(uuid, raw)`` pair in
    *script* through the subscribed callbacks, then optionally fires the
    disconnect callback.
    """

    def __init__(self, script, disconnect=False, with_service=True, disconnected_callback=None):
        self.script = list(script)
        self.disconnect = disconnect
        self.disconnected_callback = disconnected_callback
        self.callbacks = {}
        self.written: list[bytes] = []
        chars = [
            SimpleNamespace(uuid=CMD_TO_STRAP_UUID, properties=["write"]),
            SimpleNamespace(uuid=CMD_FROM_STRAP_UUID, properties=["notify"]),
            SimpleNamespace(uuid=EVENTS_FROM_STRAP_UUID, properties=["notify"]),
            SimpleNamespace(uuid=DATA_FROM_STRAP_UUID, properties=["notify"]),
        ]
        self.services = [SimpleNamespace(uuid=STRAP_SERVICE_UUID, characteristics=chars)] if with_service else []

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return None

    async def start_notify(self, uuid, callback):
        self.callbacks[uuid.lower()] = callback

    async def write_gatt_char(self, uuid, data):
        self.written.append(bytes(data))
        if bytes(data) == build_history_start():
            for char_uuid, raw in self.script:
                self.callbacks[char_uuid](None, bytearray(raw))
            if self.disconnect and self.disconnected_callback is not None:
                self.disconnected_callback(self)


@pytest.fixture
def fake_strap(monkeypatch):
    """Patch ``strapsync.device.BleakClient``; call the fixture with a script."""
    clients: list[FakeStrapClient] = []

    def install(script, **kwargs) -> list[FakeStrapClient]:
        def factory(address, disconnected_callback=None):
            client = FakeStrapClient(script, disconnected_callback=disconnected_callback, **kwargs)
            clients.append(client)
            return client

        monkeypatch.setattr("strapsync.device.BleakClient", factory)
        return clients

    return install
