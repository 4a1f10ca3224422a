"""Route notifications from the strap into the store.

The handler is the live side of the pipeline: it decodes each packet,
persists valid history readings, and tells the transport what (if
anything) to write back.  Segmentation never happens here.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from strapsync.decoders.data import (
    ConsoleLog,
    HistoryMetadata,
    HistoryReading,
    StrapData,
    VersionInfo,
    decode_data,
)
from strapsync.decoders.packet import PacketDecoder
from strapsync.errors import DecodeError
from strapsync.protocol import (
    CMD_FROM_STRAP,
    DATA_FROM_STRAP,
    EVENTS_FROM_STRAP,
    MetadataType,
    build_history_end,
    build_report_version,
)
from strapsync.storage.base import HistoryStore

log = structlog.get_logger(__name__)


@dataclass
class IngestResult:
    """What the transport should do after one notification."""

    data: StrapData | None = None
    reply: bytes | None = None
    history_complete: bool = False


class PacketHandler:
    """Decode notifications and persist the readings they carry."""

    def __init__(self, store: HistoryStore) -> None:
        self.store = store
        self.readings_stored = 0

    def handle(self, raw: bytes | bytearray, role: str) -> IngestResult:
        """Handle one notification received on the characteristic *role*.

        Undecodable packets are logged and skipped; store errors propagate.
        """
        if role not in (DATA_FROM_STRAP, CMD_FROM_STRAP, EVENTS_FROM_STRAP):
            return IngestResult()

        packet = PacketDecoder.decode(raw)
        if packet is None or not packet.valid:
            log.warning("packet_skipped", role=role, reason="framing", raw=bytes(raw).hex())
            return IngestResult()

        try:
            data = decode_data(packet)
        except DecodeError as exc:
            log.debug(
                "packet_skipped",
                role=role,
                reason=type(exc).__name__,
                detail=str(exc),
                packet=repr(packet),
            )
            return IngestResult()

        if role == DATA_FROM_STRAP:
            return self._handle_data(data)
        if role == EVENTS_FROM_STRAP:
            log.info("strap_event", record=repr(data))
            return IngestResult(data=data)
        return self._handle_command_response(data)

    def _handle_data(self, data: StrapData) -> IngestResult:
        if isinstance(data, HistoryReading):
            if data.is_valid():
                sample = data.to_sample()
                self.store.create_sample(sample)
                self.readings_stored += 1
                log.debug("history_reading", time=sample.time.isoformat(), bpm=sample.bpm)
            return IngestResult(data=data)

        if isinstance(data, HistoryMetadata):
            if data.cmd == MetadataType.HISTORY_COMPLETE:
                log.info("history_complete", readings=self.readings_stored)
                return IngestResult(data=data, history_complete=True)
            if data.cmd == MetadataType.HISTORY_END:
                return IngestResult(data=data, reply=build_history_end(data.data))
            return IngestResult(data=data)

        if isinstance(data, ConsoleLog):
            log.debug("console_log", unix=data.unix, text=data.text)
        return IngestResult(data=data)

    def _handle_command_response(self, data: StrapData) -> IngestResult:
        if isinstance(data, VersionInfo):
            log.info("version_info", harvard=data.harvard, boylston=data.boylston)
            return IngestResult(data=data, reply=build_report_version())
        return IngestResult(data=data)
