"""Replay captured packet logs through the ingest handler.

Capture files are JSONL, one notification per line::

    {"timestamp": "...", "uuid": "61080005-...", "hex_data": "aa5c00..."}

``raw_bytes_b64`` may replace ``hex_data``.  :class:`CaptureWriter` produces
this format during a history download.  Replies the handler would send
to the strap are dropped; only the stored readings matter offline.
"""

from __future__ import annotations

import base64
import json
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import TextIO

import structlog

from strapsync.ingest import PacketHandler
from strapsync.protocol import char_role, hex_to_bytes

log = structlog.get_logger(__name__)


@dataclass
class ReplayStats:
    total: int = 0
    routed: int = 0
    decoded: int = 0
    stored: int = 0


def replay_file(capture_path: str | Path, handler: PacketHandler) -> ReplayStats:
    """Feed every proprietary notification in a capture to *handler*.

    Raises:
        FileNotFoundError: if the capture does not exist.
    """
    path = Path(capture_path)
    stats = ReplayStats()
    stored_before = handler.readings_stored

    with open(path) as f:
        for line_num, line in enumerate(f, 1):
            line = line.strip()
            if not line:
                continue

            try:
                entry = json.loads(line)
            except json.JSONDecodeError:
                log.warning("replay_bad_line", file=path.name, line=line_num)
                continue

            stats.total += 1
            if "raw_bytes_b64" in entry:
                raw = base64.b64decode(entry["raw_bytes_b64"])
            elif "hex_data" in entry:
                raw = hex_to_bytes(entry["hex_data"])
            else:
                continue

            role = char_role(entry.get("uuid", ""))
            if role is None:
                continue

            stats.routed += 1
            result = handler.handle(raw, role)
            if result.data is not None:
                stats.decoded += 1

    stats.stored = handler.readings_stored - stored_before
    log.info(
        "replay_done",
        file=path.name,
        total=stats.total,
        routed=stats.routed,
        decoded=stats.decoded,
        stored=stats.stored,
    )
    return stats


class CaptureWriter:
    """Append raw notifications to a JSONL capture that :func:`replay_file` reads.

    Use as a context manager; every line is flushed as it is written so a
    capture survives an interrupted download.
    """

    def __init__(self, capture_path: str | Path) -> None:
        self.path = Path(capture_path)
        self.count = 0
        self._file: TextIO | None = None

    def __enter__(self) -> CaptureWriter:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = open(self.path, "a")
        return self

    def __exit__(self, *exc_info) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        log.info("capture_closed", file=str(self.path), packets=self.count)

    def write(self, uuid: str, data: bytes) -> None:
        if self._file is None:
            raise RuntimeError("capture is not open")
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "uuid": uuid,
            "hex_data": data.hex(),
            "raw_bytes_b64": base64.b64encode(data).decode("ascii"),
            "length": len(data),
        }
        self._file.write(json.dumps(record) + "\n")
        self._file.flush()
        self.count += 1
