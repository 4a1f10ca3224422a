"""Download stored history from a connected strap.

Every notification is handed to a
:class:`~strapsync.ingest.PacketHandler` and whatever reply it asks for is
written back to CMD_TO_STRAP.
"""

from __future__ import annotations

import asyncio

import structlog
from bleak import BleakClient
from bleak.backends.characteristic import BleakGATTCharacteristic

from strapsync.ble import find_notify_chars, find_write_char
from strapsync.ingest import PacketHandler
from strapsync.protocol import (
    build_enter_high_freq_sync,
    build_exit_high_freq_sync,
    build_history_start,
)
from strapsync.replay import CaptureWriter

log = structlog.get_logger(__name__)


class TransportError(Exception):
    """The strap does not expose the characteristics the download needs."""


async def sync_history(
    address: str,
    handler: PacketHandler,
    idle_timeout: float = 30.0,
    capture: CaptureWriter | None = None,
) -> bool:
    """Run one history download against the strap at *address*.

    Every notification is appended to *capture* (when given) before it is
    handled, so the download can be replayed later.

    Returns True when the strap reported history complete, False when it
    went idle or disconnected first.

    Raises:
        TransportError: if the proprietary characteristics are missing.
    """
    # None marks the disconnect; notifications queued before it are still handled
    queue: asyncio.Queue[tuple[str, str, bytes] | None] = asyncio.Queue()
    disconnected = asyncio.Event()

    def _on_disconnect(_client: BleakClient) -> None:
        disconnected.set()
        queue.put_nowait(None)

    log.info("connecting", address=address)
    async with BleakClient(address, disconnected_callback=_on_disconnect) as client:
        write_uuid = find_write_char(client)
        notify_chars = find_notify_chars(client)
        if write_uuid is None or not notify_chars:
            raise TransportError(f"{address} does not expose the strap service")

        def make_handler(uuid: str, role: str):
            def _notify(_char: BleakGATTCharacteristic, data: bytearray) -> None:
                queue.put_nowait((uuid, role, bytes(data)))
            return _notify

        for uuid, role in notify_chars:
            await client.start_notify(uuid, make_handler(uuid, role))
            log.debug("subscribed", uuid=uuid, role=role)

        await client.write_gatt_char(write_uuid, build_enter_high_freq_sync())
        await client.write_gatt_char(write_uuid, build_history_start())
        log.info("history_requested", address=address)

        complete = False
        try:
            while not complete:
                try:
                    item = await asyncio.wait_for(queue.get(), idle_timeout)
                except asyncio.TimeoutError:
                    log.warning("strap_idle", timeout=idle_timeout)
                    break
                if item is None:
                    log.warning("strap_disconnected", address=address)
                    break

                uuid, role, data = item
                if capture is not None:
                    capture.write(uuid, data)
                result = handler.handle(data, role)
                if result.reply is not None:
                    await client.write_gatt_char(write_uuid, result.reply)
                complete = result.history_complete
        finally:
            if not disconnected.is_set():
                await client.write_gatt_char(write_uuid, build_exit_high_freq_sync())

    log.info("history_sync_done", complete=complete, readings=handler.readings_stored)
    return complete


async def send_commands(address: str, *packets: bytes) -> None:
    """Connect to the strap at *address* and write *packets* in order.

    Raises:
        TransportError: if the strap has no CMD_TO_STRAP characteristic.
    """
    async with BleakClient(address) as client:
        write_uuid = find_write_char(client)
        if write_uuid is None:
            raise TransportError(f"{address} does not expose the strap service")
        for packet in packets:
            await client.write_gatt_char(write_uuid, packet)
            log.debug("command_sent", address=address, packet=packet.hex())
