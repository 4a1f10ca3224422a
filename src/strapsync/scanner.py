"""Scan for straps over BLE."""

from __future__ import annotations

import asyncio

import structlog
from bleak import BleakScanner
from bleak.backends.device import BLEDevice
from bleak.backends.scanner import AdvertisementData

from strapsync.protocol import STRAP_SERVICE_UUID

log = structlog.get_logger(__name__)

STRAP_NAME_PREFIX = "WHOOP"


def is_strap(device: BLEDevice, adv: AdvertisementData) -> bool:
    """True if the advertisement looks like a strap (name or service UUID)."""
    name = adv.local_name or device.name or ""
    if name.upper().startswith(STRAP_NAME_PREFIX):
        return True
    return STRAP_SERVICE_UUID in (u.lower() for u in adv.service_uuids)


async def scan(timeout: float = 10.0) -> list[tuple[BLEDevice, AdvertisementData]]:
    """Scan for nearby straps.

    Returns a list of (device, advertisement_data) tuples, one per address.
    """
    results: list[tuple[BLEDevice, AdvertisementData]] = []

    def _callback(device: BLEDevice, adv: AdvertisementData) -> None:
        if not is_strap(device, adv):
            return
        if any(d.address == device.address for d, _ in results):
            return
        results.append((device, adv))
        log.info(
            "strap_found",
            name=adv.local_name or device.name,
            address=device.address,
            rssi=adv.rssi,
        )

    scanner = BleakScanner(detection_callback=_callback)
    log.info("scan_started", timeout=timeout)
    await scanner.start()
    await asyncio.sleep(timeout)
    await scanner.stop()

    log.info("scan_finished", found=len(results))
    return results


async def find_strap(timeout: float = 10.0) -> BLEDevice | None:
    """Find the first strap and return it."""
    results = await scan(timeout)
    if results:
        return results[0][0]
    return None
