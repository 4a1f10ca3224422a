"""Shared BLE helpers for locating the strap's proprietary characteristics."""

from __future__ import annotations

from bleak import BleakClient

from strapsync.protocol import CMD_TO_STRAP_UUID, NOTIFY_UUIDS, STRAP_SERVICE_UUID, char_role


def find_write_char(client: BleakClient) -> str | None:
    """Find the CMD_TO_STRAP characteristic on the proprietary service.

    Returns the UUID string, or None if not found.
    """
    for service in client.services:
        if service.uuid.lower() != STRAP_SERVICE_UUID:
            continue
        for char in service.characteristics:
            if char.uuid.lower() == CMD_TO_STRAP_UUID:
                return char.uuid
    return None


def find_notify_chars(client: BleakClient) -> list[tuple[str, str]]:
    """Find the notify characteristics the history download listens on.

    Returns a list of (uuid, role) tuples.
    """
    result: list[tuple[str, str]] = []
    for service in client.services:
        if service.uuid.lower() != STRAP_SERVICE_UUID:
            continue
        for char in service.characteristics:
            if char.uuid.lower() in NOTIFY_UUIDS and "notify" in char.properties:
                result.append((char.uuid, char_role(char.uuid)))
    return result
