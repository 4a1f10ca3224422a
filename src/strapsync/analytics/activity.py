"""Activity classification from the strap's raw activity code.

Historical readings carry a 32-bit activity code.  The strap encodes a
coarse state by numeric range, so classification is a plain banding of the
value after reinterpreting it as a signed 64-bit integer.
"""

from __future__ import annotations

from enum import Enum


class ActivityClass(str, Enum):
    """Coarse activity state of a single reading."""

    UNKNOWN = "unknown"
    INACTIVE = "inactive"
    ACTIVE = "active"
    SLEEP = "sleep"
    AWAKE = "awake"


# Half-open bands [lower, upper) over the signed 64-bit value
ACTIVE_THRESHOLD = 500_000_000
SLEEP_THRESHOLD = 1_000_000_000
AWAKE_THRESHOLD = 1_500_000_000

_U64_MASK = (1 << 64) - 1
_I64_SIGN = 1 << 63


def as_i64(code: int) -> int:
    """Reinterpret the low 64 bits of *code* as a two's-complement int64.

    Every 32-bit wire value stays non-negative; only codes that were stored
    as 64-bit values with the top bit set come out negative.
    """
    value = code & _U64_MASK
    if value >= _I64_SIGN:
        value -= 1 << 64
    return value


def classify_activity(code: int) -> ActivityClass:
    """Map a raw activity code onto an :class:`ActivityClass`."""
    value = as_i64(code)
    if value < 0:
        return ActivityClass.UNKNOWN
    if value < ACTIVE_THRESHOLD:
        return ActivityClass.INACTIVE
    if value < SLEEP_THRESHOLD:
        return ActivityClass.ACTIVE
    if value < AWAKE_THRESHOLD:
        return ActivityClass.SLEEP
    return ActivityClass.AWAKE
