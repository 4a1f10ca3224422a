"""HRV feature extraction from per-sample RR intervals."""

from __future__ import annotations

from typing import TYPE_CHECKING, Sequence

import numpy as np

if TYPE_CHECKING:
    from strapsync.models import RawSample


def compute_rmssd(rr_intervals: Sequence[float]) -> float | None:
    """Root mean square of successive RR-interval differences (ms).

    Returns None if fewer than 2 intervals are provided.
    """
    if len(rr_intervals) < 2:
        return None
    arr = np.asarray(rr_intervals, dtype=np.float64)
    diffs = np.diff(arr)
    return round(float(np.sqrt(np.mean(diffs ** 2))), 2)


def block_rmssd(samples: Sequence[RawSample], block_size: int = 300) -> list[float]:
    """RMSSD over consecutive, non-overlapping blocks of samples.

    Each block pools the RR intervals of *block_size* samples (five minutes
    at one sample per second).  Blocks with fewer than two intervals are
    dropped.
    """
    if block_size <= 0:
        raise ValueError("block_size must be positive")

    values: list[float] = []
    for offset in range(0, len(samples), block_size):
        rr: list[int] = []
        for sample in samples[offset:offset + block_size]:
            rr.extend(sample.rr_intervals)
        rmssd = compute_rmssd(rr)
        if rmssd is not None:
            values.append(rmssd)
    return values
