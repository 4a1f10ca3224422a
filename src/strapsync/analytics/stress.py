"""Stress scoring over a fixed window of consecutive samples.

Uses the Baevsky stress index:

    SI = AMo / (2 * Mo * MxDMn)

where, over the window's RR intervals binned into 50 ms classes,
Mo is the modal RR (s), AMo the share of intervals in the modal class (%)
and MxDMn the RR range (s).  The index is mapped onto a 0-10 score.
"""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Sequence

import numpy as np

from strapsync.models import StressScore

if TYPE_CHECKING:
    from strapsync.models import RawSample

# Samples per scoring window
MIN_READING_PERIOD = 120

# Time covered by one window at one sample per second
WINDOW_SPAN = timedelta(seconds=MIN_READING_PERIOD)

BIN_WIDTH_MS = 50.0
MAX_SCORE = 10.0
SI_SCALE = 100.0


def window_rr(window: Sequence[RawSample]) -> list[float]:
    """RR intervals of a window, falling back to 60000 / bpm per sample."""
    rr: list[float] = []
    for sample in window:
        if sample.rr_intervals:
            rr.extend(float(v) for v in sample.rr_intervals)
        elif sample.bpm > 0:
            rr.append(60_000.0 / sample.bpm)
    return rr


def stress_index(rr_intervals: Sequence[float]) -> float | None:
    """Baevsky stress index, or None when it is undefined."""
    if len(rr_intervals) < 2:
        return None

    arr = np.asarray(rr_intervals, dtype=np.float64)
    spread = float(np.max(arr) - np.min(arr))
    if spread <= 0:
        return None

    bins = np.floor(arr / BIN_WIDTH_MS).astype(np.int64)
    values, counts = np.unique(bins, return_counts=True)
    modal = int(np.argmax(counts))
    mo = (values[modal] + 0.5) * BIN_WIDTH_MS / 1000.0
    amo = counts[modal] / len(arr) * 100.0
    return float(amo / (2.0 * mo * (spread / 1000.0)))


def calculate_stress(window: Sequence[RawSample]) -> StressScore | None:
    """Score one window; the score belongs to the window's last sample.

    Returns None when the window cannot be scored (too short, or no RR
    variability at all).
    """
    if len(window) < MIN_READING_PERIOD:
        return None
    si = stress_index(window_rr(window))
    if si is None:
        return None
    score = round(min(si / SI_SCALE, MAX_SCORE), 2)
    return StressScore(time=window[-1].time, score=score)
