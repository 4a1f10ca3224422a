"""Sleep cycle aggregate built from a detected sleep period.

A :class:`SleepCycle` is keyed by the calendar date on which it ends, so a
night that starts at 23:00 on the 1st belongs to the 2nd.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING, Sequence

import numpy as np

from strapsync.analytics.features import block_rmssd

if TYPE_CHECKING:
    from strapsync.models import RawSample

# Duration that earns a full score
IDEAL_SLEEP = timedelta(hours=8)

# Samples pooled per HRV (RMSSD) block
HRV_WINDOW = 300


@dataclass
class SleepCycle:
    """One committed night of sleep."""

    id: date
    start: datetime
    end: datetime
    min_bpm: int
    max_bpm: int
    avg_bpm: int
    min_hrv: int
    max_hrv: int
    avg_hrv: int
    score: float

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def __repr__(self) -> str:
        hours = self.duration.total_seconds() / 3600.0
        return (
            f"SleepCycle({self.id.isoformat()}, {hours:.1f}h, "
            f"bpm={self.min_bpm}/{self.avg_bpm}/{self.max_bpm}, "
            f"hrv={self.avg_hrv}ms, score={self.score:.1f})"
        )


def sleep_score(start: datetime, end: datetime) -> float:
    """Score a sleep by its length relative to :data:`IDEAL_SLEEP` (0-100)."""
    duration = max(end - start, timedelta(0))
    ratio = min(duration / IDEAL_SLEEP, 1.0)
    return round(ratio * 100.0, 1)


def build_sleep_cycle(
    start: datetime,
    end: datetime,
    samples: Sequence[RawSample],
    score: float | None = None,
) -> SleepCycle:
    """Aggregate the samples recorded within ``[start, end]`` into a cycle.

    Args:
        start: First instant of the sleep.
        end: Last instant of the sleep; its date becomes the cycle id.
        samples: Samples covering at least the sleep range, in time order.
            Samples outside the range and invalid samples are ignored.
        score: Precomputed score; computed with :func:`sleep_score` if None.
    """
    inside = [s for s in samples if start <= s.time <= end and s.is_valid()]

    min_bpm = max_bpm = avg_bpm = 0
    if inside:
        bpm = np.asarray([s.bpm for s in inside], dtype=np.float64)
        min_bpm = int(np.min(bpm))
        max_bpm = int(np.max(bpm))
        avg_bpm = int(round(float(np.mean(bpm))))

    min_hrv = max_hrv = avg_hrv = 0
    hrv = block_rmssd(inside, HRV_WINDOW)
    if hrv:
        arr = np.asarray(hrv, dtype=np.float64)
        min_hrv = int(round(float(np.min(arr))))
        max_hrv = int(round(float(np.max(arr))))
        avg_hrv = int(round(float(np.mean(arr))))

    return SleepCycle(
        id=end.date(),
        start=start,
        end=end,
        min_bpm=min_bpm,
        max_bpm=max_bpm,
        avg_bpm=avg_bpm,
        min_hrv=min_hrv,
        max_hrv=max_hrv,
        avg_hrv=avg_hrv,
        score=score if score is not None else sleep_score(start, end),
    )
