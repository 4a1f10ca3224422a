"""Sleep and exercise statistics over committed records.

Both summaries are JSON-serializable so the CLI can print or save them.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from typing import TYPE_CHECKING, Any, Sequence

import numpy as np

if TYPE_CHECKING:
    from strapsync.analytics.sleep import SleepCycle
    from strapsync.models import ActivityRecord


def _clock_minutes(values: list[float]) -> tuple[float, float]:
    """Mean and standard deviation of times of day, in minutes."""
    arr = np.asarray(values, dtype=np.float64)
    return float(np.mean(arr)), float(np.std(arr))


@dataclass
class SleepStats:
    """Aggregate over a run of sleep cycles."""

    nights: int = 0
    avg_duration_min: float = 0.0
    min_duration_min: float = 0.0
    max_duration_min: float = 0.0
    avg_score: float = 0.0
    avg_bpm: float = 0.0
    avg_hrv: float = 0.0

    # Bedtime / wake time as minutes after midnight (bedtimes after noon
    # are counted as negative so that 23:30 and 00:30 average sensibly)
    avg_bedtime_min: float = 0.0
    bedtime_std_min: float = 0.0
    avg_wake_min: float = 0.0
    wake_std_min: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


@dataclass
class ExerciseStats:
    """Aggregate over a run of exercise records."""

    sessions: int = 0
    total_min: float = 0.0
    avg_min: float = 0.0
    longest_min: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)


def summarize_sleep(cycles: Sequence[SleepCycle]) -> SleepStats:
    """Summarize *cycles*; an empty sequence yields all zeros."""
    if not cycles:
        return SleepStats()

    durations = np.asarray(
        [c.duration.total_seconds() / 60.0 for c in cycles], dtype=np.float64
    )

    bedtimes = []
    wakes = []
    for c in cycles:
        bed = c.start.hour * 60 + c.start.minute
        if bed >= 12 * 60:
            bed -= 24 * 60
        bedtimes.append(float(bed))
        wakes.append(float(c.end.hour * 60 + c.end.minute))

    avg_bed, std_bed = _clock_minutes(bedtimes)
    avg_wake, std_wake = _clock_minutes(wakes)

    return SleepStats(
        nights=len(cycles),
        avg_duration_min=round(float(np.mean(durations)), 1),
        min_duration_min=round(float(np.min(durations)), 1),
        max_duration_min=round(float(np.max(durations)), 1),
        avg_score=round(float(np.mean([c.score for c in cycles])), 1),
        avg_bpm=round(float(np.mean([c.avg_bpm for c in cycles])), 1),
        avg_hrv=round(float(np.mean([c.avg_hrv for c in cycles])), 1),
        avg_bedtime_min=round(avg_bed, 1),
        bedtime_std_min=round(std_bed, 1),
        avg_wake_min=round(avg_wake, 1),
        wake_std_min=round(std_wake, 1),
    )


def summarize_exercise(records: Sequence[ActivityRecord]) -> ExerciseStats:
    """Summarize exercise *records* (naps should be filtered out first)."""
    if not records:
        return ExerciseStats()

    minutes = np.asarray(
        [r.duration.total_seconds() / 60.0 for r in records], dtype=np.float64
    )
    return ExerciseStats(
        sessions=len(records),
        total_min=round(float(np.sum(minutes)), 1),
        avg_min=round(float(np.mean(minutes)), 1),
        longest_min=round(float(np.max(minutes)), 1),
    )
