"""Segmentation of an ordered sample run into activity periods.

A period is a maximal run of consecutive samples sharing one
:class:`ActivityClass`.  Periods tile the input: each period ends where the
next one starts, and the last one ends at the final sample.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Sequence

from strapsync.analytics.activity import ActivityClass

if TYPE_CHECKING:
    from strapsync.models import RawSample


@dataclass
class ActivityPeriod:
    """A time range of one activity class."""

    start: datetime
    end: datetime
    activity: ActivityClass

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def __repr__(self) -> str:
        return (
            f"ActivityPeriod({self.activity.value}, "
            f"{self.start.isoformat()} → {self.end.isoformat()})"
        )


def detect_periods(samples: Sequence[RawSample]) -> list[ActivityPeriod]:
    """Group consecutive same-class samples into periods.

    Args:
        samples: Samples in ascending time order.  The sequence is only read.

    Returns:
        Periods in chronological order; empty for an empty input.
    """
    periods: list[ActivityPeriod] = []
    if len(samples) == 0:
        return periods

    run_start = samples[0].time
    run_class = samples[0].activity

    for sample in samples[1:]:
        activity = sample.activity
        if activity != run_class:
            periods.append(ActivityPeriod(run_start, sample.time, run_class))
            run_start = sample.time
            run_class = activity

    periods.append(ActivityPeriod(run_start, samples[-1].time, run_class))
    return periods


def find_sleep(periods: list[ActivityPeriod]) -> ActivityPeriod | None:
    """Remove and return the earliest SLEEP period, or None if there is none.

    The relative order of the remaining periods is untouched.
    """
    for i, period in enumerate(periods):
        if period.activity == ActivityClass.SLEEP:
            return periods.pop(i)
    return None
