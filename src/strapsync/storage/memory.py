"""In-process store, keyed exactly like the database store."""

from __future__ import annotations

import bisect
from dataclasses import replace
from datetime import date, datetime

from strapsync.analytics.sleep import SleepCycle
from strapsync.models import ActivityRecord, RawSample
from strapsync.storage.base import HistoryStore


def _copy_sample(sample: RawSample) -> RawSample:
    return replace(sample, rr_intervals=list(sample.rr_intervals))


class MemoryStore(HistoryStore):
    """Keeps every record in dicts; samples stay sorted by time."""

    def __init__(self) -> None:
        self._times: list[datetime] = []
        self._samples: dict[datetime, RawSample] = {}
        self._cycles: dict[date, SleepCycle] = {}
        self._activities: dict[datetime, ActivityRecord] = {}

    def create_sample(self, sample: RawSample) -> None:
        if sample.time not in self._samples:
            bisect.insort(self._times, sample.time)
        self._samples[sample.time] = _copy_sample(sample)

    def search_samples(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[RawSample]:
        lo = 0 if start is None else bisect.bisect_left(self._times, start)
        hi = len(self._times) if end is None else bisect.bisect_right(self._times, end)
        if limit is not None:
            hi = min(hi, lo + limit)
        return [_copy_sample(self._samples[t]) for t in self._times[lo:hi]]

    def update_sample_stress(self, time: datetime, score: float) -> None:
        sample = self._samples.get(time)
        if sample is None:
            raise KeyError(f"no sample at {time.isoformat()}")
        sample.stress = score

    def latest_stress_timestamp(self) -> datetime | None:
        for t in reversed(self._times):
            if self._samples[t].stress is not None:
                return t
        return None

    def latest_sleep_cycle(self) -> SleepCycle | None:
        if not self._cycles:
            return None
        return replace(max(self._cycles.values(), key=lambda c: c.end))

    def all_sleep_cycles(self) -> list[SleepCycle]:
        return [replace(c) for c in sorted(self._cycles.values(), key=lambda c: c.start)]

    def create_sleep_cycle(
        self,
        cycle: SleepCycle,
        supersedes: date | None = None,
    ) -> None:
        if supersedes is not None and supersedes != cycle.id:
            self._cycles.pop(supersedes, None)
        self._cycles[cycle.id] = replace(cycle)

    def create_activity_record(self, record: ActivityRecord) -> None:
        self._activities[record.start] = replace(record)

    def activity_records(self) -> list[ActivityRecord]:
        return [replace(a) for a in sorted(self._activities.values(), key=lambda a: a.start)]
