"""Store interface consumed by the ingest handler and the batch engine."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date, datetime

from strapsync.analytics.sleep import SleepCycle
from strapsync.models import ActivityRecord, RawSample


class HistoryStore(ABC):
    """Ordered sample log plus the records derived from it.

    Writes are upserts: ``create_sample`` is keyed by sample time,
    ``create_sleep_cycle`` by the cycle's date id and
    ``create_activity_record`` by the record's start time.  Re-running any
    batch pass therefore never duplicates rows.
    """

    # -- samples ----------------------------------------------------------

    @abstractmethod
    def create_sample(self, sample: RawSample) -> None:
        """Persist a raw reading."""

    @abstractmethod
    def search_samples(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[RawSample]:
        """Samples with ``start <= time <= end`` in ascending time order.

        Either bound may be None (unbounded); at most *limit* samples are
        returned, counted from the earliest.
        """

    @abstractmethod
    def update_sample_stress(self, time: datetime, score: float) -> None:
        """Attach a stress score to the sample recorded at *time*."""

    @abstractmethod
    def latest_stress_timestamp(self) -> datetime | None:
        """Time of the most recent sample that carries a stress score."""

    # -- sleep cycles -----------------------------------------------------

    @abstractmethod
    def latest_sleep_cycle(self) -> SleepCycle | None:
        """The committed cycle with the latest end, if any."""

    @abstractmethod
    def all_sleep_cycles(self) -> list[SleepCycle]:
        """Every committed cycle, ordered by start."""

    @abstractmethod
    def create_sleep_cycle(
        self,
        cycle: SleepCycle,
        supersedes: date | None = None,
    ) -> None:
        """Insert or replace the cycle for ``cycle.id``.

        When *supersedes* names a different date id, that row is removed in
        the same write.
        """

    # -- activities -------------------------------------------------------

    @abstractmethod
    def create_activity_record(self, record: ActivityRecord) -> None:
        """Insert or replace the activity starting at ``record.start``."""

    @abstractmethod
    def activity_records(self) -> list[ActivityRecord]:
        """Every activity record, ordered by start."""
