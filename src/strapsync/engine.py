"""Batch passes over the stored sample log.

Three passes, each resumable from store state alone:

- :meth:`BatchEngine.detect_sleeps` assembles sleep cycles, merging
  interrupted sleeps and demoting the shorter of two same-day sleeps to a
  nap.
- :meth:`BatchEngine.detect_events` records activities and naps found
  between two consecutive sleep cycles.
- :meth:`BatchEngine.calculate_stress` scores sliding sample windows and
  annotates the samples.

Every iteration ends with a single store write, so an interrupted run loses
at most the iteration in flight and the next run picks up from the last
committed record.  Store errors propagate unchanged.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta

import structlog

from strapsync.analytics.activity import ActivityClass
from strapsync.analytics.periods import ActivityPeriod, detect_periods, find_sleep
from strapsync.analytics.sleep import SleepCycle, build_sleep_cycle
from strapsync.analytics.stress import MIN_READING_PERIOD, WINDOW_SPAN, calculate_stress
from strapsync.models import ActivityRecord, ActivityType, RawSample
from strapsync.storage.base import HistoryStore

log = structlog.get_logger(__name__)

# Longest wake-up that still counts as the same sleep
MAX_SLEEP_PAUSE = timedelta(minutes=60)

# Samples fetched per sleep scan (two days at 1 Hz)
SLEEP_WINDOW_SAMPLES = 86400 * 2

# Samples fetched per stress page (one day at 1 Hz)
STRESS_PAGE_SAMPLES = 86400

_EVENT_TYPES = {
    ActivityClass.ACTIVE: ActivityType.ACTIVITY,
    ActivityClass.SLEEP: ActivityType.NAP,
}


def format_hm(duration: timedelta) -> str:
    """Format a duration as ``"7h 05m"``."""
    minutes = int(duration.total_seconds() // 60)
    return f"{minutes // 60}h {minutes % 60:02d}m"


class BatchEngine:
    """Runs the batch passes against a :class:`HistoryStore`.

    Only one engine may run a given pass over a given store at a time.
    """

    def __init__(
        self,
        store: HistoryStore,
        max_sleep_pause: timedelta = MAX_SLEEP_PAUSE,
        sleep_window: int = SLEEP_WINDOW_SAMPLES,
        stress_page: int = STRESS_PAGE_SAMPLES,
    ) -> None:
        self.store = store
        self.max_sleep_pause = max_sleep_pause
        self.sleep_window = sleep_window
        self.stress_page = stress_page

    # -----------------------------------------------------------------------
    # Sleep assembly
    # -----------------------------------------------------------------------

    def detect_sleeps(self) -> int:
        """Commit sleep cycles until no further sleep period is found.

        Returns:
            Number of sleep cycle writes (merges and replacements included).
        """
        commits = 0
        while self._commit_next_sleep(self.store.latest_sleep_cycle()):
            commits += 1
        return commits

    def _commit_next_sleep(self, last_sleep: SleepCycle | None) -> bool:
        """Find, correct and commit the next sleep after *last_sleep*.

        Returns False once the remaining history holds no sleep period.
        """
        cursor = last_sleep.end if last_sleep is not None else None

        while True:
            page_full, history = self._samples_after(cursor)
            periods = detect_periods(history)
            if not periods:
                return False

            while True:
                candidate = find_sleep(periods)
                if candidate is None:
                    break

                supersedes = None
                if last_sleep is not None:
                    gap = candidate.start - last_sleep.end
                    if gap < self.max_sleep_pause:
                        # Woke up briefly: extend the previous sleep
                        history = self.store.search_samples(last_sleep.start, candidate.end)
                        candidate = ActivityPeriod(last_sleep.start, candidate.end, candidate.activity)
                        supersedes = last_sleep.id
                    elif candidate.end.date() == last_sleep.end.date():
                        if candidate.duration < last_sleep.duration:
                            self._record_nap(last_sleep.id, candidate.start, candidate.end)
                            continue
                        # The committed sleep was the nap; this one is the night
                        self._record_nap(
                            last_sleep.id - timedelta(days=1),
                            last_sleep.start,
                            last_sleep.end,
                        )

                cycle = build_sleep_cycle(candidate.start, candidate.end, history)
                self.store.create_sleep_cycle(cycle, supersedes=supersedes)
                log.info(
                    "sleep_detected",
                    sleep_id=cycle.id.isoformat(),
                    start=cycle.start.isoformat(),
                    end=cycle.end.isoformat(),
                    duration=format_hm(cycle.duration),
                    merged=supersedes is not None,
                )
                return True

            if not page_full:
                return False
            # No sleep in a full window: move on, re-reading the last
            # (possibly truncated) period.
            tail = len(history) - 1
            while tail > 0 and history[tail - 1].activity == history[-1].activity:
                tail -= 1
            cursor = history[tail - 1].time if tail > 0 else history[-1].time

    def _samples_after(self, cursor: datetime | None) -> tuple[bool, list[RawSample]]:
        """Up to one sleep window of samples strictly after *cursor*."""
        page = self.store.search_samples(start=cursor, limit=self.sleep_window)
        page_full = len(page) >= self.sleep_window
        if cursor is not None:
            page = [s for s in page if s.time > cursor]
        return page_full, page

    def _record_nap(self, period_id: date, start: datetime, end: datetime) -> None:
        self.store.create_activity_record(ActivityRecord(
            period_id=period_id,
            start=start,
            end=end,
            activity=ActivityType.NAP,
        ))
        log.info(
            "nap_recorded",
            period_id=period_id.isoformat(),
            start=start.isoformat(),
            end=end.isoformat(),
            duration=format_hm(end - start),
        )

    # -----------------------------------------------------------------------
    # Events between sleeps
    # -----------------------------------------------------------------------

    def detect_events(self) -> int:
        """Record activities and naps between consecutive sleep cycles.

        Only gaps closed by a later sleep cycle are scanned; anything after
        the latest cycle waits until the next sleep is committed.

        Returns:
            Number of activity records written.
        """
        cycles = self.store.all_sleep_cycles()
        written = 0

        for earlier, later in zip(cycles, cycles[1:]):
            samples = [
                s for s in self.store.search_samples(earlier.end, later.start)
                if earlier.end < s.time < later.start
            ]
            for period in detect_periods(samples):
                activity = _EVENT_TYPES.get(period.activity)
                if activity is None:
                    continue
                self.store.create_activity_record(ActivityRecord(
                    period_id=earlier.id,
                    start=period.start,
                    end=period.end,
                    activity=activity,
                ))
                written += 1
                log.info(
                    "activity_detected",
                    activity=activity.value,
                    start=period.start.isoformat(),
                    end=period.end.isoformat(),
                    duration=format_hm(period.duration),
                )

        return written

    # -----------------------------------------------------------------------
    # Stress
    # -----------------------------------------------------------------------

    def stress_page_start(self, marker: datetime | None) -> datetime | None:
        """Lower bound of the next stress page: one window before *marker*."""
        return marker - WINDOW_SPAN if marker is not None else None

    def calculate_stress(self) -> int:
        """Score every not-yet-scored window, page by page.

        Returns:
            Number of samples annotated.
        """
        scored = 0
        scanned_to: datetime | None = None

        while True:
            marker = self.store.latest_stress_timestamp()
            if scanned_to is not None and (marker is None or scanned_to > marker):
                marker = scanned_to

            page = self.store.search_samples(
                start=self.stress_page_start(marker),
                limit=self.stress_page,
            )
            if len(page) <= MIN_READING_PERIOD:
                break
            if marker is not None and page[-1].time <= marker:
                break

            for end in range(MIN_READING_PERIOD, len(page) + 1):
                window = page[end - MIN_READING_PERIOD:end]
                if marker is not None and window[-1].time <= marker:
                    continue
                stress = calculate_stress(window)
                if stress is None:
                    continue
                self.store.update_sample_stress(stress.time, stress.score)
                scored += 1

            scanned_to = page[-1].time
            log.debug("stress_page_scored", until=scanned_to.isoformat(), total=scored)

        return scored
