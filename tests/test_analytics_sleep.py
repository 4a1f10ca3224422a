"""Tests for analytics/features.py, analytics/sleep.py and analytics/summary.py."""

from __future__ import annotations

from datetime import date, timedelta

import pytest

from strapsync.analytics.features import block_rmssd, compute_rmssd
from strapsync.analytics.sleep import SleepCycle, build_sleep_cycle, sleep_score
from strapsync.analytics.summary import summarize_exercise, summarize_sleep
from strapsync.models import ActivityRecord, ActivityType, RawSample

from tests.conftest import MINUTE, SLEEP_CODE, T0, make_samples


# ===================================================================
# RMSSD
# ===================================================================


class TestComputeRMSSD:
    def test_constant_rr_is_zero(self):
        assert compute_rmssd([800.0] * 10) == 0.0

    def test_known_value(self):
        # diffs 10, -20 → sqrt((100 + 400) / 2)
        assert compute_rmssd([800, 810, 790]) == pytest.approx(15.81, abs=0.01)

    def test_too_few_intervals(self):
        assert compute_rmssd([800]) is None
        assert compute_rmssd([]) is None


class TestBlockRMSSD:
    def test_blocks_pool_rr(self):
        samples = [
            RawSample(T0 + i * MINUTE, 60, rr_intervals=[rr])
            for i, rr in enumerate([800, 810, 790, 800])
        ]
        # Two blocks of two samples: [800, 810] and [790, 800]
        assert block_rmssd(samples, block_size=2) == [10.0, 10.0]

    def test_blocks_without_rr_skipped(self):
        samples = make_samples(T0, [(SLEEP_CODE, 6)])
        assert block_rmssd(samples, block_size=3) == []

    def test_bad_block_size(self):
        with pytest.raises(ValueError):
            block_rmssd([], block_size=0)


# ===================================================================
# Sleep score and aggregate
# ===================================================================


class TestSleepScore:
    @pytest.mark.parametrize("hours, expected", [
        (4, 50.0),
        (7, 87.5),
        (8, 100.0),
        (10, 100.0),
        (0, 0.0),
    ])
    def test_duration_ratio(self, hours, expected):
        assert sleep_score(T0, T0 + timedelta(hours=hours)) == expected


class TestBuildSleepCycle:
    def test_id_is_end_date(self):
        start = T0 + timedelta(hours=22)
        end = start + timedelta(hours=8)
        cycle = build_sleep_cycle(start, end, [])
        assert cycle.id == date(2024, 1, 2)
        assert cycle.duration == timedelta(hours=8)
        assert cycle.score == 100.0

    def test_stats_use_valid_samples_in_range(self):
        samples = [
            RawSample(T0 - MINUTE, 120, rr_intervals=[400]),       # before start
            RawSample(T0, 50, rr_intervals=[800]),
            RawSample(T0 + MINUTE, 0, rr_intervals=[5000]),         # invalid
            RawSample(T0 + 2 * MINUTE, 60, rr_intervals=[810]),
            RawSample(T0 + 3 * MINUTE, 70, rr_intervals=[790]),
            RawSample(T0 + 4 * MINUTE, 200, rr_intervals=[300]),    # after end
        ]
        cycle = build_sleep_cycle(T0, T0 + 3 * MINUTE, samples)
        assert (cycle.min_bpm, cycle.max_bpm, cycle.avg_bpm) == (50, 70, 60)
        assert (cycle.min_hrv, cycle.max_hrv, cycle.avg_hrv) == (16, 16, 16)

    def test_no_samples_gives_zero_stats(self):
        cycle = build_sleep_cycle(T0, T0 + timedelta(hours=1), [])
        assert cycle.min_bpm == cycle.max_bpm == cycle.avg_bpm == 0
        assert cycle.min_hrv == cycle.max_hrv == cycle.avg_hrv == 0

    def test_explicit_score(self):
        cycle = build_sleep_cycle(T0, T0 + timedelta(hours=1), [], score=42.0)
        assert cycle.score == 42.0


# ===================================================================
# Summaries
# ===================================================================


def _cycle(day: int, start_hour: int, hours: int, score: float = 80.0) -> SleepCycle:
    start = T0 + timedelta(days=day, hours=start_hour)
    end = start + timedelta(hours=hours)
    return SleepCycle(
        id=end.date(), start=start, end=end,
        min_bpm=45, max_bpm=70, avg_bpm=55,
        min_hrv=30, max_hrv=80, avg_hrv=50,
        score=score,
    )


class TestSummarizeSleep:
    def test_empty(self):
        stats = summarize_sleep([])
        assert stats.nights == 0
        assert stats.avg_duration_min == 0.0

    def test_averages(self):
        stats = summarize_sleep([_cycle(0, 23, 7, 87.5), _cycle(1, 23, 9, 100.0)])
        assert stats.nights == 2
        assert stats.avg_duration_min == 480.0
        assert stats.min_duration_min == 420.0
        assert stats.max_duration_min == 540.0
        assert stats.avg_score == 93.8
        assert stats.avg_bpm == 55.0

    def test_bedtime_wraps_midnight(self):
        # 23:00 and 01:00 average to midnight, not noon
        stats = summarize_sleep([_cycle(0, 23, 8), _cycle(1, 25, 6)])
        assert stats.avg_bedtime_min == 0.0
        assert stats.bedtime_std_min == 60.0

    def test_json(self):
        assert '"nights": 1' in summarize_sleep([_cycle(0, 23, 8)]).to_json()


class TestSummarizeExercise:
    def test_empty(self):
        assert summarize_exercise([]).sessions == 0

    def test_totals(self):
        records = [
            ActivityRecord(date(2024, 1, 1), T0, T0 + 30 * MINUTE, ActivityType.ACTIVITY),
            ActivityRecord(date(2024, 1, 1), T0 + timedelta(hours=5), T0 + timedelta(hours=6), ActivityType.ACTIVITY),
        ]
        stats = summarize_exercise(records)
        assert stats.sessions == 2
        assert stats.total_min == 90.0
        assert stats.avg_min == 45.0
        assert stats.longest_min == 60.0
