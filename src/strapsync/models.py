"""Domain records shared by the decoder, the batch engine and the stores."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum

from strapsync.analytics.activity import ActivityClass, classify_activity


def from_unix(unix: int) -> datetime:
    """Unix seconds → timezone-aware UTC datetime."""
    return datetime.fromtimestamp(unix, tz=timezone.utc)


def to_unix(when: datetime) -> int:
    return int(when.timestamp())


@dataclass
class RawSample:
    """One persisted physiological reading.

    Samples are append-only; ``stress`` is the only field written after
    the sample is stored.
    """

    time: datetime
    bpm: int
    rr_intervals: list[int] = field(default_factory=list)
    activity_code: int = 0
    stress: float | None = None

    @property
    def activity(self) -> ActivityClass:
        return classify_activity(self.activity_code)

    def is_valid(self) -> bool:
        return self.bpm > 0


class ActivityType(str, Enum):
    """Kind of a persisted activity record."""

    ACTIVITY = "activity"
    NAP = "nap"


@dataclass
class ActivityRecord:
    """A nap or exercise event, attributed to a sleep cycle's date key."""

    period_id: date
    start: datetime
    end: datetime
    activity: ActivityType

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass
class StressScore:
    """Stress score attached to the sample recorded at ``time``."""

    time: datetime
    score: float
