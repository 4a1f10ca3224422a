"""SQLAlchemy-backed store.

Times are stored as Unix seconds so that SQLite round-trips them without
losing the UTC offset.
"""

from __future__ import annotations

import json
from datetime import date, datetime

from sqlalchemy import BigInteger, Date, Float, Integer, String, Text, create_engine, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, Mapped, Session, mapped_column, sessionmaker

from strapsync.analytics.sleep import SleepCycle, sleep_score
from strapsync.models import ActivityRecord, ActivityType, RawSample, from_unix, to_unix
from strapsync.storage.base import HistoryStore


# ---------------------------------------------------------------------------
# ORM tables
# ---------------------------------------------------------------------------


class Base(DeclarativeBase):
    """Shared declarative base for all ORM models."""


class SampleRow(Base):
    """Persisted raw reading."""

    __tablename__ = "samples"

    unix: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    bpm: Mapped[int] = mapped_column(Integer)
    rr_json: Mapped[str] = mapped_column(Text, default="[]")
    activity_code: Mapped[int] = mapped_column(BigInteger)
    stress: Mapped[float | None] = mapped_column(Float, nullable=True, index=True)


class SleepCycleRow(Base):
    """Committed sleep cycle, one per end date."""

    __tablename__ = "sleep_cycles"

    sleep_id: Mapped[date] = mapped_column(Date, primary_key=True)
    start: Mapped[int] = mapped_column(BigInteger, index=True)
    end: Mapped[int] = mapped_column(BigInteger, index=True)
    min_bpm: Mapped[int] = mapped_column(Integer)
    max_bpm: Mapped[int] = mapped_column(Integer)
    avg_bpm: Mapped[int] = mapped_column(Integer)
    min_hrv: Mapped[int] = mapped_column(Integer)
    max_hrv: Mapped[int] = mapped_column(Integer)
    avg_hrv: Mapped[int] = mapped_column(Integer)
    score: Mapped[float | None] = mapped_column(Float, nullable=True)


class ActivityRow(Base):
    """Nap or exercise period."""

    __tablename__ = "activities"

    start: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    end: Mapped[int] = mapped_column(BigInteger)
    period_id: Mapped[date] = mapped_column(Date, index=True)
    activity: Mapped[str] = mapped_column(String(16))


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def _sample_from_row(row: SampleRow) -> RawSample:
    return RawSample(
        time=from_unix(row.unix),
        bpm=row.bpm,
        rr_intervals=json.loads(row.rr_json),
        activity_code=row.activity_code,
        stress=row.stress,
    )


def _cycle_from_row(row: SleepCycleRow) -> SleepCycle:
    start = from_unix(row.start)
    end = from_unix(row.end)
    return SleepCycle(
        id=row.sleep_id,
        start=start,
        end=end,
        min_bpm=row.min_bpm,
        max_bpm=row.max_bpm,
        avg_bpm=row.avg_bpm,
        min_hrv=row.min_hrv,
        max_hrv=row.max_hrv,
        avg_hrv=row.avg_hrv,
        score=row.score if row.score is not None else sleep_score(start, end),
    )


def _activity_from_row(row: ActivityRow) -> ActivityRecord:
    return ActivityRecord(
        period_id=row.period_id,
        start=from_unix(row.start),
        end=from_unix(row.end),
        activity=ActivityType(row.activity),
    )


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class DatabaseStore(HistoryStore):
    """:class:`HistoryStore` over any SQLAlchemy database URL.

    Each call runs in its own transaction; errors propagate unchanged.
    """

    def __init__(self, url: str | None = None, engine: Engine | None = None) -> None:
        if engine is None:
            if url is None:
                raise ValueError("either url or engine is required")
            engine = create_engine(url)
        self.engine = engine
        self._sessions = sessionmaker(bind=engine, expire_on_commit=False)
        Base.metadata.create_all(engine)

    def _session(self) -> Session:
        return self._sessions()

    # -- samples ----------------------------------------------------------

    def create_sample(self, sample: RawSample) -> None:
        with self._session() as session, session.begin():
            session.merge(SampleRow(
                unix=to_unix(sample.time),
                bpm=sample.bpm,
                rr_json=json.dumps(list(sample.rr_intervals)),
                activity_code=sample.activity_code,
                stress=sample.stress,
            ))

    def search_samples(
        self,
        start: datetime | None = None,
        end: datetime | None = None,
        limit: int | None = None,
    ) -> list[RawSample]:
        stmt = select(SampleRow).order_by(SampleRow.unix)
        if start is not None:
            stmt = stmt.where(SampleRow.unix >= to_unix(start))
        if end is not None:
            stmt = stmt.where(SampleRow.unix <= to_unix(end))
        if limit is not None:
            stmt = stmt.limit(limit)
        with self._session() as session:
            return [_sample_from_row(row) for row in session.scalars(stmt)]

    def update_sample_stress(self, time: datetime, score: float) -> None:
        with self._session() as session, session.begin():
            row = session.get(SampleRow, to_unix(time))
            if row is None:
                raise KeyError(f"no sample at {time.isoformat()}")
            row.stress = score

    def latest_stress_timestamp(self) -> datetime | None:
        stmt = (
            select(SampleRow.unix)
            .where(SampleRow.stress.is_not(None))
            .order_by(SampleRow.unix.desc())
            .limit(1)
        )
        with self._session() as session:
            unix = session.scalar(stmt)
        return from_unix(unix) if unix is not None else None

    # -- sleep cycles -----------------------------------------------------

    def latest_sleep_cycle(self) -> SleepCycle | None:
        stmt = select(SleepCycleRow).order_by(SleepCycleRow.end.desc()).limit(1)
        with self._session() as session:
            row = session.scalar(stmt)
            return _cycle_from_row(row) if row is not None else None

    def all_sleep_cycles(self) -> list[SleepCycle]:
        stmt = select(SleepCycleRow).order_by(SleepCycleRow.start)
        with self._session() as session:
            return [_cycle_from_row(row) for row in session.scalars(stmt)]

    def create_sleep_cycle(
        self,
        cycle: SleepCycle,
        supersedes: date | None = None,
    ) -> None:
        with self._session() as session, session.begin():
            if supersedes is not None and supersedes != cycle.id:
                old = session.get(SleepCycleRow, supersedes)
                if old is not None:
                    session.delete(old)
            session.merge(SleepCycleRow(
                sleep_id=cycle.id,
                start=to_unix(cycle.start),
                end=to_unix(cycle.end),
                min_bpm=cycle.min_bpm,
                max_bpm=cycle.max_bpm,
                avg_bpm=cycle.avg_bpm,
                min_hrv=cycle.min_hrv,
                max_hrv=cycle.max_hrv,
                avg_hrv=cycle.avg_hrv,
                score=cycle.score,
            ))

    # -- activities -------------------------------------------------------

    def create_activity_record(self, record: ActivityRecord) -> None:
        with self._session() as session, session.begin():
            session.merge(ActivityRow(
                start=to_unix(record.start),
                end=to_unix(record.end),
                period_id=record.period_id,
                activity=record.activity.value,
            ))

    def activity_records(self) -> list[ActivityRecord]:
        stmt = select(ActivityRow).order_by(ActivityRow.start)
        with self._session() as session:
            return [_activity_from_row(row) for row in session.scalars(stmt)]
