"""
Earnings summary readmodel - the aggregator behind live stats, top reports
and frozen week snapshots.

aggregate_earnings() is pure: integer sums only, dict keys emitted in sorted
order, so the same entries over the same range always produce the same
output whatever order they arrive in.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Iterable

from sqlalchemy.orm import Session

from topledger.domain.top_period import TOP_LENGTH
from topledger.infrastructure.db.models import Earning, TopPeriod


def _zero_totals() -> dict[str, int]:
    return {"gbp": 0, "eur": 0, "usd": 0}


def _add_amounts(totals: dict[str, int], e: Earning) -> None:
    totals["gbp"] += e.gbp_amount or 0
    totals["eur"] += e.eur_amount or 0
    totals["usd"] += e.usd_amount or 0


@dataclass
class EarningsSummary:
    week_start: date
    week_end: date  # exclusive
    totals: dict[str, int] = field(default_factory=_zero_totals)
    by_payment_method: dict[str, dict[str, int]] = field(default_factory=dict)
    by_day: dict[str, dict[str, Any]] = field(default_factory=dict)
    total_duration_minutes: int = 0
    earnings_count: int = 0

    @property
    def days_worked(self) -> int:
        return len(self.by_day)

    @property
    def total_gbp(self) -> int:
        return self.totals["gbp"]

    @property
    def total_eur(self) -> int:
        return self.totals["eur"]

    @property
    def total_usd(self) -> int:
        return self.totals["usd"]

    def to_dict(self) -> dict[str, Any]:
        return {
            "week_start": self.week_start.isoformat(),
            "week_end": self.week_end.isoformat(),
            "totals": dict(self.totals),
            "by_payment_method": self.by_payment_method,
            "by_day": self.by_day,
            "total_duration_minutes": self.total_duration_minutes,
            "earnings_count": self.earnings_count,
            "days_worked": self.days_worked,
        }


def aggregate_earnings(
    earnings: Iterable[Earning],
    week_start: date,
    week_end: date,
) -> EarningsSummary:
    """
    Aggregate entries dated in [week_start, week_end).

    Entries outside the range are ignored, so callers may pass a superset.
    """
    totals = _zero_totals()
    by_method: dict[str, dict[str, int]] = {}
    by_day: dict[str, dict[str, Any]] = {}
    duration = 0
    count = 0

    for e in sorted(earnings, key=lambda x: (x.date, x.id or 0)):
        if not (week_start <= e.date < week_end):
            continue
        count += 1
        duration += e.duration_minutes
        _add_amounts(totals, e)
        _add_amounts(by_method.setdefault(e.payment_method, _zero_totals()), e)

        day = by_day.setdefault(e.date.isoformat(), {
            **_zero_totals(),
            "duration_minutes": 0,
            "count": 0,
            "earnings": [],
        })
        _add_amounts(day, e)
        day["duration_minutes"] += e.duration_minutes
        day["count"] += 1
        day["earnings"].append({
            "id": e.id,
            "gbp": e.gbp_amount or 0,
            "eur": e.eur_amount or 0,
            "usd": e.usd_amount or 0,
            "duration_minutes": e.duration_minutes,
            "payment_method": e.payment_method,
        })

    return EarningsSummary(
        week_start=week_start,
        week_end=week_end,
        totals=totals,
        by_payment_method={k: by_method[k] for k in sorted(by_method)},
        by_day={k: by_day[k] for k in sorted(by_day)},
        total_duration_minutes=duration,
        earnings_count=count,
    )


def monday_of(d: date) -> date:
    """Calendar week start (Monday) for d."""
    return d - timedelta(days=d.weekday())


class EarningsSummaryReadService:
    """
    Loads a user's entries and runs the aggregator on read.

    Nothing is cached: every call reflects the current entry set.
    """

    def __init__(self, db: Session):
        self.db = db

    def _load(self, user_id: int, start: date, end: date) -> list[Earning]:
        return (
            self.db.query(Earning)
            .filter(
                Earning.user_id == user_id,
                Earning.date >= start,
                Earning.date < end,
            )
            .all()
        )

    def summary_for_range(self, user_id: int, week_start: date, week_end: date | None = None) -> EarningsSummary:
        week_end = week_end or (week_start + TOP_LENGTH)
        return aggregate_earnings(self._load(user_id, week_start, week_end), week_start, week_end)

    def summary_for_top(self, top: TopPeriod) -> EarningsSummary:
        """Live aggregate for the 7-day window a top covers."""
        return self.summary_for_range(top.user_id, top.start_date)

    def weekly_stats(self, user_id: int, today: date, weeks: int = 10) -> list[dict[str, Any]]:
        """
        Per calendar week (Monday start) aggregates for the last `weeks`
        weeks that have entries, newest first.
        """
        first = monday_of(today) - timedelta(weeks=weeks - 1)
        last = monday_of(today) + timedelta(days=7)
        rows = self._load(user_id, first, last)

        by_week: dict[date, list[Earning]] = {}
        for e in rows:
            by_week.setdefault(monday_of(e.date), []).append(e)

        result = []
        for week_start in sorted(by_week, reverse=True):
            s = aggregate_earnings(by_week[week_start], week_start, week_start + timedelta(days=7))
            result.append({
                "week_start": week_start,
                "total_gbp": s.total_gbp,
                "total_eur": s.total_eur,
                "total_usd": s.total_usd,
                "total_duration_minutes": s.total_duration_minutes,
                "earnings_count": s.earnings_count,
                "days_worked": s.days_worked,
            })
        return result
