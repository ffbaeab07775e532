"""
JSON shapes shared by the routers.

Storage is integer minor units; every amount leaving the API is converted
here to major units (1050 -> 10.5).
"""
from datetime import datetime
from typing import Any

from topledger.domain.top_period import (
    TOP_STATUS_ACTIVE,
    as_utc,
    current_day,
    time_remaining,
    utcnow,
)
from topledger.infrastructure.db.models import Earning, TopPeriod, WeekSnapshot
from topledger.utils.money import from_minor_units

_MONEY_KEYS = ("gbp", "eur", "usd")


def money(minor: int | None) -> float:
    return float(from_minor_units(minor or 0))


def currency_totals(totals: dict[str, Any]) -> dict[str, float]:
    return {k: money(totals.get(k, 0)) for k in _MONEY_KEYS}


def earning_payload(e: Earning) -> dict[str, Any]:
    return {
        "id": e.id,
        "user_id": e.user_id,
        "date": e.date,
        "currency": e.currency,
        "amount": money(e.amount_minor),
        "gbp_amount": money(e.gbp_amount),
        "eur_amount": money(e.eur_amount),
        "usd_amount": money(e.usd_amount),
        "duration_minutes": e.duration_minutes,
        "payment_method": e.payment_method,
        "description": e.description,
        "created_at": e.created_at,
        "updated_at": e.updated_at,
    }


def top_payload(top: TopPeriod, now: datetime | None = None) -> dict[str, Any]:
    data = {
        "id": top.id,
        "user_id": top.user_id,
        "status": top.status,
        "started_at": as_utc(top.started_at),
        "ends_at": as_utc(top.ends_at),
        "closed_at": as_utc(top.closed_at) if top.closed_at else None,
        "start_date": top.start_date,
    }
    if top.status == TOP_STATUS_ACTIVE:
        now = now or utcnow()
        data["current_day"] = current_day(top.started_at, now)
        data["time_remaining_seconds"] = int(time_remaining(top.started_at, now).total_seconds())
    return data


def summary_payload(summary: dict[str, Any]) -> dict[str, Any]:
    """EarningsSummary.to_dict() (or the same shape from a snapshot) in major units."""
    by_day = {}
    for day, d in summary["by_day"].items():
        by_day[day] = {
            **currency_totals(d),
            "duration_minutes": d["duration_minutes"],
            "count": d["count"],
            "earnings": [
                {**item, **currency_totals(item)} for item in d["earnings"]
            ],
        }
    return {
        "week_start": summary["week_start"],
        "week_end": summary["week_end"],
        "totals": currency_totals(summary["totals"]),
        "by_payment_method": {
            method: currency_totals(t) for method, t in summary["by_payment_method"].items()
        },
        "by_day": by_day,
        "total_duration_minutes": summary["total_duration_minutes"],
        "earnings_count": summary["earnings_count"],
        "days_worked": summary["days_worked"],
    }


def snapshot_summary(snap: WeekSnapshot) -> dict[str, Any]:
    """Frozen snapshot in the aggregator's to_dict() shape (minor units)."""
    return {
        "week_start": snap.week_start.isoformat(),
        "week_end": snap.week_end.isoformat(),
        "totals": {"gbp": snap.total_gbp, "eur": snap.total_eur, "usd": snap.total_usd},
        "by_payment_method": snap.totals_by_payment_method or {},
        "by_day": snap.details_by_day or {},
        "total_duration_minutes": snap.total_duration_minutes,
        "earnings_count": snap.earnings_count,
        "days_worked": snap.days_worked,
    }


def snapshot_payload(snap: WeekSnapshot) -> dict[str, Any]:
    return {
        "id": snap.id,
        "user_id": snap.user_id,
        "top_id": snap.top_id,
        "created_at": snap.created_at,
        "days_worked_label": f"{snap.days_worked}/7",
        **summary_payload(snapshot_summary(snap)),
    }
