"""
Weekly ranking readmodel - compares users over frozen week snapshots.

Ranking is by days worked (N/7), then total minutes, then user id. Amounts
are reported per currency and never converted or summed across currencies.
"""
from datetime import date

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from topledger.infrastructure.db.models import User, WeekSnapshot


def list_snapshot_weeks(db: Session) -> list[dict]:
    """Distinct snapshotted weeks, newest first, with how many users each has."""
    rows = (
        db.query(
            WeekSnapshot.week_start,
            func.max(WeekSnapshot.week_end),
            func.count(distinct(WeekSnapshot.user_id)),
        )
        .group_by(WeekSnapshot.week_start)
        .order_by(WeekSnapshot.week_start.desc())
        .all()
    )
    return [
        {"week_start": week_start, "week_end": week_end, "users": users}
        for week_start, week_end, users in rows
    ]


def weekly_ranking(db: Session, week_start: date) -> dict:
    """Ranking table for one week plus week-wide per-currency totals."""
    snapshots = (
        db.query(WeekSnapshot, User)
        .join(User, User.id == WeekSnapshot.user_id)
        .filter(WeekSnapshot.week_start == week_start)
        .order_by(WeekSnapshot.created_at.asc(), WeekSnapshot.id.asc())
        .all()
    )
    # a restarted top leaves several snapshots for the week: latest per user wins
    latest = {user.id: (snap, user) for snap, user in snapshots}
    rows = list(latest.values())
    rows.sort(key=lambda r: (-r[0].days_worked, -r[0].total_duration_minutes, r[1].id))

    totals = {"gbp": 0, "eur": 0, "usd": 0}
    rankings = []
    for position, (snap, user) in enumerate(rows, start=1):
        totals["gbp"] += snap.total_gbp
        totals["eur"] += snap.total_eur
        totals["usd"] += snap.total_usd
        rankings.append({
            "position": position,
            "user_id": user.id,
            "name": user.name,
            "nickname": user.nickname,
            "snapshot_id": snap.id,
            "days_worked": snap.days_worked,
            "total_duration_minutes": snap.total_duration_minutes,
            "total_gbp": snap.total_gbp,
            "total_eur": snap.total_eur,
            "total_usd": snap.total_usd,
        })

    return {
        "week_start": week_start,
        "week_end": rows[0][0].week_end if rows else None,
        "rankings": rankings,
        "totals": totals,
    }
