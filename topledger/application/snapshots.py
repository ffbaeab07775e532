"""
Week snapshot use cases - freeze the aggregate of a closed top.

Discipline: one snapshot per closed top, keyed by top_id. A top closes once,
so its snapshot is written once and stays frozen even when a later top of
the same user starts on the same day.

Snapshots taken without a top (manual runs, backfills) are keyed by
(user_id, week_start). Re-running one overwrites it with the freshly
computed aggregate, so the same entry set always yields the same stored row
and never a duplicate.
"""
import logging
from datetime import date, datetime

from sqlalchemy.orm import Session

from topledger.domain.errors import ForbiddenError, NotFoundError
from topledger.domain.top_period import (
    TOP_LENGTH,
    TOP_STATUS_ACTIVE,
    TOP_STATUS_COMPLETED,
    utcnow,
)
from topledger.infrastructure.auditlog.repository import AuditLogRepository, SYSTEM_JOB_ADDRESS
from topledger.infrastructure.db.models import TopPeriod, WeekSnapshot
from topledger.readmodels.earnings_summary import EarningsSummaryReadService
from topledger.utils.money import format_money, from_minor_units

logger = logging.getLogger(__name__)


def list_snapshots(db: Session, user_id: int) -> list[WeekSnapshot]:
    """User's snapshots, most recent week first."""
    return (
        db.query(WeekSnapshot)
        .filter(WeekSnapshot.user_id == user_id)
        .order_by(WeekSnapshot.week_start.desc(), WeekSnapshot.id.desc())
        .all()
    )


def get_snapshot(db: Session, snapshot_id: int, user_id: int, is_admin: bool = False) -> WeekSnapshot:
    snap = db.query(WeekSnapshot).filter(WeekSnapshot.id == snapshot_id).first()
    if snap is None:
        raise NotFoundError("Snapshot not found")
    if snap.user_id != user_id and not is_admin:
        raise ForbiddenError("Snapshot belongs to another user")
    return snap


def get_user_week_snapshot(db: Session, user_id: int, week_start: date) -> WeekSnapshot:
    """Latest snapshot of the user's week (a restarted top adds another)."""
    snap = (
        db.query(WeekSnapshot)
        .filter(WeekSnapshot.user_id == user_id, WeekSnapshot.week_start == week_start)
        .order_by(WeekSnapshot.created_at.desc(), WeekSnapshot.id.desc())
        .first()
    )
    if snap is None:
        raise NotFoundError("Snapshot not found")
    return snap


class CreateWeekSnapshotUseCase:
    """
    Use case: aggregate [week_start, week_start + 7d) and persist it

    Process:
    1. Without a top_id, close a still-active top of that week (status
       completed) and snapshot it as that top
    2. Run the aggregator over the user's entries for the week
    3. Upsert the snapshot row: by top_id, else by (user_id, week_start)
       among top-less snapshots
    4. Audit, then commit unless the caller owns the transaction
    """

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditLogRepository(db)

    def execute(
        self,
        user_id: int,
        week_start: date,
        top_id: int | None = None,
        now: datetime | None = None,
        commit: bool = True,
    ) -> WeekSnapshot:
        now = now or utcnow()
        if top_id is None:
            top_id = self._close_active_top_of_week(user_id, week_start, now)

        week_end = week_start + TOP_LENGTH
        summary = EarningsSummaryReadService(self.db).summary_for_range(user_id, week_start, week_end)

        query = self.db.query(WeekSnapshot).filter(WeekSnapshot.user_id == user_id)
        if top_id is not None:
            query = query.filter(WeekSnapshot.top_id == top_id)
        else:
            query = query.filter(WeekSnapshot.week_start == week_start, WeekSnapshot.top_id.is_(None))
        snap = query.first()
        replaced = snap is not None
        if snap is None:
            snap = WeekSnapshot(user_id=user_id, top_id=top_id, week_start=week_start)
            self.db.add(snap)

        snap.week_end = week_end
        snap.total_gbp = summary.total_gbp
        snap.total_eur = summary.total_eur
        snap.total_usd = summary.total_usd
        snap.total_duration_minutes = summary.total_duration_minutes
        snap.earnings_count = summary.earnings_count
        snap.days_worked = summary.days_worked
        snap.details_by_day = summary.by_day
        snap.totals_by_payment_method = summary.by_payment_method
        snap.created_at = now
        self.db.flush()

        self.audit.append(
            "WEEKLY_SNAPSHOT_CREATED",
            user_id=user_id,
            target_id=snap.id,
            details={
                "week_start": week_start.isoformat(),
                "week_end": week_end.isoformat(),
                "top_id": top_id,
                "total_gbp": str(from_minor_units(summary.total_gbp)),
                "total_eur": str(from_minor_units(summary.total_eur)),
                "total_usd": str(from_minor_units(summary.total_usd)),
                "earnings_count": summary.earnings_count,
                "replaced": replaced,
            },
            ip_address=SYSTEM_JOB_ADDRESS,
        )

        if commit:
            self.db.commit()
            self.db.refresh(snap)

        logger.info(
            "Snapshot %s for user %s week %s: %s, %s, %s",
            "replaced" if replaced else "created",
            user_id, week_start,
            format_money(summary.total_gbp, "GBP"),
            format_money(summary.total_eur, "EUR"),
            format_money(summary.total_usd, "USD"),
        )
        return snap

    def _close_active_top_of_week(self, user_id: int, week_start: date, now: datetime) -> int | None:
        """Standalone snapshot creation also clears the user's current period."""
        active = self.db.query(TopPeriod).filter(
            TopPeriod.user_id == user_id,
            TopPeriod.status == TOP_STATUS_ACTIVE,
        ).first()
        if active is None or active.start_date != week_start:
            return None
        updated = (
            self.db.query(TopPeriod)
            .filter(TopPeriod.id == active.id, TopPeriod.status == TOP_STATUS_ACTIVE)
            .update(
                {"status": TOP_STATUS_COMPLETED, "ends_at": now, "closed_at": now},
                synchronize_session=False,
            )
        )
        return active.id if updated else None
