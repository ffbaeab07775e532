"""
Top period use cases - start, stop, read, and the expiry sweep.

Closing a top (user stop, admin cancel, or sweep after 7 days) always goes
through a status-guarded UPDATE ... WHERE status = 'active'. Only the caller
whose UPDATE matched a row writes the snapshot, so a top is closed and
snapshotted at most once even when the sweep and a request race.
"""
import logging
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from topledger.application.snapshots import CreateWeekSnapshotUseCase
from topledger.domain.errors import ConflictError, ForbiddenError, NotFoundError, ValidationError
from topledger.domain.top_period import (
    TERMINAL_STATUSES,
    TOP_STATUS_ACTIVE,
    TOP_STATUS_CANCELLED,
    TOP_STATUS_COMPLETED,
    TOP_STATUS_STOPPED,
    expiry_cutoff,
    is_expired,
    planned_end,
    utcnow,
)
from topledger.infrastructure.auditlog.repository import AuditLogRepository, SYSTEM_JOB_ADDRESS
from topledger.infrastructure.db.models import TopPeriod, WeekSnapshot
from topledger.readmodels.earnings_summary import EarningsSummary, EarningsSummaryReadService

logger = logging.getLogger(__name__)


@dataclass
class StopResult:
    stopped: bool
    message: str
    top: TopPeriod | None = None
    snapshot: WeekSnapshot | None = None


def get_current_top(db: Session, user_id: int) -> TopPeriod | None:
    return (
        db.query(TopPeriod)
        .filter(TopPeriod.user_id == user_id, TopPeriod.status == TOP_STATUS_ACTIVE)
        .order_by(TopPeriod.started_at.desc())
        .first()
    )


def list_top_history(db: Session, user_id: int) -> list[TopPeriod]:
    """All of the user's tops, most recent first."""
    return (
        db.query(TopPeriod)
        .filter(TopPeriod.user_id == user_id)
        .order_by(TopPeriod.started_at.desc(), TopPeriod.id.desc())
        .all()
    )


def close_top(
    db: Session,
    top: TopPeriod,
    status: str,
    now: datetime,
    actor_user_id: int | None = None,
    ip_address: str | None = None,
) -> WeekSnapshot | None:
    """
    Transition an active top to a terminal status and freeze its week.

    Does not commit. Returns the snapshot, or None when the top was no
    longer active (someone else closed it first).
    """
    if status not in TERMINAL_STATUSES:
        raise ValidationError(f"status: must be one of {', '.join(TERMINAL_STATUSES)}")

    updated = (
        db.query(TopPeriod)
        .filter(TopPeriod.id == top.id, TopPeriod.status == TOP_STATUS_ACTIVE)
        .update(
            {"status": status, "ends_at": now, "closed_at": now},
            synchronize_session=False,
        )
    )
    if not updated:
        return None

    snapshot = CreateWeekSnapshotUseCase(db).execute(
        user_id=top.user_id,
        week_start=top.start_date,
        top_id=top.id,
        now=now,
        commit=False,
    )
    AuditLogRepository(db).append(
        f"TOP_{status.upper()}",
        user_id=actor_user_id,
        target_id=top.id,
        details={"owner_id": top.user_id, "snapshot_id": snapshot.id},
        ip_address=ip_address,
    )
    return snapshot


class StartTopUseCase:
    """
    Use case: start a new 7-day top

    Raises:
        ConflictError: the user already has an active top
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(self, user_id: int, now: datetime | None = None, ip_address: str | None = None) -> TopPeriod:
        now = now or utcnow()
        current = get_current_top(self.db, user_id)
        if current is not None and is_expired(current.started_at, now):
            # Sweep has not reached it yet
            close_top(self.db, current, TOP_STATUS_COMPLETED, now, ip_address=SYSTEM_JOB_ADDRESS)
            self.db.commit()
            current = None
        if current is not None:
            raise ConflictError("An active top already exists")

        top = TopPeriod(
            user_id=user_id,
            started_at=now,
            ends_at=planned_end(now),
            status=TOP_STATUS_ACTIVE,
            created_at=now,
        )
        self.db.add(top)
        try:
            self.db.flush()
        except IntegrityError:
            # concurrent start already holds the one-active-per-user index
            self.db.rollback()
            raise ConflictError("An active top already exists")

        AuditLogRepository(self.db).append(
            "TOP_STARTED",
            user_id=user_id,
            target_id=top.id,
            details={"started_at": now.isoformat()},
            ip_address=ip_address,
        )
        self.db.commit()
        self.db.refresh(top)
        return top


class StopTopUseCase:
    """
    Use case: close the user's active top early

    status "stopped" for the user's own action, "cancelled" for an admin.
    Nothing active is not an error: the result says so.
    """

    def __init__(self, db: Session):
        self.db = db

    def execute(
        self,
        user_id: int,
        now: datetime | None = None,
        status: str = TOP_STATUS_STOPPED,
        actor_user_id: int | None = None,
        ip_address: str | None = None,
    ) -> StopResult:
        now = now or utcnow()
        top = get_current_top(self.db, user_id)
        if top is None:
            return StopResult(stopped=False, message="No active top to stop")

        snapshot = close_top(
            self.db,
            top,
            status,
            now,
            actor_user_id=actor_user_id if actor_user_id is not None else user_id,
            ip_address=ip_address,
        )
        if snapshot is None:
            self.db.rollback()
            return StopResult(stopped=False, message="No active top to stop")

        self.db.commit()
        self.db.refresh(top)
        verb = "cancelled" if status == TOP_STATUS_CANCELLED else "stopped"
        return StopResult(stopped=True, message=f"Top {verb}", top=top, snapshot=snapshot)


def sweep_expired_tops(db: Session, now: datetime | None = None) -> int:
    """
    Close every active top started 7 or more days ago (status completed).

    Idempotent: already closed tops do not match the guarded UPDATE, so a
    second run closes nothing. Each top commits on its own; one failing
    user does not block the rest.

    Returns:
        number of tops closed by this run
    """
    now = now or utcnow()
    cutoff = expiry_cutoff(now)

    candidates = (
        db.query(TopPeriod)
        .filter(TopPeriod.status == TOP_STATUS_ACTIVE, TopPeriod.started_at <= cutoff)
        .order_by(TopPeriod.id.asc())
        .all()
    )
    logger.info("Top sweep: %d expired top(s) found", len(candidates))

    closed = 0
    for top in candidates:
        top_id, user_id = top.id, top.user_id
        try:
            snapshot = close_top(db, top, TOP_STATUS_COMPLETED, now, ip_address=SYSTEM_JOB_ADDRESS)
            if snapshot is None:
                db.rollback()
                continue
            db.commit()
            closed += 1
            logger.info("Top %s of user %s completed after 7 days", top_id, user_id)
        except Exception:
            db.rollback()
            logger.exception("Top sweep failed for top %s (user %s)", top_id, user_id)

    logger.info("Top sweep: %d top(s) completed", closed)
    return closed


def get_top(db: Session, top_id: int, user_id: int, is_admin: bool = False) -> TopPeriod:
    top = db.query(TopPeriod).filter(TopPeriod.id == top_id).first()
    if top is None:
        raise NotFoundError("Top not found")
    if top.user_id != user_id and not is_admin:
        raise ForbiddenError("Top belongs to another user")
    return top


def get_top_report(db: Session, top: TopPeriod) -> tuple[str, WeekSnapshot | None, EarningsSummary | None]:
    """
    Aggregate for one top: the frozen snapshot once closed, live otherwise.

    Returns:
        (source, snapshot, summary) where source is "snapshot" or "live"
    """
    if top.status != TOP_STATUS_ACTIVE:
        snap = db.query(WeekSnapshot).filter(WeekSnapshot.top_id == top.id).first()
        if snap is not None:
            return "snapshot", snap, None
    return "live", None, EarningsSummaryReadService(db).summary_for_top(top)
