"""
Tests for week snapshot creation and lookup.
"""
from datetime import date, datetime, timedelta, timezone

import pytest

from topledger.application.earnings import CreateEarningUseCase
from topledger.application.snapshots import (
    CreateWeekSnapshotUseCase,
    get_snapshot,
    get_user_week_snapshot,
    list_snapshots,
)
from topledger.application.tops import StartTopUseCase, StopTopUseCase
from topledger.domain.errors import ForbiddenError, NotFoundError
from topledger.domain.top_period import TOP_STATUS_COMPLETED
from topledger.infrastructure.db.models import AuditLog, TopPeriod, WeekSnapshot

T0 = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
D0 = T0.date()


def _earn(db, user_id, amount, currency="EUR", method="Cash", day=D0):
    return CreateEarningUseCase(db).execute(
        user_id=user_id,
        amount=amount,
        currency=currency,
        duration_minutes=30,
        payment_method=method,
        earning_date=day,
    )


def test_snapshot_of_empty_week(db_session, user):
    snap = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0, now=T0)
    assert snap.week_end == D0 + timedelta(days=7)
    assert (snap.total_gbp, snap.total_eur, snap.total_usd) == (0, 0, 0)
    assert snap.days_worked == 0
    assert snap.details_by_day == {}
    assert snap.totals_by_payment_method == {}


def test_recreating_overwrites_instead_of_duplicating(db_session, user):
    _earn(db_session, user.id, "10")
    first = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0, now=T0)
    _earn(db_session, user.id, "2.50", day=D0 + timedelta(days=1))
    second = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0, now=T0 + timedelta(days=1))

    assert first.id == second.id
    assert db_session.query(WeekSnapshot).count() == 1
    assert second.total_eur == 1250
    assert second.days_worked == 2

    audits = db_session.query(AuditLog).filter(AuditLog.action == "WEEKLY_SNAPSHOT_CREATED").all()
    assert [a.details["replaced"] for a in audits] == [False, True]
    assert all(a.ip_address == "SYSTEM_JOB" for a in audits)


def test_same_entries_same_snapshot(db_session, user):
    _earn(db_session, user.id, "1.10", currency="USD", method="Crypto")
    _earn(db_session, user.id, "2.20", currency="GBP", method="AIB", day=D0 + timedelta(days=3))
    a = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0, now=T0)
    payload_a = (a.total_gbp, a.total_usd, a.details_by_day, a.totals_by_payment_method)
    b = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0, now=T0)
    assert payload_a == (b.total_gbp, b.total_usd, b.details_by_day, b.totals_by_payment_method)


def test_standalone_snapshot_closes_active_top_of_that_week(db_session, user):
    top = StartTopUseCase(db_session).execute(user.id, now=T0)
    snap = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0, now=T0 + timedelta(days=3))

    closed = db_session.query(TopPeriod).filter(TopPeriod.id == top.id).one()
    assert closed.status == TOP_STATUS_COMPLETED
    assert snap.top_id == top.id


def test_standalone_snapshot_leaves_other_weeks_top_alone(db_session, user):
    StartTopUseCase(db_session).execute(user.id, now=T0)
    CreateWeekSnapshotUseCase(db_session).execute(user.id, D0 - timedelta(days=7), now=T0)
    assert db_session.query(TopPeriod).one().status == "active"


def test_list_and_get(db_session, user, other_user, admin):
    older = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0 - timedelta(days=7), now=T0)
    newer = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0, now=T0)
    CreateWeekSnapshotUseCase(db_session).execute(other_user.id, D0, now=T0)

    assert [s.id for s in list_snapshots(db_session, user.id)] == [newer.id, older.id]
    assert get_snapshot(db_session, newer.id, user.id).id == newer.id
    assert get_snapshot(db_session, newer.id, admin.id, is_admin=True).id == newer.id
    with pytest.raises(ForbiddenError):
        get_snapshot(db_session, newer.id, other_user.id)
    with pytest.raises(NotFoundError):
        get_snapshot(db_session, 4242, user.id)

    assert get_user_week_snapshot(db_session, user.id, D0).id == newer.id
    with pytest.raises(NotFoundError):
        get_user_week_snapshot(db_session, user.id, date(2020, 1, 6))


def test_standalone_snapshot_does_not_touch_a_closed_tops_snapshot(db_session, user):
    StartTopUseCase(db_session).execute(user.id, now=T0)
    _earn(db_session, user.id, "10")
    top_snap = StopTopUseCase(db_session).execute(user.id, now=T0 + timedelta(hours=1)).snapshot
    top_snap_id = top_snap.id
    _earn(db_session, user.id, "4", day=D0 + timedelta(days=2))

    standalone = CreateWeekSnapshotUseCase(db_session).execute(user.id, D0, now=T0 + timedelta(days=3))

    assert standalone.id != top_snap_id
    assert standalone.top_id is None
    assert standalone.total_eur == 1400
    db_session.expire_all()
    assert db_session.query(WeekSnapshot).filter(WeekSnapshot.id == top_snap_id).one().total_eur == 1000
