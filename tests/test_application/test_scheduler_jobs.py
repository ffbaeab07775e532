"""
Tests for the background sweep job wrapper
"""
import logging
from datetime import timedelta

from sqlalchemy.orm import sessionmaker

from topledger.application import scheduler
from topledger.application.tops import StartTopUseCase
from topledger.domain.top_period import TOP_STATUS_COMPLETED, utcnow
from topledger.infrastructure.db.models import TopPeriod, WeekSnapshot


def test_run_top_sweep_uses_its_own_session(db_engine, db_session, user, monkeypatch):
    StartTopUseCase(db_session).execute(user.id, now=utcnow() - timedelta(days=8))
    db_session.commit()  # release the shared connection
    monkeypatch.setattr(
        "topledger.infrastructure.db.session.get_session_factory",
        lambda: sessionmaker(bind=db_engine),
    )

    scheduler._run_top_sweep()

    db_session.expire_all()
    assert db_session.query(TopPeriod).one().status == TOP_STATUS_COMPLETED
    assert db_session.query(WeekSnapshot).count() == 1


def test_run_top_sweep_logs_failures(db_engine, monkeypatch, caplog):
    def _boom(db, now=None):
        raise RuntimeError("boom")

    monkeypatch.setattr(
        "topledger.infrastructure.db.session.get_session_factory",
        lambda: sessionmaker(bind=db_engine),
    )
    monkeypatch.setattr("topledger.application.tops.sweep_expired_tops", _boom)

    with caplog.at_level(logging.ERROR):
        scheduler._run_top_sweep()

    assert "Top sweep job failed" in caplog.text
