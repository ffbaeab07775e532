"""
Tests for earning use cases: create, list, update, delete, ownership.
"""
import logging
from datetime import date

import pytest
from sqlalchemy import text

from topledger.application.earnings import (
    CreateEarningUseCase,
    DeleteEarningUseCase,
    UpdateEarningUseCase,
    list_earnings,
)
from topledger.domain.errors import ForbiddenError, NotFoundError, ValidationError
from topledger.infrastructure.auditlog.repository import AuditLogRepository
from topledger.infrastructure.db.models import AuditLog, Earning

D0 = date(2026, 3, 2)


def _create(db, user_id, amount="10.00", currency="EUR", method="Cash", day=D0, minutes=60):
    return CreateEarningUseCase(db).execute(
        user_id=user_id,
        amount=amount,
        currency=currency,
        duration_minutes=minutes,
        payment_method=method,
        earning_date=day,
    )


def test_create_then_list_returns_minor_units(db_session, user):
    _create(db_session, user.id, amount="10.5", currency="GBP")
    _create(db_session, user.id, amount=3.5, currency="USD", day=date(2026, 3, 3))

    rows = list_earnings(db_session, user.id)

    assert [e.date for e in rows] == [date(2026, 3, 3), D0]
    assert rows[0].usd_amount == 350
    assert (rows[0].gbp_amount, rows[0].eur_amount) == (0, 0)
    assert rows[1].gbp_amount == 1050
    assert rows[1].currency == "GBP"


def test_create_writes_audit_record(db_session, user):
    e = _create(db_session, user.id)
    audit = db_session.query(AuditLog).filter(AuditLog.action == "EARNING_CREATED").one()
    assert audit.user_id == user.id
    assert audit.target_id == str(e.id)
    assert audit.details["amount"] == "10.00"


@pytest.mark.parametrize("kwargs", [
    {"amount": "0"},
    {"amount": "-3"},
    {"currency": "BRL"},
    {"method": "Cheque"},
    {"minutes": 0},
])
def test_create_rejects_invalid_input(db_session, user, kwargs):
    with pytest.raises(ValidationError):
        _create(db_session, user.id, **kwargs)
    assert db_session.query(Earning).count() == 0


def test_list_only_own_entries(db_session, user, other_user):
    _create(db_session, user.id)
    _create(db_session, other_user.id)
    assert len(list_earnings(db_session, user.id)) == 1


def test_update_amount_keeps_currency(db_session, user):
    e = _create(db_session, user.id, amount="10", currency="EUR")
    UpdateEarningUseCase(db_session).execute(e.id, user.id, {"amount": "12.34"})
    db_session.refresh(e)
    assert e.eur_amount == 1234
    assert e.currency == "EUR"


def test_update_currency_moves_amount_to_new_column(db_session, user):
    e = _create(db_session, user.id, amount="10", currency="EUR")
    UpdateEarningUseCase(db_session).execute(e.id, user.id, {"currency": "USD"})
    db_session.refresh(e)
    assert (e.gbp_amount, e.eur_amount, e.usd_amount) == (0, 0, 1000)


def test_update_other_fields(db_session, user):
    e = _create(db_session, user.id)
    UpdateEarningUseCase(db_session).execute(
        e.id, user.id,
        {"duration_minutes": 90, "payment_method": "Wise", "description": "late shift", "date": date(2026, 3, 4)},
    )
    db_session.refresh(e)
    assert e.duration_minutes == 90
    assert e.payment_method == "Wise"
    assert e.description == "late shift"
    assert e.date == date(2026, 3, 4)


def test_update_unknown_field_rejected(db_session, user):
    e = _create(db_session, user.id)
    with pytest.raises(ValidationError):
        UpdateEarningUseCase(db_session).execute(e.id, user.id, {"user_id": 99})


def test_update_missing_entry(db_session, user):
    with pytest.raises(NotFoundError):
        UpdateEarningUseCase(db_session).execute(12345, user.id, {"amount": "1"})


def test_non_owner_cannot_update_or_delete(db_session, user, other_user):
    e = _create(db_session, user.id)
    with pytest.raises(ForbiddenError):
        UpdateEarningUseCase(db_session).execute(e.id, other_user.id, {"amount": "1"})
    with pytest.raises(ForbiddenError):
        DeleteEarningUseCase(db_session).execute(e.id, other_user.id)
    db_session.refresh(e)
    assert e.eur_amount == 1000


def test_admin_can_update_and_delete_any_entry(db_session, user, admin):
    e = _create(db_session, user.id)
    UpdateEarningUseCase(db_session).execute(e.id, admin.id, {"amount": "20"}, is_admin=True)
    db_session.refresh(e)
    assert e.eur_amount == 2000
    assert e.user_id == user.id

    audit = db_session.query(AuditLog).filter(AuditLog.action == "EARNING_UPDATED").one()
    assert audit.details["by_admin"] is True

    DeleteEarningUseCase(db_session).execute(e.id, admin.id, is_admin=True)
    assert db_session.query(Earning).count() == 0


def test_owner_delete(db_session, user):
    e = _create(db_session, user.id)
    DeleteEarningUseCase(db_session).execute(e.id, user.id)
    assert list_earnings(db_session, user.id) == []


def test_failed_audit_write_does_not_abort_the_entry(db_session, user, caplog):
    db_session.execute(text("DROP TABLE audit_logs"))

    with caplog.at_level(logging.WARNING, logger="topledger.infrastructure.auditlog.repository"):
        earning = _create(db_session, user.id, amount="7.00")

    rows = list_earnings(db_session, user.id)
    assert [e.id for e in rows] == [earning.id]
    assert rows[0].eur_amount == 700
    assert "Audit log write failed for action=EARNING_CREATED" in caplog.text


def test_audit_append_reports_failure_instead_of_raising(db_session, user):
    db_session.execute(text("DROP TABLE audit_logs"))
    assert AuditLogRepository(db_session).append("EARNING_CREATED", user_id=user.id) is None
