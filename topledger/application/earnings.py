"""
Earning use cases - create / list / update / delete ledger entries

Aggregates are not maintained here: weekly stats, top reports and snapshots
recompute from the entries on read (see readmodels/earnings_summary.py).
"""
from datetime import date
from typing import Any

from sqlalchemy.orm import Session

from topledger.domain.earning import (
    split_amount,
    validate_currency,
    validate_duration,
    validate_payment_method,
)
from topledger.domain.errors import ForbiddenError, NotFoundError, ValidationError
from topledger.domain.top_period import utcnow
from topledger.infrastructure.auditlog.repository import AuditLogRepository
from topledger.infrastructure.db.models import Earning
from topledger.utils.money import from_minor_units

UPDATABLE_FIELDS = ("amount", "currency", "duration_minutes", "payment_method", "description", "date")


def list_earnings(db: Session, user_id: int) -> list[Earning]:
    """User's entries, newest date first."""
    return (
        db.query(Earning)
        .filter(Earning.user_id == user_id)
        .order_by(Earning.date.desc(), Earning.id.desc())
        .all()
    )


def get_owned_earning(db: Session, earning_id: int, user_id: int, is_admin: bool = False) -> Earning:
    """
    Load an entry and check ownership.

    Raises:
        NotFoundError: no entry with that id
        ForbiddenError: entry belongs to someone else and caller is not admin
    """
    earning = db.query(Earning).filter(Earning.id == earning_id).first()
    if earning is None:
        raise NotFoundError("Earning not found")
    if earning.user_id != user_id and not is_admin:
        raise ForbiddenError("Earning belongs to another user")
    return earning


class CreateEarningUseCase:
    """
    Use case: record a new earning

    1. Validate enumerations, duration and amount
    2. Convert the amount to minor units in its currency column
    3. Persist + audit
    """

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditLogRepository(db)

    def execute(
        self,
        user_id: int,
        amount,
        currency: str,
        duration_minutes: int,
        payment_method: str,
        earning_date: date | None = None,
        description: str | None = None,
        ip_address: str | None = None,
    ) -> Earning:
        """
        Args:
            user_id: owner
            amount: major units (e.g. "10.50" / Decimal / float)
            currency: GBP, EUR or USD
            duration_minutes: > 0
            payment_method: one of PAYMENT_METHODS
            earning_date: calendar date of the work, defaults to today (UTC)

        Returns:
            the stored Earning

        Raises:
            ValidationError: on any invalid field
        """
        amounts = split_amount(amount, currency)
        validate_duration(duration_minutes)
        validate_payment_method(payment_method)

        earning = Earning(
            user_id=user_id,
            duration_minutes=duration_minutes,
            payment_method=payment_method,
            description=description or None,
            date=earning_date or utcnow().date(),
            **amounts.as_columns(),
        )
        self.db.add(earning)
        self.db.flush()

        self.audit.append(
            "EARNING_CREATED",
            user_id=user_id,
            target_id=earning.id,
            details={
                "currency": currency,
                "amount": str(from_minor_units(earning.amount_minor)),
                "date": earning.date.isoformat(),
            },
            ip_address=ip_address,
        )
        self.db.commit()
        self.db.refresh(earning)
        return earning


class UpdateEarningUseCase:
    """
    Use case: partially update an earning

    Ownership is enforced unless the caller is an admin. Concurrent edits of
    the same entry are last-write-wins.
    """

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditLogRepository(db)

    def execute(
        self,
        earning_id: int,
        user_id: int,
        fields: dict[str, Any],
        is_admin: bool = False,
        ip_address: str | None = None,
    ) -> Earning:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        earning = get_owned_earning(self.db, earning_id, user_id, is_admin=is_admin)
        before = {"date": earning.date.isoformat(), "currency": earning.currency, "amount_minor": earning.amount_minor}

        if "amount" in fields or "currency" in fields:
            currency = fields.get("currency") or earning.currency
            validate_currency(currency)
            if "amount" in fields and fields["amount"] is not None:
                amount = fields["amount"]
            else:
                amount = from_minor_units(earning.amount_minor)
            for column, value in split_amount(amount, currency).as_columns().items():
                setattr(earning, column, value)

        if fields.get("duration_minutes") is not None:
            earning.duration_minutes = validate_duration(fields["duration_minutes"])
        if fields.get("payment_method") is not None:
            earning.payment_method = validate_payment_method(fields["payment_method"])
        if "description" in fields:
            earning.description = fields["description"] or None
        if fields.get("date") is not None:
            earning.date = fields["date"]

        self.db.flush()
        self.audit.append(
            "EARNING_UPDATED",
            user_id=user_id,
            target_id=earning.id,
            details={
                "owner_id": earning.user_id,
                "before": before,
                "after": {
                    "date": earning.date.isoformat(),
                    "currency": earning.currency,
                    "amount_minor": earning.amount_minor,
                },
                "by_admin": is_admin and earning.user_id != user_id,
            },
            ip_address=ip_address,
        )
        self.db.commit()
        self.db.refresh(earning)
        return earning


class DeleteEarningUseCase:
    """Use case: delete an earning (same ownership rule as update)"""

    def __init__(self, db: Session):
        self.db = db
        self.audit = AuditLogRepository(db)

    def execute(
        self,
        earning_id: int,
        user_id: int,
        is_admin: bool = False,
        ip_address: str | None = None,
    ) -> None:
        earning = get_owned_earning(self.db, earning_id, user_id, is_admin=is_admin)
        details = {
            "owner_id": earning.user_id,
            "date": earning.date.isoformat(),
            "currency": earning.currency,
            "amount_minor": earning.amount_minor,
        }
        self.db.delete(earning)
        self.db.flush()
        self.audit.append(
            "EARNING_DELETED",
            user_id=user_id,
            target_id=earning_id,
            details=details,
            ip_address=ip_address,
        )
        self.db.commit()

