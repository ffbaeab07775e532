"""
SQLAlchemy ORM models (users, earnings, tops, snapshots, audit log)
"""
from datetime import date as date_type, datetime
from sqlalchemy import (
    String, Integer, Text, TIMESTAMP, Date, ForeignKey, CheckConstraint,
    UniqueConstraint, Index, func, text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import JSONB

from topledger.domain.top_period import as_utc
from topledger.infrastructure.db.session import Base


class User(Base):
    """
    Ledger owner. role is "user" or "admin".
    """
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    nickname: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[str] = mapped_column(String(16), nullable=False, server_default="user")

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    last_signed_in_at: Mapped[datetime | None] = mapped_column(
        TIMESTAMP(timezone=True), nullable=True
    )

    earnings: Mapped[list["Earning"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    tops: Mapped[list["TopPeriod"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )
    snapshots: Mapped[list["WeekSnapshot"]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Earning(Base):
    """
    One recorded earning.

    Amounts live in three parallel minor-unit columns, exactly one of which
    is non-zero (the entry's currency).
    """
    __tablename__ = "earnings"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )

    gbp_amount: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    eur_amount: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    usd_amount: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    date: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False
    )

    user: Mapped[User] = relationship(back_populates="earnings")

    __table_args__ = (
        CheckConstraint(
            "gbp_amount >= 0 AND eur_amount >= 0 AND usd_amount >= 0",
            name="ck_earnings_amounts_non_negative",
        ),
        CheckConstraint("duration_minutes > 0", name="ck_earnings_duration_positive"),
        Index("ix_earnings_user_date", "user_id", "date"),
    )

    @property
    def currency(self) -> str | None:
        if self.gbp_amount:
            return "GBP"
        if self.eur_amount:
            return "EUR"
        if self.usd_amount:
            return "USD"
        return None

    @property
    def amount_minor(self) -> int:
        return (self.gbp_amount or 0) + (self.eur_amount or 0) + (self.usd_amount or 0)


class TopPeriod(Base):
    """
    A 7-day earning cycle ("Top"). At most one active per user.
    """
    __tablename__ = "top_periods"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    started_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    ends_at: Mapped[datetime] = mapped_column(TIMESTAMP(timezone=True), nullable=False)
    closed_at: Mapped[datetime | None] = mapped_column(TIMESTAMP(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, server_default="active", index=True
    )  # active, stopped, completed, cancelled

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    user: Mapped[User] = relationship(back_populates="tops")

    __table_args__ = (
        Index(
            "uq_top_periods_one_active_per_user",
            "user_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )

    @property
    def start_date(self) -> date_type:
        return as_utc(self.started_at).date()


class WeekSnapshot(Base):
    """
    Frozen aggregate of a closed top. Never edited through the API.

    One row per top (unique top_id). Top-less snapshots are unique per
    (user_id, week_start).

    week_end is exclusive (week_start + 7 days).
    """
    __tablename__ = "week_snapshots"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    top_id: Mapped[int | None] = mapped_column(
        Integer, ForeignKey("top_periods.id", ondelete="SET NULL"), nullable=True
    )
    week_start: Mapped[date_type] = mapped_column(Date, nullable=False, index=True)
    week_end: Mapped[date_type] = mapped_column(Date, nullable=False)

    total_gbp: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_eur: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_usd: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    total_duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    earnings_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    days_worked: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")

    details_by_day: Mapped[dict] = mapped_column(JSONB, nullable=False)
    totals_by_payment_method: Mapped[dict] = mapped_column(JSONB, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )

    user: Mapped[User] = relationship(back_populates="snapshots")

    __table_args__ = (
        UniqueConstraint("top_id", name="uq_week_snapshots_top"),
        Index(
            "uq_week_snapshots_user_week_no_top",
            "user_id",
            "week_start",
            unique=True,
            postgresql_where=text("top_id IS NULL"),
            sqlite_where=text("top_id IS NULL"),
        ),
    )


class AuditLog(Base):
    """
    Append-only trail of actions. Written best-effort.
    """
    __tablename__ = "audit_logs"

    id: Mapped[int] = mapped_column(primary_key=True)
    action: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    user_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    target_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    details: Mapped[dict] = mapped_column(JSONB, nullable=False)
    ip_address: Mapped[str | None] = mapped_column(String(64), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        TIMESTAMP(timezone=True),
        server_default=func.now(),
        nullable=False
    )
