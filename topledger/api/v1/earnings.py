"""
Earning API endpoints + live weekly stats
"""
from datetime import date as date_type

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from topledger.api.deps import client_ip, get_current_user, get_db
from topledger.api.serializers import earning_payload, money
from topledger.application.earnings import (
    CreateEarningUseCase,
    DeleteEarningUseCase,
    UpdateEarningUseCase,
    list_earnings,
)
from topledger.domain.top_period import utcnow
from topledger.infrastructure.db.models import User
from topledger.readmodels.earnings_summary import EarningsSummaryReadService


router = APIRouter(tags=["earnings"])


# === Request/Response models ===

class CreateEarningRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: float | str  # major units, e.g. 10.5 or "10.50"
    currency: str  # GBP, EUR, USD
    duration_minutes: int = Field(alias="durationMinutes")
    payment_method: str = Field(alias="paymentMethod")  # Cash, Revolut, PayPal, Wise, AIB, Crypto
    date: date_type | None = None
    description: str | None = None


class UpdateEarningRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    amount: float | str | None = None
    currency: str | None = None
    duration_minutes: int | None = Field(default=None, alias="durationMinutes")
    payment_method: str | None = Field(default=None, alias="paymentMethod")
    date: date_type | None = None
    description: str | None = None


class EarningResponse(BaseModel):
    id: int
    user_id: int
    date: date_type
    currency: str | None
    amount: float
    gbp_amount: float
    eur_amount: float
    usd_amount: float
    duration_minutes: int
    payment_method: str
    description: str | None


class SuccessResponse(BaseModel):
    success: bool = True


# === Endpoints ===

@router.post("/earnings", response_model=EarningResponse, status_code=201)
def create_earning(
    request: Request,
    req: CreateEarningRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Record an earning"""
    earning = CreateEarningUseCase(db).execute(
        user_id=user.id,
        amount=req.amount,
        currency=req.currency,
        duration_minutes=req.duration_minutes,
        payment_method=req.payment_method,
        earning_date=req.date,
        description=req.description,
        ip_address=client_ip(request),
    )
    return EarningResponse(**earning_payload(earning))


@router.get("/earnings", response_model=list[EarningResponse])
def get_earnings(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Own earnings, newest first"""
    return [EarningResponse(**earning_payload(e)) for e in list_earnings(db, user.id)]


@router.put("/earnings/{earning_id}", response_model=SuccessResponse)
def update_earning(
    request: Request,
    earning_id: int,
    req: UpdateEarningRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    UpdateEarningUseCase(db).execute(
        earning_id=earning_id,
        user_id=user.id,
        fields=req.model_dump(exclude_unset=True),
        ip_address=client_ip(request),
    )
    return SuccessResponse()


@router.delete("/earnings/{earning_id}", response_model=SuccessResponse)
def delete_earning(
    request: Request,
    earning_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    DeleteEarningUseCase(db).execute(
        earning_id=earning_id,
        user_id=user.id,
        ip_address=client_ip(request),
    )
    return SuccessResponse()


@router.get("/stats/weekly")
def weekly_stats(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Live per-calendar-week totals for the last 10 weeks"""
    rows = EarningsSummaryReadService(db).weekly_stats(user.id, today=utcnow().date())
    return [
        {
            "week_start": r["week_start"],
            "total_gbp": money(r["total_gbp"]),
            "total_eur": money(r["total_eur"]),
            "total_usd": money(r["total_usd"]),
            "total_duration_minutes": r["total_duration_minutes"],
            "earnings_count": r["earnings_count"],
            "days_worked": r["days_worked"],
        }
        for r in rows
    ]
