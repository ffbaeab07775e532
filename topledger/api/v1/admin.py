"""
Admin API routes.

Access: only users with role "admin" (require_admin -> 403 otherwise).
Admin edits skip the ownership check but are still audited with by_admin.
"""
from datetime import date

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from topledger.api.deps import client_ip, get_db, require_admin
from topledger.api.serializers import earning_payload, money, snapshot_payload, top_payload
from topledger.api.v1.earnings import EarningResponse, SuccessResponse, UpdateEarningRequest
from topledger.application.earnings import DeleteEarningUseCase, UpdateEarningUseCase, list_earnings
from topledger.application.snapshots import get_user_week_snapshot
from topledger.application.tops import StopTopUseCase
from topledger.domain.errors import NotFoundError
from topledger.domain.top_period import TOP_STATUS_CANCELLED
from topledger.infrastructure.auditlog.repository import AuditLogRepository
from topledger.infrastructure.db.models import User
from topledger.readmodels.admin_users import get_users_list
from topledger.readmodels.weekly_ranking import list_snapshot_weeks, weekly_ranking

router = APIRouter(prefix="/admin", tags=["admin"])


# ── Helpers ──────────────────────────────────────────────────────────────────

def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user


# ── Users ────────────────────────────────────────────────────────────────────

@router.get("/users")
def admin_users(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return get_users_list(db)


@router.get("/users/{user_id}/audit")
def admin_user_audit(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Latest actions performed by the user"""
    _get_user_or_404(db, user_id)
    return [
        {
            "id": a.id,
            "action": a.action,
            "target_id": a.target_id,
            "details": a.details,
            "ip_address": a.ip_address,
            "created_at": a.created_at,
        }
        for a in AuditLogRepository(db).list_for_user(user_id)
    ]


@router.get("/users/{user_id}/weeks/{week_start}")
def admin_user_week(
    user_id: int,
    week_start: date,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """One user's frozen week in full detail"""
    return snapshot_payload(get_user_week_snapshot(db, user_id, week_start))


# ── Earnings ─────────────────────────────────────────────────────────────────

@router.get("/earnings/{user_id}", response_model=list[EarningResponse])
def admin_user_earnings(user_id: int, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    _get_user_or_404(db, user_id)
    return [EarningResponse(**earning_payload(e)) for e in list_earnings(db, user_id)]


@router.put("/earnings/{earning_id}", response_model=SuccessResponse)
def admin_update_earning(
    request: Request,
    earning_id: int,
    req: UpdateEarningRequest,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    UpdateEarningUseCase(db).execute(
        earning_id=earning_id,
        user_id=admin.id,
        fields=req.model_dump(exclude_unset=True),
        is_admin=True,
        ip_address=client_ip(request),
    )
    return SuccessResponse()


@router.delete("/earnings/{earning_id}", response_model=SuccessResponse)
def admin_delete_earning(
    request: Request,
    earning_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    DeleteEarningUseCase(db).execute(
        earning_id=earning_id,
        user_id=admin.id,
        is_admin=True,
        ip_address=client_ip(request),
    )
    return SuccessResponse()


# ── Tops ─────────────────────────────────────────────────────────────────────

@router.post("/top/{user_id}/stop")
def admin_stop_top(
    request: Request,
    user_id: int,
    admin: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    """Cancel a user's running top (snapshot is still written)"""
    _get_user_or_404(db, user_id)
    result = StopTopUseCase(db).execute(
        user_id=user_id,
        status=TOP_STATUS_CANCELLED,
        actor_user_id=admin.id,
        ip_address=client_ip(request),
    )
    data = {"success": result.stopped, "message": result.message}
    if result.top is not None:
        data["top"] = top_payload(result.top)
    return data


# ── Weeks / ranking ──────────────────────────────────────────────────────────

@router.get("/weeks")
def admin_weeks(admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    return list_snapshot_weeks(db)


@router.get("/ranking")
def admin_ranking(week_start: date, admin: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Users of one week ranked by days worked, then minutes"""
    ranking = weekly_ranking(db, week_start)
    return {
        "week_start": ranking["week_start"],
        "week_end": ranking["week_end"],
        "totals": {k: money(v) for k, v in ranking["totals"].items()},
        "rankings": [
            {
                **row,
                "days_worked_label": f"{row['days_worked']}/7",
                "total_gbp": money(row["total_gbp"]),
                "total_eur": money(row["total_eur"]),
                "total_usd": money(row["total_usd"]),
            }
            for row in ranking["rankings"]
        ],
    }
