"""
Top API endpoints (start / stop / current / history / report)
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from topledger.api.deps import client_ip, get_current_user, get_db
from topledger.api.serializers import snapshot_summary, summary_payload, top_payload
from topledger.application.tops import (
    StartTopUseCase,
    StopTopUseCase,
    get_current_top,
    get_top,
    get_top_report,
    list_top_history,
)
from topledger.domain.top_period import utcnow
from topledger.infrastructure.db.models import User
from topledger.readmodels.earnings_summary import EarningsSummaryReadService


router = APIRouter(prefix="/top", tags=["tops"])


@router.post("/start", status_code=201)
def start_top(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Start a 7-day top; 409 if one is already running"""
    top = StartTopUseCase(db).execute(user_id=user.id, ip_address=client_ip(request))
    return top_payload(top)


@router.post("/stop")
def stop_top(request: Request, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Stop the running top early and freeze its week"""
    result = StopTopUseCase(db).execute(user_id=user.id, ip_address=client_ip(request))
    data = {"success": result.stopped, "message": result.message}
    if result.snapshot is not None:
        data["snapshot_id"] = result.snapshot.id
    return data


@router.get("/current")
def current_top(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Running top with day number, time left and live totals, or null"""
    top = get_current_top(db, user.id)
    if top is None:
        return None

    now = utcnow()
    summary = EarningsSummaryReadService(db).summary_for_top(top)
    return {
        **top_payload(top, now=now),
        "summary": summary_payload(summary.to_dict()),
    }


@router.get("/history")
def top_history(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return [top_payload(t) for t in list_top_history(db, user.id)]


@router.get("/{top_id}/report")
def top_report(top_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Frozen snapshot for a closed top, live aggregate for a running one"""
    top = get_top(db, top_id, user.id, is_admin=user.is_admin)
    source, snapshot, summary = get_top_report(db, top)
    data = snapshot_summary(snapshot) if snapshot is not None else summary.to_dict()
    return {
        "top": top_payload(top),
        "source": source,
        "snapshot_id": snapshot.id if snapshot is not None else None,
        "summary": summary_payload(data),
    }
