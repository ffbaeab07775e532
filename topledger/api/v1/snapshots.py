"""
Week snapshot API endpoints (read-only)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from topledger.api.deps import get_current_user, get_db
from topledger.api.serializers import snapshot_payload
from topledger.application.snapshots import get_snapshot, list_snapshots
from topledger.infrastructure.db.models import User


router = APIRouter(prefix="/snapshots", tags=["snapshots"])


@router.get("")
def get_snapshots(user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Own frozen weeks, most recent first"""
    return [snapshot_payload(s) for s in list_snapshots(db, user.id)]


@router.get("/{snapshot_id}")
def get_one_snapshot(snapshot_id: int, user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return snapshot_payload(get_snapshot(db, snapshot_id, user.id, is_admin=user.is_admin))
