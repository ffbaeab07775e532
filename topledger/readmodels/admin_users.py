"""
Admin users readmodel - user listing for /admin/users.

Password hashes never leave this module.
"""
from sqlalchemy import func
from sqlalchemy.orm import Session

from topledger.domain.top_period import TOP_STATUS_ACTIVE
from topledger.infrastructure.db.models import Earning, TopPeriod, User


def get_users_list(db: Session) -> list[dict]:
    """All users, newest first, with entry count and active-top flag."""
    users = db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()
    if not users:
        return []

    user_ids = [u.id for u in users]

    entry_counts = dict(
        db.query(Earning.user_id, func.count(Earning.id))
        .filter(Earning.user_id.in_(user_ids))
        .group_by(Earning.user_id)
        .all()
    )
    active_tops = {
        user_id for (user_id,) in
        db.query(TopPeriod.user_id)
        .filter(TopPeriod.user_id.in_(user_ids), TopPeriod.status == TOP_STATUS_ACTIVE)
        .all()
    }

    return [
        {
            "id": u.id,
            "email": u.email,
            "nickname": u.nickname,
            "name": u.name,
            "role": u.role,
            "created_at": u.created_at,
            "last_signed_in_at": u.last_signed_in_at,
            "earnings_count": entry_counts.get(u.id, 0),
            "has_active_top": u.id in active_tops,
        }
        for u in users
    ]
