"""
Audit Log Repository - append-only traceability trail

Writes are best-effort: a failing audit insert is rolled back to its own
SAVEPOINT and logged, the surrounding business transaction carries on.
"""
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from topledger.infrastructure.db.models import AuditLog

logger = logging.getLogger(__name__)

SYSTEM_JOB_ADDRESS = "SYSTEM_JOB"


class AuditLogRepository:
    """
    Repository for the audit_logs table
    """

    def __init__(self, db: Session):
        self.db = db

    def append(
        self,
        action: str,
        user_id: Optional[int] = None,
        target_id: Optional[Any] = None,
        details: Optional[Dict[str, Any]] = None,
        ip_address: Optional[str] = None,
    ) -> Optional[int]:
        """
        Record an action. Never raises.

        Args:
            action: Action name (e.g. "EARNING_CREATED")
            user_id: Acting user (None for system jobs)
            target_id: Affected record id
            details: Free-form JSON details
            ip_address: Source address, SYSTEM_JOB for the scheduler

        Returns:
            audit log id, or None if the write failed

        Example:
            >>> AuditLogRepository(db).append(
            ...     "TOP_STARTED", user_id=1, target_id=42,
            ...     details={"started_at": "2026-03-02T09:00:00+00:00"},
            ... )
        """
        entry = AuditLog(
            action=action,
            user_id=user_id,
            target_id=str(target_id) if target_id is not None else None,
            details=details or {},
            ip_address=ip_address,
            created_at=datetime.now(timezone.utc),
        )
        try:
            with self.db.begin_nested():
                self.db.add(entry)
                self.db.flush()
        except SQLAlchemyError:
            logger.warning("Audit log write failed for action=%s user_id=%s", action, user_id, exc_info=True)
            return None
        return entry.id

    def list_for_user(self, user_id: int, limit: int = 50) -> List[AuditLog]:
        """Latest audit records where the user was the actor."""
        return (
            self.db.query(AuditLog)
            .filter(AuditLog.user_id == user_id)
            .order_by(AuditLog.id.desc())
            .limit(limit)
            .all()
        )
