"""Audit service — append-only activity trail for user-directory mutations."""

from typing import Optional, Any, Dict, List
from sqlalchemy.orm import Session

from qrstudio.core.config import settings
from qrstudio.models.activity_log import ActivityLog


class AuditService:
    """Records and reads user activity log entries."""

    @staticmethod
    def log(
        db: Session,
        action: str,
        user_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        commit: bool = True,
    ) -> ActivityLog:
        """Append a single activity log record.

        Args:
            action: e.g. "role_updated", "user_deleted", "bulk_user_update"
            user_id: the affected user, or None for actions spanning many users

        With ``commit=True`` (the default) the entry is committed together
        with whatever the caller has pending on the session, so a mutation
        and its log entry land in the same transaction.
        """
        entry = ActivityLog(
            user_id=user_id,
            action=action,
            details=details or {},
        )
        db.add(entry)
        if commit:
            db.commit()
        return entry

    @staticmethod
    def for_user(
        db: Session,
        user_id: int,
        limit: Optional[int] = None,
    ) -> List[ActivityLog]:
        """Most recent entries for a user, newest first."""
        limit = settings.USER_ACTIVITY_LIMIT if limit is None else limit
        return (
            db.query(ActivityLog)
            .filter(ActivityLog.user_id == user_id)
            .order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def query_logs(
        db: Session,
        action: Optional[str] = None,
        page: int = 1,
        page_size: int = 50,
    ) -> Dict[str, Any]:
        """Query all activity logs with an optional action filter and pagination."""
        query = db.query(ActivityLog)
        if action:
            query = query.filter(ActivityLog.action == action)

        total = query.count()
        logs = (
            query.order_by(ActivityLog.created_at.desc(), ActivityLog.id.desc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return {
            "logs": logs,
            "total": total,
            "page": page,
            "page_size": page_size,
        }


audit_service = AuditService()
