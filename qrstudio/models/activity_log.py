"""User activity log model — append-only."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON, func
from qrstudio.db.base import Base


class ActivityLog(Base):
    """Audit trail for user-directory mutations.

    This table is APPEND-ONLY: no UPDATE or DELETE operations should ever
    be performed on it (enforced at application level). Bulk actions that
    touch several users are logged with a NULL user_id.
    """
    __tablename__ = "user_activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("profiles.id"), nullable=True, index=True)
    action = Column(String(100), nullable=False, index=True)  # e.g. "role_updated"
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False, index=True)
