"""Refresh token model."""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, func
from qrstudio.db.base import Base


class RefreshToken(Base):
    """Stored refresh token for JWT auth flow."""
    __tablename__ = "refresh_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False)
    token_hash = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime, nullable=False)
    revoked_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
