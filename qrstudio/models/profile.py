"""User profile model."""

from sqlalchemy import Column, Integer, String, Boolean, DateTime, func
from sqlalchemy.orm import relationship
from qrstudio.db.base import Base


class Profile(Base):
    """Platform user with a single role key from the static role table."""
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    role = Column(String(20), nullable=False, default="editor", index=True)
    plan = Column(String(20), nullable=False, default="free", index=True)  # free, pro, enterprise
    avatar_url = Column(String(500), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    last_login_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    qr_codes = relationship("QRCode", back_populates="owner", lazy="dynamic")

    # Derived, not a column: filled in by the user service when listing.
    qr_count = 0
