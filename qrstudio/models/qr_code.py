"""QR code model."""

import enum

from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, JSON, func
from sqlalchemy.orm import relationship
from qrstudio.db.base import Base


class QRType(str, enum.Enum):
    url = "url"
    text = "text"
    email = "email"
    phone = "phone"
    sms = "sms"
    wifi = "wifi"
    vcard = "vcard"


class QRCode(Base):
    """A QR code owned by a profile.

    ``content`` is a string for most types and an object for wifi/vcard;
    the shape is validated per type in the service layer.
    """
    __tablename__ = "qr_codes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(Integer, ForeignKey("profiles.id"), nullable=False, index=True)
    name = Column(String(255), nullable=False, index=True)
    type = Column(String(20), nullable=False, default=QRType.url.value)
    content = Column(JSON, nullable=False)
    is_dynamic = Column(Boolean, default=True, nullable=False)  # content editable after creation
    is_active = Column(Boolean, default=True, nullable=False)
    password_hash = Column(String(255), nullable=True)
    expires_at = Column(DateTime, nullable=True)
    scan_limit = Column(Integer, nullable=True)
    design = Column(JSON, nullable=True)  # colors, dot/corner shapes
    scans = Column(Integer, default=0, nullable=False)
    unique_scans = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now(), nullable=False)
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now(), nullable=False)

    owner = relationship("Profile", back_populates="qr_codes")

    @property
    def has_password(self) -> bool:
        return bool(self.password_hash)
