"""Seed sample QR codes for demo purposes."""

from sqlalchemy.orm import Session

from qrstudio.core.config import settings
from qrstudio.models.profile import Profile
from qrstudio.models.qr_code import QRCode
from qrstudio.services.qr_service import qr_service

SAMPLE_QR_CODES = [
    {"name": "Company Website", "type": "url", "content": "https://example.com"},
    {
        "name": "Office WiFi",
        "type": "wifi",
        "content": {"ssid": "QRStudio-Guest", "password": "welcome123", "security": "WPA", "hidden": False},
    },
    {
        "name": "Business Card",
        "type": "vcard",
        "content": {
            "name": "Jane Doe",
            "organization": "QR Studio",
            "title": "Product Manager",
            "phone": "+1 555 0100",
            "email": "jane@example.com",
            "website": "https://example.com",
        },
    },
    {"name": "Support Line", "type": "phone", "content": "+15550100"},
]


def seed_sample_data(db: Session) -> None:
    """Give the super admin a handful of sample QR codes."""
    owner = db.query(Profile).filter(Profile.email == settings.SUPER_ADMIN_EMAIL.lower()).first()
    if not owner:
        print("⚠️  Super admin not found. Run seed_super_admin first.")
        return

    existing = {
        name for (name,) in db.query(QRCode.name).filter(QRCode.owner_id == owner.id).all()
    }
    added = 0
    for sample in SAMPLE_QR_CODES:
        if sample["name"] in existing:
            continue
        qr_service.create(db, owner, dict(sample))
        added += 1
    print(f"✅ Seeded {added} sample QR code(s)")
