"""Seed the super-admin user from env vars."""

from sqlalchemy.orm import Session

from qrstudio.core.config import settings
from qrstudio.services.auth_service import auth_service


def seed_super_admin(db: Session) -> None:
    """Create the super-admin user, or promote the existing account."""
    user, created = auth_service.seed_super_admin(db)
    if created:
        print(f"✅ Created super admin: {user.email}")
    else:
        print(f"ℹ️  Super admin '{settings.SUPER_ADMIN_EMAIL}' already exists, ensured role '{user.role}'.")
