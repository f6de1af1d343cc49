"""Seed default feature flags into the database."""

from sqlalchemy.orm import Session

from qrstudio.services.settings_service import settings_service


def seed_feature_flags(db: Session) -> None:
    """Insert default feature flags if they don't already exist."""
    added = settings_service.seed_defaults(db)
    if added:
        print(f"✅ Seeded {added} feature flag(s)")
    else:
        print("ℹ️  Feature flags already present, skipping.")
