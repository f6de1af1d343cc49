"""Site settings and feature flags, stored server-side."""

import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy.orm import Session

from qrstudio.core.exceptions import ValidationError
from qrstudio.db.session import store_errors
from qrstudio.models.system_setting import FeatureFlag, SystemSetting

logger = logging.getLogger("qrstudio.settings")

DEFAULT_SETTINGS: Dict[str, str] = {
    "site_name": "QR Studio",
    "site_description": "Create, customize and track QR codes",
    "primary_color": "#3b82f6",
    "secondary_color": "#10b981",
    "default_language": "en",
}

DEFAULT_FEATURES: Dict[str, bool] = {
    "email_notifications": True,
    "team_collaboration": True,
    "landing_page_builder": True,
    "api_access": True,
    "bulk_generation": True,
    "analytics": True,
}


class SettingsService:
    """Key/value site settings and boolean feature flags.

    Stored rows override the defaults; a key never written reads as its
    default.
    """

    @staticmethod
    def get_settings(db: Session) -> Dict[str, str]:
        with store_errors(db, "Load settings"):
            stored = {row.key: row.value for row in db.query(SystemSetting).all()}
        return {key: stored.get(key, default) for key, default in DEFAULT_SETTINGS.items()}

    @staticmethod
    def update_settings(db: Session, changes: Dict[str, str], updated_by: Optional[int] = None) -> Dict[str, str]:
        unknown = set(changes) - set(DEFAULT_SETTINGS)
        if unknown:
            raise ValidationError(f"Unknown settings: {', '.join(sorted(unknown))}")

        with store_errors(db, "Update settings"):
            existing = {
                row.key: row
                for row in db.query(SystemSetting).filter(SystemSetting.key.in_(list(changes))).all()
            }
            now = datetime.now(timezone.utc)
            for key, value in changes.items():
                row = existing.get(key)
                if row is None:
                    db.add(SystemSetting(key=key, value=value, updated_by=updated_by))
                else:
                    row.value = value
                    row.updated_by = updated_by
                    row.updated_at = now
            db.commit()

        logger.info("Settings %s updated by %s", sorted(changes), updated_by)
        return SettingsService.get_settings(db)

    @staticmethod
    def get_features(db: Session) -> Dict[str, bool]:
        with store_errors(db, "Load feature flags"):
            stored = {row.name: row.is_enabled for row in db.query(FeatureFlag).all()}
        return {name: stored.get(name, default) for name, default in DEFAULT_FEATURES.items()}

    @staticmethod
    def is_feature_enabled(db: Session, name: str) -> bool:
        SettingsService._check_feature(name)
        with store_errors(db, "Load feature flag"):
            row = db.query(FeatureFlag).filter(FeatureFlag.name == name).first()
        return DEFAULT_FEATURES[name] if row is None else row.is_enabled

    @staticmethod
    def set_feature(db: Session, name: str, enabled: bool, updated_by: Optional[int] = None) -> bool:
        SettingsService._check_feature(name)
        with store_errors(db, "Update feature flag"):
            row = db.query(FeatureFlag).filter(FeatureFlag.name == name).first()
            if row is None:
                db.add(FeatureFlag(name=name, is_enabled=enabled, updated_by=updated_by))
            else:
                row.is_enabled = enabled
                row.updated_by = updated_by
                row.updated_at = datetime.now(timezone.utc)
            db.commit()
        logger.info("Feature %s %s by %s", name, "enabled" if enabled else "disabled", updated_by)
        return enabled

    @staticmethod
    def toggle_feature(db: Session, name: str, updated_by: Optional[int] = None) -> bool:
        return SettingsService.set_feature(
            db, name, not SettingsService.is_feature_enabled(db, name), updated_by
        )

    @staticmethod
    def seed_defaults(db: Session) -> int:
        """Insert a row for every feature flag not yet stored. Returns how many were added."""
        with store_errors(db, "Seed feature flags"):
            stored = {name for (name,) in db.query(FeatureFlag.name).all()}
            missing = [name for name in DEFAULT_FEATURES if name not in stored]
            for name in missing:
                db.add(FeatureFlag(name=name, is_enabled=DEFAULT_FEATURES[name]))
            db.commit()
        return len(missing)

    @staticmethod
    def _check_feature(name: str) -> None:
        if name not in DEFAULT_FEATURES:
            raise ValidationError(f"Unknown feature flag '{name}'")


settings_service = SettingsService()
