"""Tests for site settings, feature flags and the super-admin bootstrap."""
import pytest

from qrstudio.core.config import settings
from qrstudio.core.exceptions import ValidationError
from qrstudio.models.activity_log import ActivityLog
from qrstudio.models.profile import Profile
from qrstudio.services.auth_service import auth_service
from qrstudio.services.settings_service import DEFAULT_FEATURES, settings_service


def test_defaults_when_nothing_stored(db):
    values = settings_service.get_settings(db)
    assert values["site_name"] == "QR Studio"
    assert values["default_language"] == "en"
    assert settings_service.get_features(db) == DEFAULT_FEATURES


def test_update_merges_over_defaults(db, make_user):
    admin = make_user(role="admin")
    values = settings_service.update_settings(db, {"site_name": "Acme QR"}, admin.id)
    assert values["site_name"] == "Acme QR"
    assert values["primary_color"] == "#3b82f6"

    values = settings_service.update_settings(db, {"site_name": "Acme Codes"}, admin.id)
    assert settings_service.get_settings(db)["site_name"] == "Acme Codes"


def test_unknown_setting_rejected(db):
    with pytest.raises(ValidationError):
        settings_service.update_settings(db, {"theme": "dark"})


def test_feature_toggle_round_trip(db):
    assert settings_service.is_feature_enabled(db, "bulk_generation") is True
    assert settings_service.toggle_feature(db, "bulk_generation") is False
    assert settings_service.is_feature_enabled(db, "bulk_generation") is False
    settings_service.set_feature(db, "bulk_generation", True)
    assert settings_service.is_feature_enabled(db, "bulk_generation") is True


def test_unknown_feature_rejected(db):
    with pytest.raises(ValidationError):
        settings_service.is_feature_enabled(db, "teleportation")


def test_seed_defaults_is_idempotent(db):
    assert settings_service.seed_defaults(db) == len(DEFAULT_FEATURES)
    assert settings_service.seed_defaults(db) == 0


def test_seed_super_admin_creates_then_promotes(db, make_user):
    user, created = auth_service.seed_super_admin(db)
    assert created
    assert user.role == "superAdmin"
    assert user.email == settings.SUPER_ADMIN_EMAIL

    again, created = auth_service.seed_super_admin(db)
    assert not created and again.id == user.id
    assert db.query(ActivityLog).filter(ActivityLog.action == "super_admin_seeded").count() == 1


def test_seed_super_admin_promotes_existing_account(db, make_user):
    existing = make_user(role="editor", email=settings.SUPER_ADMIN_EMAIL)
    user, created = auth_service.seed_super_admin(db)
    assert not created
    assert user.id == existing.id
    assert db.query(Profile).filter(Profile.id == existing.id).one().role == "superAdmin"


def test_registration_never_grants_super_admin(db):
    user = auth_service.register(db, settings.SUPER_ADMIN_EMAIL, "password1", "Sneaky")
    assert user.role == "editor"
    assert user.plan == "free"
    assert user.avatar_url.startswith("https://ui-avatars.com/api/?name=Sneaky")
