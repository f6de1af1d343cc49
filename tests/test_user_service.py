"""Tests for the user directory service."""
from datetime import datetime, timedelta, timezone

import pytest

from qrstudio.core.exceptions import (
    AuthorizationError,
    InvalidRoleError,
    ProtectedRoleError,
    RemoteStoreError,
    ResourceNotFoundError,
    ValidationError,
)
from qrstudio.models.activity_log import ActivityLog
from qrstudio.models.profile import Profile
from qrstudio.models.qr_code import QRCode
from qrstudio.services.user_service import page_range, user_service


def _logs(db, action):
    return db.query(ActivityLog).filter(ActivityLog.action == action).all()


def test_page_range():
    assert page_range(1, 20) == (0, 19)
    assert page_range(2, 20) == (20, 39)
    assert page_range(3, 10) == (20, 29)
    with pytest.raises(ValidationError):
        page_range(0, 10)


def test_list_filters_and_pagination(db, make_user):
    make_user(role="admin", name="Alice Admin", email="alice@corp.com")
    make_user(role="editor", name="Bob", email="bob@corp.com", plan="pro")
    make_user(role="viewer", name="Carol", email="carol@other.org", is_active=False)

    result = user_service.get_all_users(db, filters={"role": "editor"})
    assert [u.email for u in result["users"]] == ["bob@corp.com"]

    result = user_service.get_all_users(db, filters={"status": "inactive"})
    assert [u.name for u in result["users"]] == ["Carol"]

    result = user_service.get_all_users(db, filters={"search": "CORP", "plan": ""})
    assert result["total"] == 2

    page = user_service.get_all_users(db, page=2, limit=2)
    assert page["total"] == 3
    assert len(page["users"]) == 1
    assert (page["page"], page["limit"]) == (2, 2)


def test_list_includes_qr_count(db, make_user):
    owner = make_user()
    for i in range(3):
        db.add(QRCode(owner_id=owner.id, name=f"qr{i}", type="url", content="https://a.io"))
    db.commit()

    result = user_service.get_all_users(db)
    assert result["users"][0].qr_count == 3


def test_unknown_status_filter_rejected(db):
    with pytest.raises(ValidationError):
        user_service.get_all_users(db, filters={"status": "banned"})


def test_get_user_by_id_missing(db):
    with pytest.raises(ResourceNotFoundError):
        user_service.get_user_by_id(db, 999)


def test_update_role_logs_real_old_role(db, make_user):
    admin = make_user(role="admin")
    target = make_user(role="viewer")

    updated = user_service.update_user_role(db, target.id, "editor", admin.id)

    assert updated.role == "editor"
    [entry] = _logs(db, "role_updated")
    assert entry.user_id == target.id
    assert entry.details == {"old_role": "viewer", "new_role": "editor", "updated_by": admin.id}


def test_update_role_invalid_role_writes_nothing(db, make_user):
    admin = make_user(role="admin")
    target = make_user(role="viewer")

    with pytest.raises(InvalidRoleError):
        user_service.update_user_role(db, target.id, "user", admin.id)

    db.refresh(target)
    assert target.role == "viewer"
    assert db.query(ActivityLog).count() == 0


def test_update_role_requires_outranking(db, make_user):
    editor = make_user(role="editor")
    admin = make_user(role="admin")
    with pytest.raises(AuthorizationError):
        user_service.update_user_role(db, admin.id, "viewer", editor.id)


def test_cannot_grant_role_above_own(db, make_user):
    admin = make_user(role="admin")
    target = make_user(role="editor")
    with pytest.raises(AuthorizationError):
        user_service.update_user_role(db, target.id, "superAdmin", admin.id)


def test_deactivated_manager_is_rejected(db, make_user):
    admin = make_user(role="admin", is_active=False)
    target = make_user(role="viewer")
    with pytest.raises(AuthorizationError):
        user_service.update_user_status(db, target.id, False, admin.id)


def test_update_status_logs_action(db, make_user):
    admin = make_user(role="admin")
    target = make_user(role="editor")

    user_service.update_user_status(db, target.id, False, admin.id)
    user_service.update_user_status(db, target.id, True, admin.id)

    assert len(_logs(db, "user_deactivated")) == 1
    assert len(_logs(db, "user_activated")) == 1
    db.refresh(target)
    assert target.is_active is True


def test_soft_delete_anonymizes_and_keeps_role(db, make_user):
    admin = make_user(role="admin")
    target = make_user(role="editor", avatar_url="https://img/x.png")

    user_service.delete_user(db, target.id, admin.id)

    row = db.query(Profile).filter(Profile.id == target.id).one()
    assert row.is_active is False
    assert row.email == f"deleted_{target.id}@example.com"
    assert row.name == "Deleted User"
    assert row.avatar_url is None
    assert row.role == "editor"
    [entry] = _logs(db, "user_deleted")
    assert entry.details == {"deleted_by": admin.id}


def test_super_admin_cannot_be_deleted(db, make_user):
    root = make_user(role="superAdmin", email="root@example.com")
    other_root = make_user(role="superAdmin")

    with pytest.raises(ProtectedRoleError):
        user_service.delete_user(db, root.id, other_root.id)

    db.refresh(root)
    assert root.is_active is True
    assert root.email == "root@example.com"
    assert db.query(ActivityLog).count() == 0


def test_bulk_update_single_log_entry(db, make_user):
    admin = make_user(role="admin")
    a = make_user(role="viewer")
    b = make_user(role="guest")

    rows = user_service.bulk_update_users(db, [b.id, a.id, 12345], {"plan": "pro"}, admin.id)

    assert [r.id for r in rows] == sorted([a.id, b.id])
    assert all(r.plan == "pro" for r in rows)
    [entry] = _logs(db, "bulk_user_update")
    assert entry.user_id is None
    assert entry.details["updates"] == {"plan": "pro"}
    assert entry.details["updated_by"] == admin.id


def test_bulk_update_checks_every_target_first(db, make_user):
    admin = make_user(role="admin")
    viewer = make_user(role="viewer")
    peer = make_user(role="admin")

    with pytest.raises(AuthorizationError):
        user_service.bulk_update_users(db, [viewer.id, peer.id], {"is_active": False}, admin.id)

    db.refresh(viewer)
    assert viewer.is_active is True


def test_bulk_update_rejects_unknown_fields_and_roles(db, make_user):
    admin = make_user(role="admin")
    target = make_user(role="viewer")
    with pytest.raises(ValidationError):
        user_service.bulk_update_users(db, [target.id], {"email": "x@y.z"}, admin.id)
    with pytest.raises(InvalidRoleError):
        user_service.bulk_update_users(db, [target.id], {"role": "owner"}, admin.id)


@pytest.mark.parametrize("updates,error", [
    ({"role": ["editor"]}, InvalidRoleError),
    ({"role": {"key": "editor"}}, InvalidRoleError),
    ({"plan": ["pro"]}, ValidationError),
    ({"plan": 3}, ValidationError),
])
def test_bulk_update_rejects_non_string_role_and_plan(db, make_user, updates, error):
    admin = make_user(role="admin")
    target = make_user(role="viewer")
    with pytest.raises(error):
        user_service.bulk_update_users(db, [target.id], updates, admin.id)
    db.refresh(target)
    assert target.role == "viewer" and target.plan == "free"


def test_bulk_update_store_failure_rolls_back(db, make_user, monkeypatch):
    admin = make_user(role="admin")
    target = make_user(role="viewer")

    from sqlalchemy.exc import OperationalError
    from sqlalchemy.orm import Query

    def _boom(self, *args, **kwargs):
        raise OperationalError("UPDATE profiles", {}, Exception("disk I/O error"))

    monkeypatch.setattr(Query, "update", _boom)
    with pytest.raises(RemoteStoreError):
        user_service.bulk_update_users(db, [target.id], {"plan": "enterprise"}, admin.id)
    monkeypatch.undo()

    db.refresh(target)
    assert target.plan == "free"
    assert db.query(ActivityLog).count() == 0


def test_user_stats(db, make_user):
    make_user(role="admin", plan="pro")
    make_user(role="editor")
    make_user(role="editor", is_active=False, created_at=datetime.now(timezone.utc).replace(tzinfo=None) - timedelta(days=30))

    stats = user_service.get_user_stats(db)

    assert stats["total"] == 3
    assert stats["active"] == 2
    assert stats["inactive"] == 1
    assert stats["by_role"] == {"admin": 1, "editor": 2}
    assert stats["by_plan"] == {"pro": 1, "free": 2}
    assert stats["recent_signups"] == 2


def test_activity_newest_first_and_capped(db, make_user):
    admin = make_user(role="admin")
    target = make_user(role="guest")
    user_service.update_user_role(db, target.id, "viewer", admin.id)
    user_service.update_user_role(db, target.id, "editor", admin.id)
    user_service.update_user_status(db, target.id, False, admin.id)

    entries = user_service.get_user_activity(db, target.id, limit=2)

    assert [e.action for e in entries] == ["user_deactivated", "role_updated"]
    assert entries[1].details["new_role"] == "editor"
