"""User directory service — listing, moderation, soft delete, bulk update, stats."""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from qrstudio.core import rbac
from qrstudio.core.config import settings
from qrstudio.core.exceptions import (
    AuthorizationError,
    InvalidRoleError,
    ProtectedRoleError,
    ResourceNotFoundError,
    ValidationError,
)
from qrstudio.db.session import store_errors
from qrstudio.models.profile import Profile
from qrstudio.models.qr_code import QRCode
from qrstudio.services.audit_service import AuditService, audit_service
from qrstudio.services.cache_service import CacheService, cache_service

logger = logging.getLogger("qrstudio.users")

PLANS = ("free", "pro", "enterprise")
STATUSES = ("active", "inactive")
BULK_UPDATABLE_FIELDS = frozenset({"role", "plan", "is_active"})
DELETED_NAME = "Deleted User"
STATS_CACHE_KEY = "users:stats"


def page_range(page: int, limit: int) -> Tuple[int, int]:
    """Inclusive (first, last) row offsets for a 1-based page."""
    if page < 1 or limit < 1:
        raise ValidationError("page and limit must be positive")
    return (page - 1) * limit, page * limit - 1


def deleted_email(user_id: int) -> str:
    """Placeholder address written over a soft-deleted user's email."""
    return f"deleted_{user_id}@example.com"


class UserService:
    """CRUD and moderation over user profiles.

    Collaborators are injected so the service can be exercised against any
    session and with caching disabled.
    """

    def __init__(self, audit: AuditService = audit_service, cache: CacheService = cache_service):
        self.audit = audit
        self.cache = cache

    # --- Queries ---

    def get_all_users(
        self,
        db: Session,
        page: int = 1,
        limit: int = 20,
        filters: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """List users matching the filters, one page at a time.

        Filters (all optional, empty values ignored):
            role: exact role key
            plan: exact plan
            status: "active" or "inactive"
            search: case-insensitive substring of name or email
        """
        filters = filters or {}
        query = db.query(Profile)

        if filters.get("role"):
            query = query.filter(Profile.role == filters["role"])
        if filters.get("plan"):
            query = query.filter(Profile.plan == filters["plan"])
        status = filters.get("status")
        if status:
            if status not in STATUSES:
                raise ValidationError(f"Unknown status filter '{status}'")
            query = query.filter(Profile.is_active.is_(status == "active"))
        if filters.get("search"):
            pattern = f"%{filters['search']}%"
            query = query.filter(or_(Profile.name.ilike(pattern), Profile.email.ilike(pattern)))

        first, last = page_range(page, limit)
        with store_errors(db, "List users"):
            total = query.count()
            users = (
                query.order_by(Profile.created_at.desc(), Profile.id.desc())
                .offset(first)
                .limit(last - first + 1)
                .all()
            )
            counts = self._qr_counts(db, [u.id for u in users])

        for user in users:
            user.qr_count = counts.get(user.id, 0)

        return {"users": users, "total": total, "page": page, "limit": limit}

    def get_user_by_id(self, db: Session, user_id: int) -> Profile:
        with store_errors(db, "Fetch user"):
            user = db.query(Profile).filter(Profile.id == user_id).first()
            if user is not None:
                user.qr_count = self._qr_counts(db, [user.id]).get(user.id, 0)
        if user is None:
            raise ResourceNotFoundError(f"User {user_id} not found")
        return user

    def get_user_stats(self, db: Session) -> Dict[str, Any]:
        """Totals, per-role and per-plan counts, and recent signups."""
        cached = self.cache.get_json(STATS_CACHE_KEY)
        if cached:
            return cached

        cutoff = datetime.now(timezone.utc) - timedelta(days=settings.RECENT_SIGNUP_DAYS)
        with store_errors(db, "Compute user stats"):
            total = db.query(func.count(Profile.id)).scalar() or 0
            active = db.query(func.count(Profile.id)).filter(Profile.is_active.is_(True)).scalar() or 0
            by_role = dict(db.query(Profile.role, func.count(Profile.id)).group_by(Profile.role).all())
            by_plan = dict(db.query(Profile.plan, func.count(Profile.id)).group_by(Profile.plan).all())
            recent = db.query(func.count(Profile.id)).filter(Profile.created_at > cutoff).scalar() or 0

        stats = {
            "total": total,
            "active": active,
            "inactive": total - active,
            "by_role": by_role,
            "by_plan": by_plan,
            "recent_signups": recent,
        }
        self.cache.set_json(STATS_CACHE_KEY, stats, ttl_seconds=settings.STATS_CACHE_TTL)
        return stats

    def get_user_activity(self, db: Session, user_id: int, limit: Optional[int] = None):
        limit = settings.USER_ACTIVITY_LIMIT if limit is None else limit
        if limit < 1:
            raise ValidationError("limit must be positive")
        with store_errors(db, "Fetch user activity"):
            return self.audit.for_user(db, user_id, limit)

    # --- Mutations ---

    def update_user_role(self, db: Session, user_id: int, new_role: str, updated_by: int) -> Profile:
        """Change a user's role and log the transition.

        Raises:
            InvalidRoleError: new_role is not in the role table (nothing is read or written).
            AuthorizationError: the actor cannot manage the target or grant the role.
        """
        if not rbac.is_valid_role(new_role):
            raise InvalidRoleError(f"Invalid role specified: '{new_role}'")

        target = self.get_user_by_id(db, user_id)
        manager = self._load_manager(db, updated_by)
        if not rbac.can_manage_user(manager, target):
            raise AuthorizationError("Insufficient permissions to manage this user")
        if not rbac.can_assign_role(manager.role, new_role):
            raise AuthorizationError(f"Cannot assign role '{new_role}' above your own level")

        old_role = target.role
        with store_errors(db, "Update user role"):
            target.role = new_role
            target.updated_at = datetime.now(timezone.utc)
            self.audit.log(
                db,
                "role_updated",
                user_id=target.id,
                details={"old_role": old_role, "new_role": new_role, "updated_by": updated_by},
            )
            db.refresh(target)

        self._invalidate_stats()
        logger.info("User %s role changed %s -> %s by %s", target.id, old_role, new_role, updated_by)
        return target

    def update_user_status(self, db: Session, user_id: int, is_active: bool, updated_by: int) -> Profile:
        target = self.get_user_by_id(db, user_id)
        manager = self._load_manager(db, updated_by)
        if not rbac.can_manage_user(manager, target):
            raise AuthorizationError("Insufficient permissions to manage this user")

        action = "user_activated" if is_active else "user_deactivated"
        with store_errors(db, "Update user status"):
            target.is_active = is_active
            target.updated_at = datetime.now(timezone.utc)
            self.audit.log(db, action, user_id=target.id, details={"updated_by": updated_by})
            db.refresh(target)

        self._invalidate_stats()
        logger.info("User %s %s by %s", target.id, action.split("_")[1], updated_by)
        return target

    def delete_user(self, db: Session, user_id: int, deleted_by: int) -> Profile:
        """Soft delete: deactivate and anonymize, keeping the id and role.

        Raises:
            ProtectedRoleError: the target holds a protected role; nothing changes.
        """
        target = self.get_user_by_id(db, user_id)
        if target.role in rbac.PROTECTED_ROLES:
            raise ProtectedRoleError("Cannot delete super admin user")

        manager = self._load_manager(db, deleted_by)
        if not rbac.can_manage_user(manager, target):
            raise AuthorizationError("Insufficient permissions to delete this user")

        with store_errors(db, "Delete user"):
            target.is_active = False
            target.email = deleted_email(target.id)
            target.name = DELETED_NAME
            target.avatar_url = None
            target.updated_at = datetime.now(timezone.utc)
            self.audit.log(db, "user_deleted", user_id=target.id, details={"deleted_by": deleted_by})
            db.refresh(target)

        self._invalidate_stats()
        logger.info("User %s soft-deleted by %s", target.id, deleted_by)
        return target

    def bulk_update_users(
        self,
        db: Session,
        user_ids: List[int],
        updates: Dict[str, Any],
        updated_by: int,
    ) -> List[Profile]:
        """Apply one partial update to many users in a single statement.

        Authorization is checked for every target before anything is written.
        The UPDATE runs in one transaction: a store failure rolls back every
        row and surfaces as RemoteStoreError. Ids that do not exist are
        simply absent from the returned rows.
        """
        if not user_ids:
            raise ValidationError("No users selected")
        if not updates:
            raise ValidationError("No updates provided")
        unknown = set(updates) - BULK_UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be bulk updated: {', '.join(sorted(unknown))}")
        if "role" in updates and not (isinstance(updates["role"], str) and rbac.is_valid_role(updates["role"])):
            raise InvalidRoleError(f"Invalid role specified: '{updates['role']}'")
        if "plan" in updates and not (isinstance(updates["plan"], str) and updates["plan"] in PLANS):
            raise ValidationError(f"Unknown plan '{updates['plan']}'")
        if "is_active" in updates and not isinstance(updates["is_active"], bool):
            raise ValidationError("is_active must be a boolean")

        ids = list(dict.fromkeys(user_ids))
        manager = self._load_manager(db, updated_by)
        if "role" in updates and not rbac.can_assign_role(manager.role, updates["role"]):
            raise AuthorizationError(f"Cannot assign role '{updates['role']}' above your own level")

        with store_errors(db, "Load bulk update targets"):
            targets = db.query(Profile).filter(Profile.id.in_(ids)).all()
        for target in targets:
            if not rbac.can_manage_user(manager, target):
                raise AuthorizationError(f"Insufficient permissions to manage user {target.id}")

        with store_errors(db, "Bulk update users"):
            db.query(Profile).filter(Profile.id.in_(ids)).update(
                {**updates, "updated_at": datetime.now(timezone.utc)},
                synchronize_session="fetch",
            )
            self.audit.log(
                db,
                "bulk_user_update",
                user_id=None,
                details={"user_ids": ids, "updates": updates, "updated_by": updated_by},
            )
            rows = db.query(Profile).filter(Profile.id.in_(ids)).order_by(Profile.id).all()

        self._invalidate_stats()
        logger.info("Bulk update of %d users by %s: %s", len(rows), updated_by, updates)
        return rows

    # --- Internal helpers ---

    def _load_manager(self, db: Session, manager_id: int) -> Profile:
        with store_errors(db, "Fetch acting user"):
            manager = db.query(Profile).filter(Profile.id == manager_id).first()
        if manager is None or not manager.is_active:
            raise AuthorizationError("Acting user not found or deactivated")
        return manager

    @staticmethod
    def _qr_counts(db: Session, user_ids: List[int]) -> Dict[int, int]:
        if not user_ids:
            return {}
        rows = (
            db.query(QRCode.owner_id, func.count(QRCode.id))
            .filter(QRCode.owner_id.in_(user_ids))
            .group_by(QRCode.owner_id)
            .all()
        )
        return dict(rows)

    def _invalidate_stats(self) -> None:
        self.cache.delete(STATS_CACHE_KEY)


user_service = UserService()
