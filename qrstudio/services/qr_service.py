"""QR code store — CRUD, duplicate, ownership checks, scan resolution."""

import copy
import logging
from datetime import datetime, timezone
from typing import Optional, Dict, Any, List

from sqlalchemy.orm import Session

from qrstudio.core.exceptions import (
    AuthorizationError,
    ResourceNotFoundError,
    ValidationError,
)
from qrstudio.core.rbac import has_permission
from qrstudio.core.security import hash_password, verify_password
from qrstudio.db.session import store_errors
from qrstudio.models.profile import Profile
from qrstudio.models.qr_code import QRCode
from qrstudio.services.qr_formats import encode_payload, validate_content

logger = logging.getLogger("qrstudio.qr")

DEFAULT_DESIGN: Dict[str, Any] = {
    "width": 300,
    "height": 300,
    "margin": 10,
    "dotsOptions": {"color": "#000000", "type": "square"},
    "backgroundOptions": {"color": "#ffffff"},
    "cornersSquareOptions": {"color": "#000000", "type": "square"},
    "cornersDotOptions": {"color": "#000000", "type": "square"},
}

UPDATABLE_FIELDS = frozenset({
    "name", "content", "is_active", "password", "expires_at", "scan_limit", "design",
})

COPY_SUFFIX = " (Copy)"


def _naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize to naive UTC, the form DateTime columns store."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class QRService:
    """CRUD over QR codes, scoped to the acting user.

    Owners work on their own codes with their role's qr.* permissions;
    ``qr.manage_all`` reaches everyone's.
    """

    def create(self, db: Session, owner: Profile, data: Dict[str, Any]) -> QRCode:
        """Validate and store a new QR code owned by ``owner``.

        Raises:
            AuthorizationError: owner's role lacks qr.create.
            ValidationError: bad name, type/content mismatch, past expiry, bad scan limit.
        """
        if not has_permission(owner.role, "qr.create"):
            raise AuthorizationError(f"Role '{owner.role}' cannot create QR codes")

        name = (data.get("name") or "").strip()
        if not name:
            raise ValidationError("QR code name is required")
        qr_type = data.get("type") or "url"
        content = validate_content(qr_type, data.get("content"))
        expires_at = self._check_expiry(data.get("expires_at"))
        scan_limit = self._check_scan_limit(data.get("scan_limit"))
        password = data.get("password")

        qr = QRCode(
            owner_id=owner.id,
            name=name,
            type=qr_type,
            content=content,
            is_dynamic=data.get("is_dynamic", True),
            is_active=data.get("is_active", True),
            password_hash=hash_password(password) if password else None,
            expires_at=expires_at,
            scan_limit=scan_limit,
            design=copy.deepcopy(data.get("design") or DEFAULT_DESIGN),
            scans=0,
            unique_scans=0,
        )
        with store_errors(db, "Create QR code"):
            db.add(qr)
            db.commit()
            db.refresh(qr)

        logger.info("QR %s (%s) created for user %s", qr.id, qr.type, owner.id)
        return qr

    def list_for_owner(
        self,
        db: Session,
        actor: Profile,
        include_all: bool = False,
        qr_type: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[QRCode]:
        """The actor's QR codes, newest first; ``include_all`` needs qr.manage_all."""
        if include_all and not has_permission(actor.role, "qr.manage_all"):
            raise AuthorizationError("Listing all QR codes requires qr.manage_all")

        query = db.query(QRCode)
        if not include_all:
            query = query.filter(QRCode.owner_id == actor.id)
        if qr_type:
            query = query.filter(QRCode.type == qr_type)
        if search:
            query = query.filter(QRCode.name.ilike(f"%{search}%"))

        with store_errors(db, "List QR codes"):
            return query.order_by(QRCode.created_at.desc(), QRCode.id.desc()).all()

    def get(self, db: Session, qr_id: int, actor: Profile) -> QRCode:
        qr = self.get_by_id(db, qr_id)
        self._authorize(qr, actor, None)
        return qr

    def update(self, db: Session, qr_id: int, actor: Profile, changes: Dict[str, Any]) -> QRCode:
        """Patch a QR code. Content of a static (non-dynamic) code is frozen."""
        qr = self.get_by_id(db, qr_id)
        self._authorize(qr, actor, "qr.edit")

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")

        if "content" in changes:
            content = validate_content(qr.type, changes["content"])
            if content != qr.content:
                if not qr.is_dynamic:
                    raise ValidationError("Content of a static QR code cannot be changed")
                qr.content = content
        if "name" in changes:
            name = (changes["name"] or "").strip()
            if not name:
                raise ValidationError("QR code name is required")
            qr.name = name
        if "is_active" in changes:
            qr.is_active = bool(changes["is_active"])
        if "password" in changes:
            qr.password_hash = hash_password(changes["password"]) if changes["password"] else None
        if "expires_at" in changes:
            qr.expires_at = self._check_expiry(changes["expires_at"])
        if "scan_limit" in changes:
            qr.scan_limit = self._check_scan_limit(changes["scan_limit"])
        if "design" in changes:
            qr.design = changes["design"] or copy.deepcopy(DEFAULT_DESIGN)

        with store_errors(db, "Update QR code"):
            qr.updated_at = _utcnow()
            db.commit()
            db.refresh(qr)
        return qr

    def delete(self, db: Session, qr_id: int, actor: Profile) -> None:
        qr = self.get_by_id(db, qr_id)
        self._authorize(qr, actor, "qr.delete")
        with store_errors(db, "Delete QR code"):
            db.delete(qr)
            db.commit()
        logger.info("QR %s deleted by user %s", qr_id, actor.id)

    def duplicate(self, db: Session, qr_id: int, actor: Profile) -> QRCode:
        """Clone a QR code: new id, " (Copy)" name suffix, zeroed counters, fresh timestamps."""
        original = self.get_by_id(db, qr_id)
        self._authorize(original, actor, "qr.create")

        clone = QRCode(
            owner_id=original.owner_id,
            name=f"{original.name}{COPY_SUFFIX}",
            type=original.type,
            content=copy.deepcopy(original.content),
            is_dynamic=original.is_dynamic,
            is_active=original.is_active,
            password_hash=original.password_hash,
            expires_at=original.expires_at,
            scan_limit=original.scan_limit,
            design=copy.deepcopy(original.design),
            scans=0,
            unique_scans=0,
        )
        with store_errors(db, "Duplicate QR code"):
            db.add(clone)
            db.commit()
            db.refresh(clone)
        return clone

    def payload(self, qr: QRCode) -> str:
        return encode_payload(qr.type, qr.content)

    def resolve_scan(
        self,
        db: Session,
        qr_id: int,
        password: Optional[str] = None,
        first_visit: bool = True,
    ) -> QRCode:
        """Public scan of a QR: enforce active/expiry/limit/password, then count it."""
        qr = self.get_by_id(db, qr_id)
        if not qr.is_active:
            raise ResourceNotFoundError("QR code is inactive")
        if qr.expires_at is not None and qr.expires_at <= _utcnow():
            raise ResourceNotFoundError("QR code has expired")
        if qr.scan_limit is not None and qr.scans >= qr.scan_limit:
            raise ResourceNotFoundError("QR code scan limit reached")
        if qr.password_hash and not (password and verify_password(password, qr.password_hash)):
            raise AuthorizationError("Password required")

        with store_errors(db, "Record scan"):
            qr.scans = QRCode.scans + 1
            if first_visit:
                qr.unique_scans = QRCode.unique_scans + 1
            db.commit()
            db.refresh(qr)
        return qr

    # --- Internal helpers ---

    @staticmethod
    def get_by_id(db: Session, qr_id: int) -> QRCode:
        """Load a QR by id without any access check."""
        with store_errors(db, "Fetch QR code"):
            qr = db.query(QRCode).filter(QRCode.id == qr_id).first()
        if qr is None:
            raise ResourceNotFoundError(f"QR code {qr_id} not found")
        return qr

    @staticmethod
    def _authorize(qr: QRCode, actor: Profile, permission: Optional[str]) -> None:
        if has_permission(actor.role, "qr.manage_all"):
            return
        if qr.owner_id != actor.id:
            raise AuthorizationError("You do not have access to this QR code")
        if permission and not has_permission(actor.role, permission):
            raise AuthorizationError(f"Role '{actor.role}' lacks permission '{permission}'")

    @staticmethod
    def _check_expiry(value: Optional[datetime]) -> Optional[datetime]:
        if value in (None, ""):
            return None
        if isinstance(value, str):
            try:
                value = datetime.fromisoformat(value)
            except ValueError:
                raise ValidationError("Expiry date is not a valid date")
        value = _naive_utc(value)
        if value <= _utcnow():
            raise ValidationError("Expiry date must be in the future")
        return value

    @staticmethod
    def _check_scan_limit(value: Any) -> Optional[int]:
        if value in (None, ""):
            return None
        try:
            limit = int(value)
        except (TypeError, ValueError):
            raise ValidationError("Scan limit must be a positive number")
        if limit < 1:
            raise ValidationError("Scan limit must be a positive number")
        return limit


qr_service = QRService()
