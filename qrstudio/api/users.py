"""User directory API router — admin listing and moderation."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from qrstudio.core.security import require_user_manage
from qrstudio.db.session import get_db
from qrstudio.models.profile import Profile
from qrstudio.schemas.schemas import (
    ActivityLogListResponse,
    ActivityLogOut,
    BulkUserUpdateRequest,
    RoleUpdateRequest,
    StatusUpdateRequest,
    UserListResponse,
    UserOut,
    UserStatsOut,
)
from qrstudio.services.audit_service import audit_service
from qrstudio.services.user_service import user_service

router = APIRouter(prefix="/users", tags=["users"])


@router.get("", response_model=UserListResponse)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[str] = Query(None),
    plan: Optional[str] = Query(None),
    status: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    """List users with filters and pagination."""
    filters = {"role": role, "plan": plan, "status": status, "search": search}
    return user_service.get_all_users(db, page, limit, filters)


@router.get("/stats", response_model=UserStatsOut)
async def user_stats(
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    return user_service.get_user_stats(db)


@router.post("/bulk-update", response_model=List[UserOut])
async def bulk_update(
    body: BulkUserUpdateRequest,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    """Apply one update to many users at once."""
    return user_service.bulk_update_users(db, body.user_ids, body.updates, admin.id)


@router.get("/activity-logs", response_model=ActivityLogListResponse)
async def activity_logs(
    action: Optional[str] = Query(None),
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    """Activity log across all users, newest first."""
    return audit_service.query_logs(db, action=action, page=page, page_size=page_size)


@router.get("/{user_id}", response_model=UserOut)
async def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    return user_service.get_user_by_id(db, user_id)


@router.put("/{user_id}/role", response_model=UserOut)
async def update_role(
    user_id: int,
    body: RoleUpdateRequest,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    return user_service.update_user_role(db, user_id, body.role, admin.id)


@router.put("/{user_id}/status", response_model=UserOut)
async def update_status(
    user_id: int,
    body: StatusUpdateRequest,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    return user_service.update_user_status(db, user_id, body.is_active, admin.id)


@router.delete("/{user_id}", response_model=UserOut)
async def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    """Soft-delete a user: deactivated and anonymized, id kept."""
    return user_service.delete_user(db, user_id, admin.id)


@router.get("/{user_id}/activity", response_model=List[ActivityLogOut])
async def user_activity(
    user_id: int,
    limit: int = Query(50, ge=1, le=200),
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_user_manage),
):
    """Most recent activity log entries for a user."""
    return user_service.get_user_activity(db, user_id, limit)
