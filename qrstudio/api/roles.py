"""Roles API router — role hierarchy and permission catalog."""

from typing import List
from fastapi import APIRouter, Depends, Query

from qrstudio.core import rbac
from qrstudio.core.security import get_current_user
from qrstudio.models.profile import Profile
from qrstudio.schemas.schemas import PermissionCategoryOut, RoleOut

router = APIRouter(prefix="/roles", tags=["roles"])


@router.get("", response_model=List[RoleOut])
async def role_hierarchy(user: Profile = Depends(get_current_user)):
    """All roles, highest level first."""
    return rbac.get_role_hierarchy()


@router.get("/permissions", response_model=List[PermissionCategoryOut])
async def permissions_catalog(user: Profile = Depends(get_current_user)):
    return rbac.get_permissions_list()


@router.get("/check")
async def check_permission(
    permission: str = Query(..., min_length=1),
    user: Profile = Depends(get_current_user),
):
    """Whether the caller's role grants ``permission``."""
    return {
        "role": user.role,
        "permission": permission,
        "allowed": rbac.has_permission(user.role, permission),
    }
