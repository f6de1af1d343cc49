"""Settings API router — site settings and feature flags."""

from typing import Dict
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from qrstudio.core.security import get_current_user, require_settings_manage
from qrstudio.db.session import get_db
from qrstudio.models.profile import Profile
from qrstudio.schemas.schemas import FeatureToggleRequest, SettingsUpdateRequest
from qrstudio.services.settings_service import settings_service

router = APIRouter(prefix="/settings", tags=["settings"])


@router.get("", response_model=Dict[str, str])
async def get_settings(
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return settings_service.get_settings(db)


@router.put("", response_model=Dict[str, str])
async def update_settings(
    body: SettingsUpdateRequest,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_settings_manage),
):
    return settings_service.update_settings(db, body.values, admin.id)


@router.get("/features", response_model=Dict[str, bool])
async def list_features(
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return settings_service.get_features(db)


@router.put("/features/{name}")
async def set_feature(
    name: str,
    body: FeatureToggleRequest,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_settings_manage),
):
    enabled = settings_service.set_feature(db, name, body.enabled, admin.id)
    return {"name": name, "enabled": enabled}


@router.post("/features/{name}/toggle")
async def toggle_feature(
    name: str,
    db: Session = Depends(get_db),
    admin: Profile = Depends(require_settings_manage),
):
    enabled = settings_service.toggle_feature(db, name, admin.id)
    return {"name": name, "enabled": enabled}
