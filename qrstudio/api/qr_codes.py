"""QR codes API router — CRUD, duplicate, payload, public scan."""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from qrstudio.core.security import get_current_user
from qrstudio.db.session import get_db
from qrstudio.models.profile import Profile
from qrstudio.schemas.schemas import QRCodeCreate, QRCodeOut, QRCodeUpdate, QRPayloadOut
from qrstudio.services.qr_service import qr_service

router = APIRouter(prefix="/qr-codes", tags=["qr-codes"])


@router.get("", response_model=List[QRCodeOut])
async def list_qr_codes(
    include_all: bool = Query(False, alias="all", description="Every user's codes (needs qr.manage_all)"),
    type: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return qr_service.list_for_owner(db, user, include_all=include_all, qr_type=type, search=search)


@router.post("", response_model=QRCodeOut, status_code=201)
async def create_qr_code(
    body: QRCodeCreate,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return qr_service.create(db, user, body.model_dump())


@router.get("/{qr_id}", response_model=QRCodeOut)
async def get_qr_code(
    qr_id: int,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return qr_service.get(db, qr_id, user)


@router.patch("/{qr_id}", response_model=QRCodeOut)
async def update_qr_code(
    qr_id: int,
    body: QRCodeUpdate,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Partial update; only the fields sent are changed."""
    return qr_service.update(db, qr_id, user, body.model_dump(exclude_unset=True))


@router.delete("/{qr_id}", status_code=204)
async def delete_qr_code(
    qr_id: int,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    qr_service.delete(db, qr_id, user)
    return Response(status_code=204)


@router.post("/{qr_id}/duplicate", response_model=QRCodeOut, status_code=201)
async def duplicate_qr_code(
    qr_id: int,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    return qr_service.duplicate(db, qr_id, user)


@router.get("/{qr_id}/payload", response_model=QRPayloadOut)
async def qr_payload(
    qr_id: int,
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """The text encoded into the QR image."""
    qr = qr_service.get(db, qr_id, user)
    return QRPayloadOut(id=qr.id, type=qr.type, payload=qr_service.payload(qr))


@router.post("/{qr_id}/scan", response_model=QRPayloadOut)
async def scan_qr_code(
    qr_id: int,
    password: Optional[str] = Query(None),
    first_visit: bool = Query(True),
    db: Session = Depends(get_db),
):
    """Public scan: enforces active, expiry, scan limit and password, then counts the scan."""
    qr = qr_service.resolve_scan(db, qr_id, password=password, first_visit=first_visit)
    return QRPayloadOut(id=qr.id, type=qr.type, payload=qr_service.payload(qr))
