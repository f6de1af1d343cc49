"""Bulk import API router — preview and generate QR codes from a spreadsheet.

Each request runs the whole wizard (upload, map, and for /generate, create),
so no import state is kept between requests.
"""

from typing import Optional
from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.orm import Session

from qrstudio.core.security import require_bulk_feature, require_bulk_generate
from qrstudio.db.session import get_db
from qrstudio.models.profile import Profile
from qrstudio.schemas.schemas import (
    BulkImportReportOut,
    BulkPreviewResponse,
    BulkRowOutcomeOut,
    QRCodeOut,
)
from qrstudio.services.bulk_service import BulkImportSession
from qrstudio.services.qr_service import qr_service

router = APIRouter(
    prefix="/bulk",
    tags=["bulk"],
    dependencies=[Depends(require_bulk_feature)],
)


async def _mapped_session(
    file: UploadFile,
    qr_type: str,
    name_column: Optional[str],
    content_column: Optional[str],
) -> BulkImportSession:
    session = BulkImportSession()
    session.upload(file.filename or "upload", await file.read())
    session.set_qr_type(qr_type)
    if name_column:
        session.map_field("name", name_column)
    if content_column:
        session.map_field("content", content_column)
    return session


@router.post("/preview", response_model=BulkPreviewResponse)
async def preview(
    file: UploadFile = File(...),
    qr_type: str = Form("url"),
    name_column: Optional[str] = Form(None),
    content_column: Optional[str] = Form(None),
    user: Profile = Depends(require_bulk_generate),
):
    """Parse the upload and show the first rows under the given mapping."""
    session = await _mapped_session(file, qr_type, name_column, content_column)
    return session.preview()


@router.post("/generate", response_model=BulkImportReportOut)
async def generate(
    file: UploadFile = File(...),
    qr_type: str = Form("url"),
    name_column: str = Form(...),
    content_column: str = Form(...),
    db: Session = Depends(get_db),
    user: Profile = Depends(require_bulk_generate),
):
    """Create one QR code per usable row and report every row's outcome."""
    session = await _mapped_session(file, qr_type, name_column, content_column)
    report = session.generate(lambda request: qr_service.create(db, user, request))
    return BulkImportReportOut(
        created_count=report.created_count,
        skipped_count=report.skipped_count,
        failed_count=report.failed_count,
        samples=[QRCodeOut.model_validate(qr) for qr in report.samples],
        remaining=report.remaining,
        outcomes=[
            BulkRowOutcomeOut(row=o.row, status=o.status, reason=o.reason, qr_id=o.qr_id)
            for o in report.outcomes
        ],
    )
