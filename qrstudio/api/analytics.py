"""Analytics API router — per-QR analytics and CSV report download."""

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from qrstudio.core.security import get_current_user, require_analytics_feature
from qrstudio.db.session import get_db
from qrstudio.models.profile import Profile
from qrstudio.services.analytics_service import analytics_service
from qrstudio.services.qr_service import qr_service

router = APIRouter(
    prefix="/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_analytics_feature)],
)


def _load_for_analytics(db: Session, qr_id: int, user: Profile):
    qr = qr_service.get_by_id(db, qr_id)
    analytics_service.authorize(user, qr)
    return qr


@router.get("/{qr_id}")
async def qr_analytics(
    qr_id: int,
    time_range: str = Query("7d"),
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    qr = _load_for_analytics(db, qr_id, user)
    return analytics_service.get_qr_analytics(qr, time_range)


@router.get("/{qr_id}/advanced")
async def advanced_analytics(
    qr_id: int,
    time_range: str = Query("7d"),
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    qr = _load_for_analytics(db, qr_id, user)
    return analytics_service.get_advanced_analytics(qr, time_range)


@router.get("/{qr_id}/export.csv")
async def export_report(
    qr_id: int,
    time_range: str = Query("7d"),
    db: Session = Depends(get_db),
    user: Profile = Depends(get_current_user),
):
    """Download the advanced analytics report as CSV."""
    qr = _load_for_analytics(db, qr_id, user)
    report = analytics_service.export_report_csv(
        qr.name, time_range, analytics_service.get_advanced_analytics(qr, time_range)
    )
    return Response(
        content=report,
        media_type="text/csv",
        headers={
            "Content-Disposition": f'attachment; filename="advanced-analytics-{qr.id}-{time_range}.csv"'
        },
    )
