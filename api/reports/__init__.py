"""Moderation endpoints for item reports (admin only)."""

from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Security, status
from pydantic import BaseModel

from auth import require_admin
from safety.reports import ReportManager, InvalidReportError, ReportNotFoundError
from ..dependencies import get_reports

# Create router
router = APIRouter(
    prefix="/reports",
    tags=["Reports"]
)

class ReviewRequest(BaseModel):
    """Request model for reviewing a report."""
    status: str

@router.get("")
async def list_reports(
    report_status: Optional[str] = Query(None, alias="status"),
    admin_id: str = Security(require_admin),
    reports: ReportManager = Depends(get_reports)
) -> List[Dict[str, Any]]:
    try:
        return await reports.list_reports(report_status)
    except InvalidReportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "field": "status"}
        )

@router.post("/{report_id}/review")
async def review_report(
    report_id: UUID,
    request: ReviewRequest,
    admin_id: str = Security(require_admin),
    reports: ReportManager = Depends(get_reports)
) -> Dict[str, Any]:
    """Record a moderation decision."""
    try:
        return await reports.review_report(report_id, request.status)
    except InvalidReportError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"message": str(e), "field": "status"}
        )
    except ReportNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e)
        )
