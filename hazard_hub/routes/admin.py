"""
Admin endpoints - report triage.

SCOPE OF ADMIN:
- Move reports through the lifecycle (New → InProgress → Resolved)
- Filtered triage view of reports

NOT in scope:
- Editing report content
- Deleting reports
- Changing user roles
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query

from hazard_hub.core.container import Services
from hazard_hub.models.report import Report, StatusUpdateRequest
from hazard_hub.models.user import User
from hazard_hub.routes.deps import get_services, require_admin
from hazard_hub.services.status_workflow import ReportStatus

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.patch("/reports/{report_id}/status", response_model=Report)
def change_status(
    report_id: str,
    request: StatusUpdateRequest,
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """
    Change report status.

    **Rules:**
    - New → InProgress, New → Resolved, InProgress → Resolved
    - Nothing returns to New; Resolved is final
    - Requesting the current status succeeds and refreshes updated_at
    - Send expected_updated_at to reject the change if someone else moved the report first

    Raises:
        404: Report not found
        409: invalid_transition or stale_update
    """
    return services.reports.update_status(
        report_id=report_id,
        new_status=request.status,
        actor=admin,
        expected_updated_at=request.expected_updated_at,
        note=request.note,
    )


@router.get("/reports", response_model=List[Report])
def get_reports(
    status: Optional[ReportStatus] = Query(None, description="Filter by status"),
    limit: int = Query(100, ge=1, le=500, description="Maximum number of reports"),
    admin: User = Depends(require_admin),
    services: Services = Depends(get_services),
):
    """Triage view: reports filtered by status, newest first."""
    return services.reports.list_reports(status=status, limit=limit)
