"""
Report endpoints - submission and retrieval.
"""

from typing import List, Optional
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, status

from hazard_hub.core.container import Services
from hazard_hub.models.report import Report, ReportCreate, ReportCreatedResponse
from hazard_hub.models.user import User
from hazard_hub.routes.deps import get_services, optional_user, require_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["Reports"])


@router.post("", status_code=status.HTTP_201_CREATED, response_model=ReportCreatedResponse)
def submit_report(
    report: ReportCreate,
    background_tasks: BackgroundTasks,
    reporter: Optional[User] = Depends(optional_user),
    services: Services = Depends(get_services),
):
    """
    Submit a new hazard report.

    Anonymous submissions are accepted. With a bearer token the report is
    attributed to the caller. Admin alerts go out after the response.
    """
    created = services.reports.submit_report(report, reporter=reporter, schedule=background_tasks.add_task)
    return ReportCreatedResponse(report_id=created.id, report=created)


@router.get("", response_model=List[Report])
def list_reports(
    user: User = Depends(require_user),
    services: Services = Depends(get_services),
):
    """All reports, newest first. Requires any authenticated role."""
    return services.reports.list_reports()


@router.get("/{report_id}", response_model=Report)
def get_report(
    report_id: str,
    user: User = Depends(require_user),
    services: Services = Depends(get_services),
):
    return services.reports.get_report(report_id)
