"""
Report service - the Report Lifecycle Engine.

Owns the only entry points that create or mutate reports.

DESIGN NOTE:
- Role checks happen in the Authorization Gate, never here
- Notifications are best-effort and never fail a submission
- Reports are never deleted
"""

from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union
import logging

from pydantic import ValidationError as PydanticValidationError

from hazard_hub.core.errors import NotFound, StaleUpdate, ValidationError
from hazard_hub.models.report import ANONYMOUS_REPORTER, Report, ReportCreate, Urgency
from hazard_hub.models.user import User
from hazard_hub.services.notifications import NotificationSink
from hazard_hub.services.report_store import ReportStore
from hazard_hub.services.status_workflow import ReportStatus, StatusWorkflowEngine
from hazard_hub.utils.firestore_helpers import to_datetime
from hazard_hub.utils.geocoding import bounding_box, in_box

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReportLifecycleEngine:

    def __init__(
        self,
        store: ReportStore,
        notifier: Optional[NotificationSink] = None,
        credential_store=None,
        clock: Callable[[], datetime] = _utcnow,
        notifications_enabled: bool = True,
        mass_alert_radius_km: float = 10.0,
    ):
        self.store = store
        self.notifier = notifier
        self.credential_store = credential_store
        self.clock = clock
        self.notifications_enabled = notifications_enabled
        self.mass_alert_radius_km = mass_alert_radius_km
        self.workflow = StatusWorkflowEngine()

    def submit_report(
        self,
        report_data: Union[ReportCreate, Dict],
        reporter: Optional[User] = None,
        schedule: Optional[Callable] = None,
    ) -> Report:
        """
        Create a new report in status New.

        Flow:
        1. Validate input (if not already a ReportCreate)
        2. Store report (must succeed)
        3. Hand the notification to ``schedule`` (e.g. BackgroundTasks.add_task)
           or run it inline; either way its failures are only logged

        Args:
            report_data: Validated ReportCreate or raw dict
            reporter: Authenticated caller, None for anonymous submissions
            schedule: Optional fire-and-forget scheduler ``schedule(fn, *args)``

        Returns:
            Report: The created report

        Raises:
            ValidationError: Input failed validation
            UpstreamFailure: The store write failed
        """
        if not isinstance(report_data, ReportCreate):
            try:
                report_data = ReportCreate.model_validate(report_data)
            except PydanticValidationError as e:
                raise ValidationError(details=e.errors(include_url=False, include_context=False)) from e

        now = self.clock()
        document = {
            "description": report_data.description,
            "urgency": report_data.urgency.value,
            "latitude": report_data.latitude,
            "longitude": report_data.longitude,
            "image_url": report_data.image_url,
            "status": ReportStatus.NEW.value,
            "reported_by": reporter.id if reporter else ANONYMOUS_REPORTER,
            "assigned_to": None,
            "created_at": now,
            "updated_at": now,
            "resolved_at": None,
            "status_history": [self.workflow.create_status_history_entry(
                from_status=None,
                to_status=ReportStatus.NEW.value,
                changed_by=reporter.id if reporter else ANONYMOUS_REPORTER,
                timestamp=now,
                note="Report created",
            )],
        }

        report_id = self.store.create(document)
        report = Report.from_document(report_id, document)
        logger.info(f"Report created: {report_id} (urgency={report.urgency.value}, by={report.reported_by})")

        if schedule is not None:
            schedule(self.notify_new_report, report)
        else:
            self.notify_new_report(report)

        return report

    def list_reports(self, status: Optional[ReportStatus] = None, limit: Optional[int] = None) -> List[Report]:
        """All reports, newest first (by created_at)."""
        status_value = status.value if isinstance(status, ReportStatus) else status
        return [Report.from_document(doc["id"], doc) for doc in self.store.list(status=status_value, limit=limit)]

    def get_report(self, report_id: str) -> Report:
        doc = self.store.get(report_id)
        if doc is None:
            raise NotFound(f"Report {report_id} not found")
        return Report.from_document(doc["id"], doc)

    def update_status(
        self,
        report_id: str,
        new_status: Union[ReportStatus, str],
        actor: User,
        expected_updated_at: Optional[datetime] = None,
        note: Optional[str] = None,
    ) -> Report:
        """
        Move a report through the state machine.

        The caller must already be authorized (admin) by the gate.

        Args:
            report_id: Firestore document ID
            new_status: Target status; equal to current is a no-op success
            actor: The admin performing the change
            expected_updated_at: updated_at the actor last saw; if given and
                stale the change is rejected
            note: Optional note for the status history

        Raises:
            NotFound: No such report
            InvalidTransition: The state machine forbids the move
            StaleUpdate: expected_updated_at no longer matches
        """
        try:
            target = ReportStatus(new_status)
        except ValueError:
            raise ValidationError(f"Unknown status {new_status!r}")

        expected = to_datetime(expected_updated_at)

        def compute_updates(current: Dict) -> Dict:
            previous_update = to_datetime(current.get("updated_at"))
            if expected is not None and previous_update != expected:
                raise StaleUpdate()

            now = self.clock()
            if previous_update is not None and now < previous_update:
                # Keep updated_at non-decreasing under clock skew
                now = previous_update

            updates = self.workflow.validate_and_transition(
                current=current,
                new_status=target.value,
                changed_by=actor.id,
                now=now,
                note=note,
            )
            if updates.get("status") == ReportStatus.IN_PROGRESS.value and not current.get("assigned_to"):
                updates["assigned_to"] = actor.id
            return updates

        updated = self.store.update_conditionally(report_id, compute_updates)
        if updated is None:
            raise NotFound(f"Report {report_id} not found")

        logger.info(f"Admin {actor.id} set report {report_id} status to {updated['status']}")
        return Report.from_document(report_id, updated)

    def notify_new_report(self, report: Report) -> None:
        """
        Best-effort alerts for a new report. Never raises.

        Admins always get a summary; High urgency reports also alert
        reporters of other reports nearby.
        """
        if not self.notifications_enabled or self.notifier is None:
            return

        summary = {
            "report_id": report.id,
            "description": report.description,
            "urgency": report.urgency.value,
            "latitude": report.latitude,
            "longitude": report.longitude,
        }

        try:
            self.notifier.notify_new_report(summary)
        except Exception as e:
            logger.error(f"Admin notification failed, but report {report.id} was created: {e}")

        if report.urgency == Urgency.HIGH:
            try:
                self._send_nearby_alert(report, summary)
            except Exception as e:
                logger.error(f"Mass alert process failed for report {report.id}: {e}")

    def _send_nearby_alert(self, report: Report, summary: Dict) -> None:
        if self.credential_store is None:
            return

        box = bounding_box(report.latitude, report.longitude, self.mass_alert_radius_km)
        reporter_ids = set()
        for doc in self.store.find_in_latitude_band(box["min_lat"], box["max_lat"]):
            if doc["id"] == report.id or not in_box(box, doc["latitude"], doc["longitude"]):
                continue
            reporter_id = doc.get("reported_by")
            if reporter_id and reporter_id not in (ANONYMOUS_REPORTER, report.reported_by):
                reporter_ids.add(reporter_id)

        phones = []
        for reporter_id in reporter_ids:
            user = self.credential_store.get_by_id(reporter_id)
            if user is not None and user.phone:
                phones.append(user.phone)

        if not phones:
            logger.info(f"No nearby reporters found to alert for report {report.id}")
            return

        sent = self.notifier.send_mass_alert(summary, phones)
        logger.info(f"Mass alert for report {report.id} delivered to {sent}/{len(set(phones))} numbers")
