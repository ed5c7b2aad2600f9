"""
Report Store - the single persistence seam for report documents.

Works against firestore.Client or the mock client (USE_MOCK_DB). All status
changes go through update_conditionally so concurrent writers on one report
serialize at the store instead of interleaving partial writes.
"""

from typing import Callable, Dict, List, Optional
import logging

from firebase_admin import firestore
from google.api_core.exceptions import FailedPrecondition

from hazard_hub.core.errors import HazardHubError, StaleUpdate, UpstreamFailure
from hazard_hub.utils.firestore_helpers import where_filter

logger = logging.getLogger(__name__)

REPORTS_COLLECTION = "reports"


class ReportStore:

    def __init__(self, db, max_write_attempts: int = 5):
        self.db = db
        self.max_write_attempts = max_write_attempts

    def create(self, data: Dict) -> str:
        """Insert a new report document and return its generated ID."""
        try:
            doc_ref = self.db.collection(REPORTS_COLLECTION).document()
            doc_ref.set(data)
        except Exception as e:
            logger.error(f"Failed to save report to Firestore: {e}", exc_info=True)
            raise UpstreamFailure(f"Report store write failed: {e}") from e
        return doc_ref.id

    def get(self, report_id: str) -> Optional[Dict]:
        try:
            doc = self.db.collection(REPORTS_COLLECTION).document(report_id).get()
        except Exception as e:
            logger.error(f"Failed to read report {report_id}: {e}", exc_info=True)
            raise UpstreamFailure(f"Report store read failed: {e}") from e

        if not doc.exists:
            return None
        data = doc.to_dict()
        data["id"] = doc.id
        return data

    def list(self, status: Optional[str] = None, limit: Optional[int] = None) -> List[Dict]:
        """Reports ordered by created_at, newest first."""
        query = self.db.collection(REPORTS_COLLECTION)
        if status:
            query = where_filter(query, "status", "==", status)
        query = query.order_by("created_at", direction=firestore.Query.DESCENDING)
        if limit:
            query = query.limit(limit)
        return self._stream(query)

    def find_in_latitude_band(self, min_lat: float, max_lat: float) -> List[Dict]:
        """
        Reports whose latitude lies in [min_lat, max_lat].

        Firestore allows range filters on one field only; callers filter
        longitude themselves.
        """
        query = where_filter(self.db.collection(REPORTS_COLLECTION), "latitude", ">=", min_lat)
        query = where_filter(query, "latitude", "<=", max_lat)
        return self._stream(query)

    def update_conditionally(self, report_id: str, compute_updates: Callable[[Dict], Dict]) -> Optional[Dict]:
        """
        Read-compute-write a report as one conditional update.

        The write carries a last-update-time precondition; if another writer
        got in between, the read and computation are retried on fresh data.

        Args:
            report_id: Firestore document ID
            compute_updates: Maps the current document to the fields to write.
                Errors it raises (e.g. InvalidTransition) propagate unchanged.

        Returns:
            The updated document, or None if the report does not exist

        Raises:
            StaleUpdate: contention outlasted every retry
            UpstreamFailure: the datastore failed
        """
        doc_ref = self.db.collection(REPORTS_COLLECTION).document(report_id)

        for attempt in range(1, self.max_write_attempts + 1):
            try:
                snapshot = doc_ref.get()
                if not snapshot.exists:
                    return None

                current = snapshot.to_dict()
                updates = compute_updates(current)
                doc_ref.update(updates, option=self.db.write_option(last_update_time=snapshot.update_time))
            except FailedPrecondition:
                logger.info(f"Concurrent write on report {report_id}, retrying ({attempt}/{self.max_write_attempts})")
                continue
            except HazardHubError:
                raise
            except Exception as e:
                logger.error(f"Failed to update report {report_id}: {e}", exc_info=True)
                raise UpstreamFailure(f"Report store update failed: {e}") from e

            current.update(updates)
            current["id"] = report_id
            return current

        raise StaleUpdate(f"Report {report_id} kept changing; please reload and retry")

    def ping(self) -> int:
        """Connectivity check; returns the number of top-level collections."""
        return len(list(self.db.collections()))

    def _stream(self, query) -> List[Dict]:
        try:
            reports = []
            for doc in query.stream():
                data = doc.to_dict()
                data["id"] = doc.id
                reports.append(data)
            return reports
        except Exception as e:
            logger.error(f"Failed to query reports: {e}", exc_info=True)
            raise UpstreamFailure(f"Report store query failed: {e}") from e
