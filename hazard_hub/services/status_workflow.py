"""
Status Workflow Engine - report lifecycle state machine.

DESIGN PRINCIPLES:
- Only forward transitions; nothing ever returns to New
- Resolved is terminal (re-opening is not supported)
- Same-status requests are accepted as no-ops but still touch updated_at
- resolved_at is set iff status is Resolved
"""

from enum import Enum
from datetime import datetime
from typing import Dict, List, Optional
import logging

from hazard_hub.core.errors import InvalidTransition

logger = logging.getLogger(__name__)


class ReportStatus(str, Enum):
    """
    Report lifecycle states.

    NEW → IN_PROGRESS → RESOLVED, or NEW → RESOLVED directly.
    """
    NEW = "New"                    # Initial state, awaiting triage
    IN_PROGRESS = "InProgress"     # An admin has picked it up
    RESOLVED = "Resolved"          # Terminal state


class StatusWorkflowEngine:
    """
    State machine for report status transitions.

    Pure: computes field updates, never touches storage.
    """

    # Allowed transitions map: {from_status: [to_status, ...]}
    ALLOWED_TRANSITIONS: Dict[ReportStatus, List[ReportStatus]] = {
        ReportStatus.NEW: [ReportStatus.IN_PROGRESS, ReportStatus.RESOLVED],
        ReportStatus.IN_PROGRESS: [ReportStatus.RESOLVED],
        ReportStatus.RESOLVED: [],
    }

    @classmethod
    def is_valid_transition(cls, from_status: str, to_status: str) -> bool:
        """
        Check if a status transition is valid.

        Unknown status values are never valid.
        """
        try:
            from_enum = ReportStatus(from_status)
            to_enum = ReportStatus(to_status)
        except ValueError:
            return False

        # Same status is always valid (no-op)
        if from_enum == to_enum:
            return True

        return to_enum in cls.ALLOWED_TRANSITIONS.get(from_enum, [])

    @classmethod
    def get_allowed_transitions(cls, current_status: str) -> List[str]:
        try:
            current_enum = ReportStatus(current_status)
        except ValueError:
            return []
        return [status.value for status in cls.ALLOWED_TRANSITIONS.get(current_enum, [])]

    @classmethod
    def create_status_history_entry(
        cls,
        from_status: Optional[str],
        to_status: str,
        changed_by: str,
        timestamp: datetime,
        note: Optional[str] = None
    ) -> Dict:
        """Create a status history entry for the audit trail."""
        return {
            "from_status": from_status,
            "to_status": to_status,
            "changed_by": changed_by,
            "timestamp": timestamp,
            "note": note or "",
        }

    @classmethod
    def validate_and_transition(
        cls,
        current: Dict,
        new_status: str,
        changed_by: str,
        now: datetime,
        note: Optional[str] = None
    ) -> Dict:
        """
        Validate a transition and compute the fields to write.

        Args:
            current: Current report document
            new_status: Desired status
            changed_by: Actor identifier
            now: Timestamp applied to updated_at (and resolved_at)
            note: Optional note for the audit trail

        Returns:
            Dict of fields to update on the report document

        Raises:
            InvalidTransition: If the state machine forbids the move
        """
        current_status = current.get("status")
        if not cls.is_valid_transition(current_status, new_status):
            allowed = cls.get_allowed_transitions(current_status)
            raise InvalidTransition(
                f"Invalid status transition: {current_status} → {new_status}. "
                f"Allowed transitions from {current_status}: {allowed}"
            )

        new_enum = ReportStatus(new_status)
        updates: Dict = {"updated_at": now}

        if new_enum.value == current_status:
            # No-op: status and resolved_at stay as they are
            return updates

        updates["status"] = new_enum.value
        if new_enum == ReportStatus.RESOLVED:
            updates["resolved_at"] = now
        elif current_status == ReportStatus.RESOLVED.value:
            updates["resolved_at"] = None

        history = list(current.get("status_history") or [])
        history.append(cls.create_status_history_entry(
            from_status=current_status,
            to_status=new_enum.value,
            changed_by=changed_by,
            timestamp=now,
            note=note,
        ))
        updates["status_history"] = history

        logger.debug(f"Transition {current_status} → {new_enum.value} by {changed_by}")
        return updates
