"""
Pydantic models for hazard reports.
These models handle validation for report submission and responses.
"""

from pydantic import AnyHttpUrl, BaseModel, Field, TypeAdapter, field_validator
from datetime import datetime
from typing import Optional, List, Dict
from enum import Enum

from hazard_hub.services.status_workflow import ReportStatus
from hazard_hub.utils.firestore_helpers import to_datetime

ANONYMOUS_REPORTER = "anonymous"

_HTTP_URL = TypeAdapter(AnyHttpUrl)


class Urgency(str, Enum):
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"


class ReportCreate(BaseModel):
    """
    Model for creating a new report (incoming POST request).

    Who reported is never taken from the body; it comes from the caller's
    credential (or "anonymous").
    """
    description: str = Field(..., min_length=10, max_length=500, description="What the reporter observed")
    urgency: Urgency = Field(..., description="Low, Moderate or High")
    latitude: float = Field(..., ge=-90, le=90, allow_inf_nan=False, description="Latitude coordinate")
    longitude: float = Field(..., ge=-180, le=180, allow_inf_nan=False, description="Longitude coordinate")
    image_url: Optional[str] = Field(None, max_length=2048, description="Optional photo URL (http or https)")

    class Config:
        json_schema_extra = {
            "example": {
                "description": "Gas leak near 5th ave",
                "urgency": "High",
                "latitude": 12.34,
                "longitude": 56.78,
                "image_url": "https://example.com/photo.jpg",
            }
        }
        extra = "ignore"

    @field_validator("description", mode="before")
    @classmethod
    def strip_description(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("image_url")
    @classmethod
    def check_image_url(cls, value):
        # Validated as an http(s) URL but stored exactly as sent
        if value is not None:
            try:
                _HTTP_URL.validate_python(value)
            except ValueError:
                raise ValueError("must be a valid http or https URL")
        return value

    @field_validator("latitude", "longitude", mode="before")
    @classmethod
    def require_number(cls, value):
        # Lax mode would accept "12.3" or True
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ValueError("must be a number")
        return value


class StatusHistoryEntry(BaseModel):
    """Status transition history entry."""
    from_status: Optional[str] = Field(None, description="Previous status")
    to_status: str = Field(..., description="New status")
    changed_by: str = Field(..., description="User who made the change")
    timestamp: datetime = Field(..., description="When change occurred")
    note: Optional[str] = Field(None, description="Optional note explaining the change")


class Report(BaseModel):
    """Model for report responses (what the API returns)."""
    id: str = Field(..., description="Firestore document ID")
    description: str
    urgency: Urgency
    latitude: float
    longitude: float
    image_url: Optional[str] = None
    status: ReportStatus = ReportStatus.NEW
    reported_by: str = Field(ANONYMOUS_REPORTER, description="Reporter user ID or 'anonymous'")
    assigned_to: Optional[str] = Field(None, description="Admin user ID handling the report")
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = Field(None, description="Set iff status is Resolved")
    status_history: List[StatusHistoryEntry] = Field(default_factory=list)

    @classmethod
    def from_document(cls, doc_id: str, data: Dict) -> "Report":
        history = [
            dict(entry, timestamp=to_datetime(entry.get("timestamp")))
            for entry in data.get("status_history") or []
        ]
        return cls(
            id=doc_id,
            description=data["description"],
            urgency=data["urgency"],
            latitude=data["latitude"],
            longitude=data["longitude"],
            image_url=data.get("image_url"),
            status=data.get("status", ReportStatus.NEW.value),
            reported_by=data.get("reported_by") or ANONYMOUS_REPORTER,
            assigned_to=data.get("assigned_to"),
            created_at=to_datetime(data["created_at"]),
            updated_at=to_datetime(data.get("updated_at") or data["created_at"]),
            resolved_at=to_datetime(data.get("resolved_at")),
            status_history=history,
        )


class StatusUpdateRequest(BaseModel):
    """Request to change report status."""
    status: ReportStatus = Field(..., description="New status value")
    expected_updated_at: Optional[datetime] = Field(
        None, description="updated_at the caller last saw; rejects the change if the report moved on"
    )
    note: Optional[str] = Field(None, max_length=500, description="Optional note explaining the change")


class ReportCreatedResponse(BaseModel):
    success: bool = True
    message: str = "Report created"
    report_id: str
    report: Report
