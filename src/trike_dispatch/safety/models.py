"""Safety badge and safety record models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class SafetyBadge(str, Enum):
    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"

    @property
    def rank(self) -> int:
        """Higher is safer; used for minimum-safety filtering."""
        return {SafetyBadge.RED: 0, SafetyBadge.YELLOW: 1, SafetyBadge.GREEN: 2}[self]


class SafetyRecordKind(str, Enum):
    INCIDENT = "incident"
    COMPLAINT = "complaint"
    SOS = "sos"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RecordStatus(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    DISMISSED = "dismissed"


class SafetyInputs(BaseModel):
    """Everything the badge rule reads about one driver."""

    total_rides: int = Field(ge=0)
    average_rating: float | None = Field(default=None, ge=0.0, le=5.0)
    incident_dates: list[datetime] = Field(default_factory=list)
    complaint_dates: list[datetime] = Field(default_factory=list)


class SafetyAssessment(BaseModel):
    """Badge plus the counts that produced it."""

    badge: SafetyBadge
    total_rides: int
    average_rating: float | None
    incidents: int
    complaints: int
    incidents_last_90_days: int
    incidents_last_30_days: int
    complaints_last_30_days: int


class DriverSafetyRecord(BaseModel):
    """Detail view of a driver's safety standing."""

    driver_id: str
    assessment: SafetyAssessment
    registration_date: datetime | None
    days_since_registration: int | None
    last_incident_date: datetime | None


class SafetyRecordEntry(BaseModel):
    record_id: str
    driver_id: str
    kind: SafetyRecordKind
    severity: Severity
    trip_id: str | None
    description: str
    reported_by: str | None
    status: RecordStatus
    created_at: datetime
