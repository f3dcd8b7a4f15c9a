from typing import Literal

from pydantic import BaseModel, Field

from trike_dispatch.safety import Severity


class SafetyReportRequest(BaseModel):
    kind: Literal["incident", "complaint", "sos"]
    reported_by: str = Field(min_length=1)
    description: str = Field(min_length=1, max_length=2000)
    driver_id: str | None = None
    trip_id: str | None = None
    severity: Severity = Severity.MEDIUM
    location: str | None = Field(default=None, description="Free-text location for SOS alerts")
