from fastapi import APIRouter, status

from trike_dispatch.api.dependencies import SafetyEngineDep
from trike_dispatch.api.models import SafetyReportRequest
from trike_dispatch.core.exceptions import ValidationError
from trike_dispatch.safety import SafetyRecordEntry

router = APIRouter()


@router.post("/reports", response_model=SafetyRecordEntry, status_code=status.HTTP_201_CREATED)
def create_report(body: SafetyReportRequest, safety_engine: SafetyEngineDep) -> SafetyRecordEntry:
    if body.kind == "sos":
        return safety_engine.report_sos(
            body.reported_by,
            body.location or "unknown location",
            body.description,
            trip_id=body.trip_id,
            driver_id=body.driver_id,
        )

    if body.driver_id is None:
        raise ValidationError(f"A {body.kind} report needs a driver_id")
    if body.kind == "incident":
        return safety_engine.report_incident(
            body.driver_id, body.description, body.severity, body.reported_by, body.trip_id
        )
    return safety_engine.report_complaint(
        body.driver_id, body.description, body.severity, body.reported_by, body.trip_id
    )
