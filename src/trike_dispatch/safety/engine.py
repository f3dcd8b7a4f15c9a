"""Store-backed safety scoring and safety record reporting."""

import logging
import uuid
from collections.abc import Callable, Iterable
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from trike_dispatch.core.exceptions import DriverNotFound, ValidationError
from trike_dispatch.db.repositories import (
    DriverPresenceRepository,
    SafetyRecordRepository,
    TripRepository,
)
from trike_dispatch.db.schema import SafetyRecord
from trike_dispatch.db.transaction import transaction
from trike_dispatch.db.utils import utc_now
from trike_dispatch.driver import DriverPresenceRecord

from .models import (
    DriverSafetyRecord,
    RecordStatus,
    SafetyAssessment,
    SafetyInputs,
    SafetyRecordEntry,
    SafetyRecordKind,
    Severity,
)
from .rules import evaluate_safety_badge

logger = logging.getLogger(__name__)


class SafetyScoreEngine:
    """Derives driver safety badges and appends safety records.

    Reads ride counts and ratings from completed trips and incident and
    complaint history from the safety record log. SOS alerts are logged
    but do not count toward the badge.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def get_safety_assessment(self, driver_id: str) -> SafetyAssessment:
        with self._session_factory() as session, transaction(session):
            self._require_driver(session, driver_id)
            return self._assess(session, driver_id, self._clock())

    def get_safety_assessments(self, driver_ids: Iterable[str]) -> dict[str, SafetyAssessment]:
        """Assess several drivers in one session. Unknown ids are skipped."""
        now = self._clock()
        with self._session_factory() as session, transaction(session):
            presence = DriverPresenceRepository(session)
            return {
                driver_id: self._assess(session, driver_id, now)
                for driver_id in driver_ids
                if presence.get(driver_id) is not None
            }

    def get_driver_safety_record(self, driver_id: str) -> DriverSafetyRecord:
        now = self._clock()
        with self._session_factory() as session, transaction(session):
            driver = self._require_driver(session, driver_id)
            assessment = self._assess(session, driver_id, now)
            last_incident = SafetyRecordRepository(session).last_created_at(
                driver_id, [SafetyRecordKind.INCIDENT.value]
            )

        days_since_registration = None
        if driver.registered_at is not None:
            days_since_registration = max(0, (now - driver.registered_at).days)

        return DriverSafetyRecord(
            driver_id=driver_id,
            assessment=assessment,
            registration_date=driver.registered_at,
            days_since_registration=days_since_registration,
            last_incident_date=last_incident,
        )

    def report_incident(
        self,
        driver_id: str,
        description: str,
        severity: Severity | str,
        reported_by: str | None = None,
        trip_id: str | None = None,
    ) -> SafetyRecordEntry:
        return self._append(
            SafetyRecordKind.INCIDENT, driver_id, description, severity, reported_by, trip_id
        )

    def report_complaint(
        self,
        driver_id: str,
        description: str,
        severity: Severity | str,
        reported_by: str | None = None,
        trip_id: str | None = None,
    ) -> SafetyRecordEntry:
        return self._append(
            SafetyRecordKind.COMPLAINT, driver_id, description, severity, reported_by, trip_id
        )

    def report_sos(
        self,
        reported_by: str,
        location: str,
        description: str,
        trip_id: str | None = None,
        driver_id: str | None = None,
    ) -> SafetyRecordEntry:
        """Raise an SOS alert. Severity is always high.

        The driver is taken from the trip when not given explicitly.
        """
        if driver_id is None and trip_id is not None:
            with self._session_factory() as session, transaction(session):
                trip = TripRepository(session).get(trip_id)
            if trip is not None:
                driver_id = trip.driver_id
        if driver_id is None:
            raise ValidationError(
                "SOS alert needs a driver or a trip with an assigned driver",
                details={"trip_id": trip_id},
            )

        record = self._append(
            SafetyRecordKind.SOS,
            driver_id,
            f"SOS Alert at {location}: {description}",
            Severity.HIGH,
            reported_by,
            trip_id,
        )
        logger.warning("SOS alert %s raised for driver %s", record.record_id, driver_id)
        return record

    def list_safety_records(
        self, driver_id: str, kind: SafetyRecordKind | None = None
    ) -> list[SafetyRecordEntry]:
        with self._session_factory() as session, transaction(session):
            rows = SafetyRecordRepository(session).list_for_driver(
                driver_id, kind.value if kind else None
            )
            return [_to_entry(row) for row in rows]

    def _append(
        self,
        kind: SafetyRecordKind,
        driver_id: str,
        description: str,
        severity: Severity | str,
        reported_by: str | None,
        trip_id: str | None,
    ) -> SafetyRecordEntry:
        try:
            severity = Severity(severity)
        except ValueError as e:
            raise ValidationError(
                f"Unknown severity: {severity}", details={"severity": str(severity)}
            ) from e
        if not description.strip():
            raise ValidationError("Description must not be empty")

        with self._session_factory() as session, transaction(session):
            self._require_driver(session, driver_id)
            row = SafetyRecordRepository(session).append(
                record_id=str(uuid.uuid4()),
                driver_id=driver_id,
                kind=kind.value,
                severity=severity.value,
                description=description,
                created_at=self._clock(),
                trip_id=trip_id,
                reported_by=reported_by,
            )
            entry = _to_entry(row)

        logger.info("Recorded %s %s for driver %s", kind.value, entry.record_id, driver_id)
        return entry

    def _assess(self, session: Session, driver_id: str, now: datetime) -> SafetyAssessment:
        trips = TripRepository(session)
        records = SafetyRecordRepository(session)
        average_rating, _ = trips.driver_rating_stats(driver_id)
        inputs = SafetyInputs(
            total_rides=trips.count_completed_by_driver(driver_id),
            average_rating=average_rating,
            incident_dates=_dates(
                records.list_for_driver(driver_id, SafetyRecordKind.INCIDENT.value)
            ),
            complaint_dates=_dates(
                records.list_for_driver(driver_id, SafetyRecordKind.COMPLAINT.value)
            ),
        )
        return evaluate_safety_badge(inputs, now)

    @staticmethod
    def _require_driver(session: Session, driver_id: str) -> DriverPresenceRecord:
        driver = DriverPresenceRepository(session).get(driver_id)
        if driver is None:
            raise DriverNotFound(driver_id)
        return driver


def _dates(rows: list[SafetyRecord]) -> list[datetime]:
    return [row.created_at for row in rows]


def _to_entry(row: SafetyRecord) -> SafetyRecordEntry:
    return SafetyRecordEntry(
        record_id=row.record_id,
        driver_id=row.driver_id,
        kind=SafetyRecordKind(row.kind),
        severity=Severity(row.severity),
        trip_id=row.trip_id,
        description=row.description,
        reported_by=row.reported_by,
        status=RecordStatus(row.status),
        created_at=row.created_at,
    )
