"""Append-only safety record log."""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..schema import SafetyRecord


class SafetyRecordRepository:
    """Repository for incident, complaint and SOS records."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(
        self,
        record_id: str,
        driver_id: str,
        kind: str,
        severity: str,
        description: str,
        created_at: datetime,
        trip_id: str | None = None,
        reported_by: str | None = None,
    ) -> SafetyRecord:
        record = SafetyRecord(
            record_id=record_id,
            driver_id=driver_id,
            kind=kind,
            severity=severity,
            trip_id=trip_id,
            description=description,
            reported_by=reported_by,
            status="pending",
            created_at=created_at,
        )
        self.session.add(record)
        self.session.flush()
        return record

    def list_for_driver(self, driver_id: str, kind: str | None = None) -> list[SafetyRecord]:
        """Records for a driver, newest first."""
        stmt = select(SafetyRecord).where(SafetyRecord.driver_id == driver_id)
        if kind is not None:
            stmt = stmt.where(SafetyRecord.kind == kind)
        stmt = stmt.order_by(SafetyRecord.created_at.desc())
        result = self.session.execute(stmt)
        return list(result.scalars().all())

    def count(
        self, driver_id: str, kinds: list[str], since: datetime | None = None
    ) -> int:
        stmt = (
            select(func.count())
            .select_from(SafetyRecord)
            .where(SafetyRecord.driver_id == driver_id, SafetyRecord.kind.in_(kinds))
        )
        if since is not None:
            stmt = stmt.where(SafetyRecord.created_at >= since)
        return self.session.execute(stmt).scalar() or 0

    def last_created_at(self, driver_id: str, kinds: list[str]) -> datetime | None:
        stmt = select(func.max(SafetyRecord.created_at)).where(
            SafetyRecord.driver_id == driver_id, SafetyRecord.kind.in_(kinds)
        )
        return self.session.execute(stmt).scalar()
