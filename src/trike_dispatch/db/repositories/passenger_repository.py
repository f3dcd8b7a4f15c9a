"""Passenger repository for rating aggregates and discount verification."""

from datetime import datetime
from typing import Any

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..schema import Passenger


class PassengerRepository:
    """Repository for passenger rows, created on first rating or discount request."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, passenger_id: str) -> Passenger | None:
        return self.session.get(Passenger, passenger_id, populate_existing=True)

    def get_or_create(self, passenger_id: str) -> Passenger:
        passenger = self.get(passenger_id)
        if passenger is None:
            passenger = Passenger(passenger_id=passenger_id)
            self.session.add(passenger)
            self.session.flush()
        return passenger

    def update_rating(
        self, passenger_id: str, average_rating: float | None, rating_count: int
    ) -> None:
        passenger = self.get_or_create(passenger_id)
        passenger.average_rating = average_rating
        passenger.rating_count = rating_count

    def request_discount(
        self,
        passenger_id: str,
        discount_type: str,
        expected_statuses: list[str],
        requested_at: datetime,
    ) -> bool:
        """Move a passenger's discount to pending if it is in an expected status."""
        self.get_or_create(passenger_id)
        result = self.session.execute(
            update(Passenger)
            .where(
                Passenger.passenger_id == passenger_id,
                Passenger.discount_status.in_(expected_statuses),
            )
            .values(
                discount_type=discount_type,
                discount_status="pending",
                discount_requested_at=requested_at,
                discount_reviewed_at=None,
                discount_rejection_reason=None,
            )
            .execution_options(synchronize_session=False)
        )
        return _rowcount(result) == 1

    def review_discount(
        self,
        passenger_id: str,
        new_status: str,
        reviewed_at: datetime,
        rejection_reason: str | None = None,
    ) -> bool:
        """Settle a pending discount request."""
        result = self.session.execute(
            update(Passenger)
            .where(
                Passenger.passenger_id == passenger_id,
                Passenger.discount_status == "pending",
            )
            .values(
                discount_status=new_status,
                discount_reviewed_at=reviewed_at,
                discount_rejection_reason=rejection_reason,
            )
            .execution_options(synchronize_session=False)
        )
        return _rowcount(result) == 1

    def list_pending_discounts(self) -> list[Passenger]:
        """Pending discount requests, oldest first."""
        stmt = (
            select(Passenger)
            .where(Passenger.discount_status == "pending")
            .order_by(Passenger.discount_requested_at.asc())
        )
        return list(self.session.execute(stmt).scalars().all())


def _rowcount(result: Any) -> int:
    return int(result.rowcount or 0)
