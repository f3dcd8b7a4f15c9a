"""Senior and PWD discount requests and their review."""

import logging
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from trike_dispatch.core.exceptions import DiscountRequestConflict, ValidationError
from trike_dispatch.db.repositories import PassengerRepository
from trike_dispatch.db.schema import Passenger
from trike_dispatch.db.transaction import transaction
from trike_dispatch.db.utils import utc_now
from trike_dispatch.fare import DISCOUNTED_TYPES, DiscountType

from .models import DiscountStatus, DiscountVerificationStatus

logger = logging.getLogger(__name__)

# A passenger may (re)apply only from these statuses.
_REQUESTABLE = [DiscountVerificationStatus.NONE.value, DiscountVerificationStatus.REJECTED.value]


class DiscountEligibilityService:
    """Tracks which discount, if any, a passenger has been verified for.

    A request moves the passenger to pending; an administrator then
    approves or rejects it. Bookings may only claim an approved discount.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def get_status(self, passenger_id: str) -> DiscountStatus:
        with self._session_factory() as session, transaction(session):
            return discount_status(PassengerRepository(session), passenger_id)

    def request(self, passenger_id: str, discount_type: DiscountType | str) -> DiscountStatus:
        """Submit a senior or PWD discount for verification.

        Raises:
            ValidationError: the type is not a discount
            DiscountRequestConflict: a request is already pending or approved
        """
        try:
            requested = DiscountType(discount_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown discount type: {discount_type}",
                details={"discount_type": str(discount_type)},
            ) from e
        if requested not in DISCOUNTED_TYPES:
            raise ValidationError(
                "Only senior and pwd discounts can be requested",
                details={"discount_type": requested.value},
            )

        with self._session_factory() as session, transaction(session):
            passengers = PassengerRepository(session)
            if not passengers.request_discount(
                passenger_id, requested.value, _REQUESTABLE, self._clock()
            ):
                current = discount_status(passengers, passenger_id)
                raise DiscountRequestConflict(
                    f"Discount already {current.verification_status.value}",
                    details={
                        "passenger_id": passenger_id,
                        "verification_status": current.verification_status.value,
                    },
                )
            status = discount_status(passengers, passenger_id)
        logger.info("Discount %s requested by %s", requested.value, passenger_id)
        return status

    def approve(self, passenger_id: str) -> DiscountStatus:
        return self._review(passenger_id, DiscountVerificationStatus.APPROVED, None)

    def reject(self, passenger_id: str, reason: str | None = None) -> DiscountStatus:
        return self._review(passenger_id, DiscountVerificationStatus.REJECTED, reason)

    def list_pending(self) -> list[DiscountStatus]:
        """Requests awaiting review, oldest first."""
        with self._session_factory() as session, transaction(session):
            rows = PassengerRepository(session).list_pending_discounts()
            return [_to_status(row) for row in rows]

    def _review(
        self,
        passenger_id: str,
        outcome: DiscountVerificationStatus,
        reason: str | None,
    ) -> DiscountStatus:
        with self._session_factory() as session, transaction(session):
            passengers = PassengerRepository(session)
            if not passengers.review_discount(passenger_id, outcome.value, self._clock(), reason):
                current = discount_status(passengers, passenger_id)
                raise DiscountRequestConflict(
                    f"No pending discount request for {passenger_id}",
                    details={
                        "passenger_id": passenger_id,
                        "verification_status": current.verification_status.value,
                    },
                )
            status = discount_status(passengers, passenger_id)
        logger.info("Discount for %s %s", passenger_id, outcome.value)
        return status


def discount_status(passengers: PassengerRepository, passenger_id: str) -> DiscountStatus:
    """Current discount status; passengers without a row have none."""
    row = passengers.get(passenger_id)
    if row is None:
        return DiscountStatus(passenger_id=passenger_id)
    return _to_status(row)


def _to_status(row: Passenger) -> DiscountStatus:
    return DiscountStatus(
        passenger_id=row.passenger_id,
        discount_type=DiscountType(row.discount_type),
        verification_status=DiscountVerificationStatus(row.discount_status),
        requested_at=row.discount_requested_at,
        reviewed_at=row.discount_reviewed_at,
        rejection_reason=row.discount_rejection_reason,
    )
