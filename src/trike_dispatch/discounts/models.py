"""Discount verification models."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel

from trike_dispatch.core.exceptions import ValidationError
from trike_dispatch.fare import DISCOUNTED_TYPES, DiscountType


class DiscountVerificationStatus(str, Enum):
    NONE = "none"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class DiscountStatus(BaseModel):
    """Where a passenger's senior or PWD discount stands."""

    passenger_id: str
    discount_type: DiscountType = DiscountType.NONE
    verification_status: DiscountVerificationStatus = DiscountVerificationStatus.NONE
    requested_at: datetime | None = None
    reviewed_at: datetime | None = None
    rejection_reason: str | None = None

    @property
    def verified_discount(self) -> DiscountType:
        """The discount a booking may claim; NONE until an approval."""
        if self.verification_status == DiscountVerificationStatus.APPROVED:
            return self.discount_type
        return DiscountType.NONE


def check_discount_eligibility(status: DiscountStatus, requested: DiscountType) -> None:
    """Refuse a booking that claims a discount the passenger was not approved for.

    Raises:
        ValidationError: the requested discount is not the verified one
    """
    if requested not in DISCOUNTED_TYPES:
        return
    if status.verified_discount != requested:
        raise ValidationError(
            f"Passenger is not verified for a {requested.value} discount",
            details={
                "passenger_id": status.passenger_id,
                "discount_type": requested.value,
                "verification_status": status.verification_status.value,
            },
        )
