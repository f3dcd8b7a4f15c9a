"""Tricycle fare rules: a flat base plus a per-kilometre rate, less any rider discount."""

from decimal import ROUND_HALF_UP, Decimal
from enum import Enum

from pydantic import BaseModel, Field

from trike_dispatch.core.exceptions import ValidationError
from trike_dispatch.settings import FareSettings

_CENT = Decimal("0.01")


class DiscountType(str, Enum):
    """Rider discount eligibility."""

    NONE = "none"
    SENIOR = "senior"
    PWD = "pwd"


DISCOUNTED_TYPES = frozenset({DiscountType.SENIOR, DiscountType.PWD})


def round_money(value: Decimal | float | str) -> Decimal:
    """Round to 2 decimal places, half-up (0.125 -> 0.13)."""
    return Decimal(str(value)).quantize(_CENT, rounding=ROUND_HALF_UP)


class FareBreakdown(BaseModel):
    """Detailed breakdown of fare components, all in 2-decimal currency units."""

    distance_km: float = Field(ge=0)
    discount_type: DiscountType
    base_component: float = Field(ge=0)
    per_km_component: float = Field(ge=0)
    pre_discount_total: float = Field(ge=0)
    discount_amount: float = Field(ge=0)
    final_fare: float = Field(ge=0)


class FareCalculator:
    """Calculates tricycle fares from great-circle distance and discount type."""

    BASE_FARE = Decimal("15.00")
    PER_KM_RATE = Decimal("5.00")
    DISCOUNT_RATE = Decimal("0.20")

    def __init__(self, settings: FareSettings | None = None) -> None:
        if settings is not None:
            self.BASE_FARE = round_money(settings.base_fare)
            self.PER_KM_RATE = round_money(settings.per_km_rate)
            self.DISCOUNT_RATE = Decimal(str(settings.discount_rate))

    def calculate(
        self, distance_km: float, discount_type: DiscountType | str = DiscountType.NONE
    ) -> FareBreakdown:
        """
        Calculate fare for a trip.

        Called once at booking with the estimated distance and once at
        completion with the traveled distance; the two results may differ.
        The base fare is a floor: discounts never take the fare below it.
        """
        if distance_km < 0:
            raise ValidationError(
                "Distance must be non-negative", details={"distance_km": distance_km}
            )
        try:
            discount = DiscountType(discount_type)
        except ValueError as e:
            raise ValidationError(
                f"Unknown discount type: {discount_type}",
                details={"discount_type": str(discount_type)},
            ) from e

        base_component = self.BASE_FARE
        per_km_component = round_money(Decimal(str(distance_km)) * self.PER_KM_RATE)
        pre_discount_total = base_component + per_km_component

        discount_amount = Decimal("0.00")
        if discount in DISCOUNTED_TYPES:
            discount_amount = round_money(pre_discount_total * self.DISCOUNT_RATE)

        final_fare = max(pre_discount_total - discount_amount, base_component)

        return FareBreakdown(
            distance_km=distance_km,
            discount_type=discount,
            base_component=float(base_component),
            per_km_component=float(per_km_component),
            pre_discount_total=float(pre_discount_total),
            discount_amount=float(discount_amount),
            final_fare=float(round_money(final_fare)),
        )


def calculate_fare(
    distance_km: float, discount_type: DiscountType | str = DiscountType.NONE
) -> FareBreakdown:
    """Fare with the default tariff."""
    return FareCalculator().calculate(distance_km, discount_type)
