"""Discount verification for senior and PWD passengers."""

from .models import DiscountStatus, DiscountVerificationStatus, check_discount_eligibility
from .service import DiscountEligibilityService, discount_status

__all__ = [
    "DiscountEligibilityService",
    "DiscountStatus",
    "DiscountVerificationStatus",
    "check_discount_eligibility",
    "discount_status",
]
