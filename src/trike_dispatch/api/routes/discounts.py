from fastapi import APIRouter

from trike_dispatch.api.dependencies import DiscountsDep
from trike_dispatch.api.models import RejectDiscountRequest
from trike_dispatch.discounts import DiscountStatus

router = APIRouter()


@router.get("/pending", response_model=list[DiscountStatus])
def pending_requests(discounts: DiscountsDep) -> list[DiscountStatus]:
    """Requests awaiting review, oldest first."""
    return discounts.list_pending()


@router.post("/{passenger_id}/approve", response_model=DiscountStatus)
def approve_discount(passenger_id: str, discounts: DiscountsDep) -> DiscountStatus:
    return discounts.approve(passenger_id)


@router.post("/{passenger_id}/reject", response_model=DiscountStatus)
def reject_discount(
    passenger_id: str, discounts: DiscountsDep, body: RejectDiscountRequest | None = None
) -> DiscountStatus:
    body = body or RejectDiscountRequest()
    return discounts.reject(passenger_id, body.reason)
