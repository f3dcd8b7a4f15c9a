from typing import Annotated

from fastapi import APIRouter, Query

from trike_dispatch.api.dependencies import LifecycleDep
from trike_dispatch.fare import DiscountType, FareBreakdown

router = APIRouter()


@router.get("/fare", response_model=FareBreakdown)
def quote_fare(
    pickup_latitude: Annotated[float, Query(ge=-90.0, le=90.0)],
    pickup_longitude: Annotated[float, Query(ge=-180.0, le=180.0)],
    dropoff_latitude: Annotated[float, Query(ge=-90.0, le=90.0)],
    dropoff_longitude: Annotated[float, Query(ge=-180.0, le=180.0)],
    lifecycle: LifecycleDep,
    discount_type: DiscountType = DiscountType.NONE,
) -> FareBreakdown:
    """Provisional fare over the great-circle distance."""
    return lifecycle.quote_fare(
        (pickup_latitude, pickup_longitude),
        (dropoff_latitude, dropoff_longitude),
        discount_type,
    )
