"""Favorite location repository for CRUD operations."""

from datetime import datetime
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..schema import FavoriteLocation


class FavoriteLocationRepository:
    """Repository for per-owner saved places."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def create(
        self,
        favorite_id: str,
        owner_id: str,
        label: str,
        address: str,
        latitude: float,
        longitude: float,
        icon: str,
        created_at: datetime,
    ) -> FavoriteLocation:
        favorite = FavoriteLocation(
            favorite_id=favorite_id,
            owner_id=owner_id,
            label=label,
            address=address,
            latitude=latitude,
            longitude=longitude,
            icon=icon,
            created_at=created_at,
        )
        self.session.add(favorite)
        self.session.flush()
        return favorite

    def get(self, owner_id: str, favorite_id: str) -> FavoriteLocation | None:
        favorite = self.session.get(FavoriteLocation, favorite_id)
        if favorite is None or favorite.owner_id != owner_id:
            return None
        return favorite

    def list_for_owner(self, owner_id: str) -> list[FavoriteLocation]:
        """Favorites for an owner, newest first."""
        stmt = (
            select(FavoriteLocation)
            .where(FavoriteLocation.owner_id == owner_id)
            .order_by(FavoriteLocation.created_at.desc())
        )
        result = self.session.execute(stmt)
        return list(result.scalars().all())

    def update(self, owner_id: str, favorite_id: str, **fields: Any) -> FavoriteLocation | None:
        favorite = self.get(owner_id, favorite_id)
        if favorite is None:
            return None
        for name, value in fields.items():
            setattr(favorite, name, value)
        self.session.flush()
        return favorite

    def delete(self, owner_id: str, favorite_id: str) -> bool:
        result: Any = self.session.execute(
            delete(FavoriteLocation).where(
                FavoriteLocation.favorite_id == favorite_id,
                FavoriteLocation.owner_id == owner_id,
            )
        )
        return int(result.rowcount or 0) == 1
