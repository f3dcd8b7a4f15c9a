"""Per-owner saved places used as pickup and dropoff sources."""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime

from sqlalchemy.orm import Session, sessionmaker

from trike_dispatch.core.exceptions import FavoriteNotFound
from trike_dispatch.db.repositories import FavoriteLocationRepository
from trike_dispatch.db.schema import FavoriteLocation as FavoriteLocationRow
from trike_dispatch.db.transaction import transaction
from trike_dispatch.db.utils import utc_now
from trike_dispatch.trip import Location

from .models import FavoriteIcon, FavoriteLocation, FavoriteLocationInput, FavoriteLocationUpdate

logger = logging.getLogger(__name__)


class FavoriteLocationService:
    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock

    def save(self, owner_id: str, favorite: FavoriteLocationInput) -> FavoriteLocation:
        with self._session_factory() as session, transaction(session):
            row = FavoriteLocationRepository(session).create(
                favorite_id=str(uuid.uuid4()),
                owner_id=owner_id,
                label=favorite.label,
                address=favorite.address,
                latitude=favorite.latitude,
                longitude=favorite.longitude,
                icon=favorite.icon.value,
                created_at=self._clock(),
            )
            saved = _to_domain(row)
        logger.info("Saved favorite %s for %s", saved.favorite_id, owner_id)
        return saved

    def list_favorites(self, owner_id: str) -> list[FavoriteLocation]:
        """Favorites for an owner, newest first."""
        with self._session_factory() as session, transaction(session):
            rows = FavoriteLocationRepository(session).list_for_owner(owner_id)
            return [_to_domain(row) for row in rows]

    def get(self, owner_id: str, favorite_id: str) -> FavoriteLocation:
        with self._session_factory() as session, transaction(session):
            row = FavoriteLocationRepository(session).get(owner_id, favorite_id)
            if row is None:
                raise FavoriteNotFound(favorite_id)
            return _to_domain(row)

    def update(
        self, owner_id: str, favorite_id: str, changes: FavoriteLocationUpdate
    ) -> FavoriteLocation:
        fields = changes.model_dump(exclude_none=True)
        if "icon" in fields:
            fields["icon"] = FavoriteIcon(fields["icon"]).value
        with self._session_factory() as session, transaction(session):
            row = FavoriteLocationRepository(session).update(owner_id, favorite_id, **fields)
            if row is None:
                raise FavoriteNotFound(favorite_id)
            return _to_domain(row)

    def delete(self, owner_id: str, favorite_id: str) -> None:
        with self._session_factory() as session, transaction(session):
            if not FavoriteLocationRepository(session).delete(owner_id, favorite_id):
                raise FavoriteNotFound(favorite_id)

    def resolve(self, owner_id: str, favorite_id: str) -> Location:
        """The saved place as a booking coordinate."""
        return self.get(owner_id, favorite_id).to_location()


def _to_domain(row: FavoriteLocationRow) -> FavoriteLocation:
    return FavoriteLocation(
        favorite_id=row.favorite_id,
        owner_id=row.owner_id,
        label=row.label,
        address=row.address,
        latitude=row.latitude,
        longitude=row.longitude,
        icon=FavoriteIcon(row.icon),
        created_at=row.created_at,
    )
