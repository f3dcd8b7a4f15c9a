"""Transaction utilities for explicit transaction boundaries.

This module provides context managers for managing database transactions
with automatic commit/rollback semantics to prevent partial state updates.
"""

from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from trike_dispatch.core.exceptions import StoreUnavailableError


@contextmanager
def transaction(session: Session) -> Generator[Session]:
    """Context manager for explicit transaction boundaries.

    Commits on successful completion, rolls back on any exception.
    Connectivity failures (database locked past the busy timeout,
    connection dropped) are re-raised as StoreUnavailableError so callers
    can tell "nothing happened, try again" apart from state conflicts.

    Example:
        with transaction(session):
            trips.transition(trip_id, TripStatus.ARRIVED, TripStatus.IN_PROGRESS)
            presence.set_occupancy(driver_id, DriverOccupancy.AVAILABLE)
        # Automatic commit if no exception, rollback otherwise

    Args:
        session: SQLAlchemy session to manage

    Yields:
        The same session for use within the context

    Raises:
        StoreUnavailableError: the store could not be reached or locked
        Any other exception raised within the context (after rollback)
    """
    try:
        yield session
        session.commit()
    except OperationalError as e:
        session.rollback()
        raise StoreUnavailableError(
            "Record store unavailable", details={"error": str(e.orig)}
        ) from e
    except DBAPIError as e:
        session.rollback()
        if e.connection_invalidated:
            raise StoreUnavailableError(
                "Record store connection lost", details={"error": str(e.orig)}
            ) from e
        raise
    except Exception:
        session.rollback()
        raise

