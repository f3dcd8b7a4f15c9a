"""Tests for the exception hierarchy."""

import pytest

from trike_dispatch.core.exceptions import (
    ActiveTripExists,
    AlreadyAccepted,
    AlreadyRated,
    DispatchError,
    DriverNotFound,
    DriverUnavailable,
    InvalidTransition,
    NotFoundError,
    PermanentError,
    StateError,
    StoreUnavailableError,
    TransientError,
    TripNotFound,
    ValidationError,
)


@pytest.mark.unit
class TestHierarchy:
    def test_already_accepted_is_invalid_transition(self):
        assert issubclass(AlreadyAccepted, InvalidTransition)
        assert issubclass(AlreadyAccepted, StateError)

    @pytest.mark.parametrize(
        "exc_type", [ActiveTripExists, DriverUnavailable, AlreadyRated, InvalidTransition]
    )
    def test_state_errors_are_permanent(self, exc_type):
        assert issubclass(exc_type, PermanentError)
        assert not issubclass(exc_type, TransientError)

    def test_store_unavailable_is_transient(self):
        assert issubclass(StoreUnavailableError, TransientError)
        assert issubclass(StoreUnavailableError, DispatchError)

    def test_validation_error_is_permanent(self):
        assert issubclass(ValidationError, PermanentError)


@pytest.mark.unit
class TestDetails:
    def test_trip_not_found_details(self):
        exc = TripNotFound("t-9")
        assert isinstance(exc, NotFoundError)
        assert exc.trip_id == "t-9"
        assert exc.details == {"trip_id": "t-9"}
        assert str(exc) == "Trip t-9 not found"

    def test_driver_not_found_details(self):
        exc = DriverNotFound("d-9")
        assert exc.details == {"driver_id": "d-9"}

    def test_details_default_to_empty_dict(self):
        assert DispatchError("boom").details == {}
