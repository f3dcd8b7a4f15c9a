import pytest

from tests.conftest import DROPOFF, PICKUP


def _point(coordinate, address=""):
    return {"latitude": coordinate[0], "longitude": coordinate[1], "address": address}


def _book(test_client, passenger_id="p1", **extra):
    body = {"passenger_id": passenger_id, "pickup": _point(PICKUP), "dropoff": _point(DROPOFF)}
    body.update(extra)
    return test_client.post("/trips", json=body)


def _bring_online(test_client, driver_id, coordinate=PICKUP):
    test_client.put(f"/drivers/{driver_id}", json={"profile": {"full_name": "Juan Dela Cruz"}})
    return test_client.put(
        f"/drivers/{driver_id}/presence",
        json={"latitude": coordinate[0], "longitude": coordinate[1]},
    )


@pytest.mark.unit
def test_create_trip(test_client):
    """Booking starts the search and quotes the fare."""
    response = _book(test_client)

    assert response.status_code == 201
    trip = response.json()
    assert trip["status"] == "searching"
    assert trip["passenger_id"] == "p1"
    assert trip["estimated_fare"] > trip["base_fare"]


@pytest.mark.unit
def test_create_trip_pending_then_begin_matching(test_client):
    trip = _book(test_client, begin_search=False).json()
    assert trip["status"] == "pending"

    response = test_client.post(f"/trips/{trip['trip_id']}/begin-matching")

    assert response.status_code == 200
    assert response.json()["status"] == "searching"


@pytest.mark.unit
def test_create_trip_missing_dropoff(test_client):
    response = test_client.post(
        "/trips", json={"passenger_id": "p1", "pickup": _point(PICKUP)}
    )

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.unit
def test_create_trip_from_favorites(test_client):
    home = test_client.post(
        "/users/p1/favorites",
        json={"label": "Home", "address": "Quiapo", "latitude": PICKUP[0], "longitude": PICKUP[1]},
    ).json()
    work = test_client.post(
        "/users/p1/favorites",
        json={
            "label": "Work",
            "latitude": DROPOFF[0],
            "longitude": DROPOFF[1],
            "icon": "briefcase",
        },
    ).json()

    response = test_client.post(
        "/trips",
        json={
            "passenger_id": "p1",
            "pickup_favorite_id": home["favorite_id"],
            "dropoff_favorite_id": work["favorite_id"],
        },
    )

    assert response.status_code == 201
    assert response.json()["pickup"]["address"] == "Quiapo"


@pytest.mark.unit
def test_create_trip_with_someone_elses_favorite(test_client):
    home = test_client.post(
        "/users/p2/favorites",
        json={"label": "Home", "latitude": PICKUP[0], "longitude": PICKUP[1]},
    ).json()

    response = test_client.post(
        "/trips",
        json={
            "passenger_id": "p1",
            "pickup_favorite_id": home["favorite_id"],
            "dropoff": _point(DROPOFF),
        },
    )

    assert response.status_code == 404
    assert response.json()["error"] == "favorite_not_found"


@pytest.mark.unit
def test_second_active_trip_rejected(test_client):
    _book(test_client)

    response = _book(test_client)

    assert response.status_code == 409
    assert response.json()["error"] == "active_trip_exists"


@pytest.mark.unit
def test_get_unknown_trip(test_client):
    response = test_client.get("/trips/missing")

    assert response.status_code == 404
    body = response.json()
    assert body["error"] == "trip_not_found"
    assert body["details"] == {"trip_id": "missing"}
    assert body["retryable"] is False


@pytest.mark.unit
def test_search_with_no_drivers_keeps_searching(test_client):
    trip = _book(test_client).json()

    response = test_client.post(f"/trips/{trip['trip_id']}/search")

    assert response.status_code == 200
    assert response.json() == []
    assert test_client.get(f"/trips/{trip['trip_id']}").json()["status"] == "searching"


@pytest.mark.unit
def test_full_ride(test_client, mock_notifier):
    """Search, accept, arrive, start, complete and rate over HTTP."""
    _bring_online(test_client, "d1")
    trip_id = _book(test_client).json()["trip_id"]

    candidates = test_client.post(f"/trips/{trip_id}/search").json()
    assert [c["driver_id"] for c in candidates] == ["d1"]
    assert candidates[0]["full_name"] == "Juan Dela Cruz"
    assert candidates[0]["safety_badge"] == "yellow"

    accepted = test_client.post(f"/trips/{trip_id}/accept", json={"driver_id": "d1"})
    assert accepted.status_code == 200
    assert accepted.json()["driver_id"] == "d1"

    assert test_client.post(f"/trips/{trip_id}/arrive").json()["status"] == "arrived"
    assert test_client.post(f"/trips/{trip_id}/start").json()["status"] == "in_progress"

    fare = test_client.post(f"/trips/{trip_id}/complete", json={"final_distance_km": 4.0})
    assert fare.status_code == 200
    assert fare.json()["final_fare"] == 35.0

    rated = test_client.post(
        f"/trips/{trip_id}/rate", json={"rater_role": "passenger", "rating": 5}
    )
    assert rated.status_code == 200
    assert rated.json()["rating_for_driver"] == 5

    history = test_client.get("/users/d1/trips", params={"role": "driver"}).json()
    assert [t["trip_id"] for t in history] == [trip_id]
    assert mock_notifier.send.called


@pytest.mark.unit
def test_second_driver_gets_already_accepted(test_client):
    _bring_online(test_client, "d1")
    _bring_online(test_client, "d2")
    trip_id = _book(test_client).json()["trip_id"]
    test_client.post(f"/trips/{trip_id}/search")

    assert test_client.post(f"/trips/{trip_id}/accept", json={"driver_id": "d1"}).status_code == 200
    response = test_client.post(f"/trips/{trip_id}/accept", json={"driver_id": "d2"})

    assert response.status_code == 409
    assert response.json()["error"] == "already_accepted"


@pytest.mark.unit
def test_out_of_order_transition(test_client):
    trip_id = _book(test_client).json()["trip_id"]

    response = test_client.post(f"/trips/{trip_id}/start")

    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"


@pytest.mark.unit
def test_cancel_and_active_trip(test_client):
    trip_id = _book(test_client).json()["trip_id"]
    assert test_client.get("/users/p1/active-trip").json()["trip_id"] == trip_id

    response = test_client.post(
        f"/trips/{trip_id}/cancel", json={"cancelled_by": "passenger", "reason": "changed plans"}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "cancelled"
    assert test_client.get("/users/p1/active-trip").json() is None


@pytest.mark.unit
def test_rating_out_of_range(test_client, completed_trip):
    response = test_client.post(
        f"/trips/{completed_trip.trip_id}/rate", json={"rater_role": "driver", "rating": 6}
    )

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.unit
def test_open_trips(test_client):
    first = _book(test_client, passenger_id="p1").json()
    second = _book(test_client, passenger_id="p2").json()

    response = test_client.get("/trips/open")

    assert response.status_code == 200
    assert {t["trip_id"] for t in response.json()} == {first["trip_id"], second["trip_id"]}
