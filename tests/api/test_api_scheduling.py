from datetime import timedelta

import pytest

from tests.conftest import DROPOFF, PICKUP


def _point(coordinate):
    return {"latitude": coordinate[0], "longitude": coordinate[1]}


def _schedule(test_client, clock, passenger_id="p1", hours=2):
    return test_client.post(
        "/scheduled-rides",
        json={
            "passenger_id": passenger_id,
            "pickup": _point(PICKUP),
            "dropoff": _point(DROPOFF),
            "scheduled_at": (clock.now + timedelta(hours=hours)).isoformat(),
            "payment_method": "gcash",
        },
    )


@pytest.mark.unit
def test_schedule_accept_complete(test_client, clock):
    test_client.put("/drivers/d1", json={"profile": {"full_name": "Maria Santos"}})

    created = _schedule(test_client, clock)
    assert created.status_code == 201
    ride = created.json()
    assert ride["status"] == "scheduled"
    assert ride["payment_method"] == "gcash"
    assert ride["estimated_fare"] > 0

    available = test_client.get("/scheduled-rides/available").json()
    assert [r["ride_id"] for r in available] == [ride["ride_id"]]

    accepted = test_client.post(
        f"/scheduled-rides/{ride['ride_id']}/accept", json={"driver_id": "d1"}
    )
    assert accepted.status_code == 200
    assert accepted.json()["driver_id"] == "d1"
    assert test_client.get("/scheduled-rides/available").json() == []

    driver_rides = test_client.get("/drivers/d1/scheduled-rides").json()
    assert [r["ride_id"] for r in driver_rides] == [ride["ride_id"]]

    completed = test_client.post(f"/scheduled-rides/{ride['ride_id']}/complete")
    assert completed.json()["status"] == "completed"
    assert test_client.get(f"/scheduled-rides/{ride['ride_id']}").json()["status"] == "completed"


@pytest.mark.unit
def test_second_accept_conflicts(test_client, clock):
    test_client.put("/drivers/d1", json={"profile": {}})
    test_client.put("/drivers/d2", json={"profile": {}})
    ride_id = _schedule(test_client, clock).json()["ride_id"]
    test_client.post(f"/scheduled-rides/{ride_id}/accept", json={"driver_id": "d1"})

    response = test_client.post(f"/scheduled-rides/{ride_id}/accept", json={"driver_id": "d2"})

    assert response.status_code == 409
    assert response.json()["error"] == "already_accepted"


@pytest.mark.unit
def test_schedule_in_past_rejected(test_client, clock):
    response = _schedule(test_client, clock, hours=-1)

    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.unit
def test_upcoming_and_past_for_passenger(test_client, clock):
    kept = _schedule(test_client, clock, hours=3).json()
    dropped = _schedule(test_client, clock, hours=5).json()
    test_client.post(f"/scheduled-rides/{dropped['ride_id']}/cancel")

    upcoming = test_client.get("/users/p1/scheduled-rides").json()
    past = test_client.get("/users/p1/scheduled-rides", params={"when": "past"}).json()

    assert [r["ride_id"] for r in upcoming] == [kept["ride_id"]]
    assert [r["ride_id"] for r in past] == [dropped["ride_id"]]
    assert past[0]["status"] == "cancelled"


@pytest.mark.unit
def test_unknown_scheduled_ride(test_client):
    response = test_client.get("/scheduled-rides/missing")

    assert response.status_code == 404
    assert response.json()["error"] == "scheduled_ride_not_found"


@pytest.mark.unit
def test_discount_request_and_review(test_client):
    assert test_client.get("/users/p1/discount").json()["verification_status"] == "none"

    requested = test_client.post("/users/p1/discount", json={"discount_type": "senior"})
    assert requested.status_code == 200
    assert requested.json()["verification_status"] == "pending"
    pending = test_client.get("/discounts/pending").json()
    assert [s["passenger_id"] for s in pending] == ["p1"]

    approved = test_client.post("/discounts/p1/approve")
    assert approved.json()["verification_status"] == "approved"
    assert test_client.get("/discounts/pending").json() == []


@pytest.mark.unit
def test_discount_reject_with_reason(test_client):
    test_client.post("/users/p1/discount", json={"discount_type": "pwd"})

    rejected = test_client.post("/discounts/p1/reject", json={"reason": "Expired ID"})

    assert rejected.json()["verification_status"] == "rejected"
    assert rejected.json()["rejection_reason"] == "Expired ID"


@pytest.mark.unit
def test_duplicate_discount_request_conflicts(test_client):
    test_client.post("/users/p1/discount", json={"discount_type": "pwd"})

    response = test_client.post("/users/p1/discount", json={"discount_type": "senior"})

    assert response.status_code == 409
    assert response.json()["error"] == "discount_request_conflict"


@pytest.mark.unit
def test_booking_with_unverified_discount_rejected(test_client):
    body = {
        "passenger_id": "p1",
        "pickup": _point(PICKUP),
        "dropoff": _point(DROPOFF),
        "discount_type": "senior",
    }

    refused = test_client.post("/trips", json=body)
    assert refused.status_code == 422
    assert refused.json()["details"]["verification_status"] == "none"

    test_client.post("/users/p1/discount", json={"discount_type": "senior"})
    test_client.post("/discounts/p1/approve")
    booked = test_client.post("/trips", json=body)
    assert booked.status_code == 201
    assert booked.json()["discount_amount"] > 0


@pytest.mark.unit
def test_driver_earnings(test_client, completed_trip):
    response = test_client.get(f"/drivers/{completed_trip.driver_id}/earnings")

    assert response.status_code == 200
    body = response.json()
    assert body["all_time"] == {"total": completed_trip.fare, "trips": 1}
    assert body["today"]["trips"] == 1


@pytest.mark.unit
def test_earnings_for_unknown_driver(test_client):
    response = test_client.get("/drivers/ghost/earnings")

    assert response.status_code == 404
    assert response.json()["error"] == "driver_not_found"
