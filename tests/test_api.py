"""
HTTP smoke tests through the Flask test client.
"""

from sqlalchemy import text

from parkshare.extensions import db
from parkshare.services import BookingService

from conftest import TIERED

START = "2030-06-01T10:00:00Z"
END = "2030-06-01T11:30:00Z"


def create(client, listing_id, plate="KA01AB1234", start=START, end=END):
    return client.post(
        "/api/v1/bookings",
        json={"listing_id": listing_id, "vehicle_plate": plate, "start_time": start, "end_time": end},
    )


def test_create_and_read_booking(client, make_listing):
    listing = make_listing()
    res = create(client, listing.id)

    assert res.status_code == 201
    body = res.get_json()
    assert body["status"] == "approved"
    assert body["total_price_cents"] == 2100
    assert body["total_price"] == "21.00"

    res = client.get(f"/api/v1/bookings/{body['id']}")
    assert res.status_code == 200
    assert res.get_json()["vehicle_plate"] == "KA01AB1234"

    events = client.get(f"/api/v1/bookings/{body['id']}/events").get_json()
    assert events[0]["seq"] == 1
    assert events[0]["payload"]["to"] == "approved"


def test_overlapping_request_returns_409_with_conflicts(client, make_listing):
    listing = make_listing()
    first = create(client, listing.id).get_json()

    res = create(client, listing.id, plate="ka-01-ab-1234", start="2030-06-01T11:00:00Z", end="2030-06-01T12:00:00Z")

    assert res.status_code == 409
    body = res.get_json()
    assert body["conflicts"][0]["id"] == first["id"]
    assert "error" in body


def test_bad_input_is_rejected(client, make_listing):
    listing = make_listing()
    assert create(client, listing.id, start=None).status_code == 400
    assert create(client, listing.id, start="yesterday").status_code == 400
    assert create(client, 9999).status_code == 404
    assert client.get("/api/v1/bookings/9999").status_code == 404


def test_epoch_milliseconds_are_accepted(client, make_listing):
    listing = make_listing()
    start_ms = 1906538400000  # 2030-06-01T10:00:00Z
    res = create(client, listing.id, start=start_ms, end=start_ms + 90 * 60 * 1000)
    assert res.status_code == 201
    assert res.get_json()["start_time"] == "2030-06-01T10:00:00+00:00"


def test_owner_actions(client, make_listing):
    manual = make_listing(approval_mode="manual")
    booking_id = create(client, manual.id).get_json()["id"]

    res = client.post(f"/api/v1/bookings/{booking_id}/approve")
    assert res.status_code == 200
    assert res.get_json()["status"] == "approved"

    res = client.post(f"/api/v1/bookings/{booking_id}/approve")
    assert res.status_code == 409

    res = client.post(f"/api/v1/bookings/{booking_id}/extend", json={"end_time": "2030-06-01T12:15:00Z"})
    assert res.get_json()["total_price_cents"] == 2950

    res = client.post(f"/api/v1/bookings/{booking_id}/finish")
    assert res.status_code == 409

    res = client.post(f"/api/v1/bookings/{booking_id}/cancel", json={"reason": "Plans changed"})
    assert res.get_json()["status"] == "canceled"

    other = create(client, manual.id, plate="MH12ZZ9999").get_json()["id"]
    res = client.post(f"/api/v1/bookings/{other}/reject", json={"reason": "Blocked driveway"})
    assert res.get_json()["status"] == "rejected"


def test_quote_for_ad_hoc_table(client):
    res = client.post("/api/v1/pricing/quote", json={"duration_ms": 1.5 * 3600 * 1000, "pricing": TIERED})

    assert res.status_code == 200
    body = res.get_json()
    assert body["total_price_cents"] == 2100
    assert body["summary"] == "Hour 1: 15.00 + Hour 2: 6.00 (50%) = 21.00"
    assert body["warnings"] == []


def test_quote_with_invalid_table_still_prices_and_warns(client):
    res = client.post(
        "/api/v1/pricing/quote",
        json={"start_time": START, "end_time": END, "pricing": {"hour1": 15, "hour2": "n/a"}},
    )
    body = res.get_json()
    assert res.status_code == 200
    assert body["total_price_cents"] == 2250
    assert len(body["warnings"]) == 1


def test_quote_for_listing(client, make_listing):
    listing = make_listing(pricing=None, price_per_hour=10)
    res = client.post("/api/v1/pricing/quote", json={"listing_id": listing.id, "start_time": START, "end_time": END})
    assert res.get_json()["calculation_method"] == "legacy"
    assert res.get_json()["total_price_cents"] == 2000

    assert client.post("/api/v1/pricing/quote", json={"listing_id": listing.id}).status_code == 400
    assert client.post("/api/v1/pricing/quote", json={}).status_code == 400


def test_validate_pricing(client):
    assert client.post("/api/v1/pricing/validate", json={"pricing": TIERED}).get_json() == {"valid": True}

    res = client.post("/api/v1/pricing/validate", json={"pricing": {"hour1": -1}})
    assert res.status_code == 422
    assert res.get_json()["errors"]


def test_vehicle_endpoints(client, make_listing):
    listing = make_listing()
    booking_id = create(client, listing.id).get_json()["id"]

    res = client.get(
        "/api/v1/vehicles/ka01ab1234/conflicts",
        query_string={"start": "2030-06-01T11:00:00Z", "end": "2030-06-01T13:00:00Z"},
    )
    body = res.get_json()
    assert body["has_conflict"] is True
    assert body["conflicts"][0]["id"] == booking_id

    res = client.get(
        "/api/v1/vehicles/KA01AB1234/conflicts",
        query_string={"start": "2030-06-01T11:30:00Z", "end": "2030-06-01T13:00:00Z"},
    )
    assert res.get_json()["has_conflict"] is False

    bookings = client.get("/api/v1/vehicles/KA01AB1234/bookings").get_json()
    assert [b["id"] for b in bookings] == [booking_id]


def test_commission_endpoints(client, make_listing):
    listing = make_listing(owner_id=3)
    create(client, listing.id)

    body = client.get("/api/v1/commissions/owners/3").get_json()
    assert body["summary"]["count"] == 1
    assert body["summary"]["total_commission_cents"] == 315

    overview = client.get("/api/v1/commissions/overview").get_json()
    assert overview["platform_revenue_cents"] == 315

    assert client.get("/api/v1/commissions/overview?month=13").status_code == 400


def test_job_endpoints(client, make_listing):
    res = client.post("/api/v1/jobs/sweep")
    assert res.status_code == 200
    assert res.get_json()["changed"] == 0

    res = client.post("/api/v1/jobs/payouts")
    assert res.status_code == 200
    assert res.get_json()["message"] == "No payouts to process"

    create(client, make_listing(owner_id=4).id)
    res = client.post("/api/v1/jobs/payouts")
    assert res.get_json()["payouts_created"] == 1

    res = client.get("/api/v1/jobs/health")
    assert res.status_code == 200
    assert res.get_json()["healthy"] is True


def test_quote_refuses_unbounded_durations(client):
    for duration in ("nan", "inf", "-inf", 1e11 * 3600 * 1000):
        res = client.post("/api/v1/pricing/quote", json={"duration_ms": duration, "pricing": {"hour1": 15}})
        assert res.status_code == 400
        assert "error" in res.get_json()

    res = client.post("/api/v1/pricing/quote", json={"duration_ms": 3600 * 1000, "price_per_hour": "nan"})
    assert res.status_code == 400


def test_booking_window_is_capped(app, client, make_listing):
    app.config["MAX_BILLABLE_HOURS"] = 24
    listing = make_listing()

    assert create(client, listing.id, end="2030-06-03T10:00:00Z").status_code == 400

    booking_id = create(client, listing.id).get_json()["id"]
    res = client.post(f"/api/v1/bookings/{booking_id}/extend", json={"end_time": "2030-06-02T12:00:00Z"})
    assert res.status_code == 400
    assert client.get(f"/api/v1/bookings/{booking_id}").get_json()["end_time"] == "2030-06-01T11:30:00+00:00"


def test_concurrent_modification_returns_409(client, make_listing, monkeypatch):
    booking_id = create(client, make_listing(approval_mode="manual").id).get_json()["id"]
    real_can_transition = BookingService.can_transition

    def racing_can_transition(current, target):
        # Another writer bumps the row version after our row was loaded.
        db.session.execute(text("UPDATE bookings SET version_id = version_id + 1 WHERE id = :id"), {"id": booking_id})
        return real_can_transition(current, target)

    monkeypatch.setattr(BookingService, "can_transition", staticmethod(racing_can_transition))
    res = client.post(f"/api/v1/bookings/{booking_id}/approve")

    assert res.status_code == 409
    assert res.get_json() == {"error": "The booking was modified concurrently. Please retry."}
    assert client.get(f"/api/v1/bookings/{booking_id}").get_json()["status"] == "pending"

    monkeypatch.undo()
    assert client.post(f"/api/v1/bookings/{booking_id}/approve").get_json()["status"] == "approved"
