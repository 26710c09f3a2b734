from parkshare.constants import BookingStatus
from parkshare.models import Commission
from parkshare.services import BookingService, SweeperService
from parkshare.services import sweeper_service

from conftest import at


def book(listing, plate="KA01AB1234", start=None, end=None, now=None):
    return BookingService.request_booking(
        listing.id, plate, start or at(10), end or at(11, 30), now=now or at(8)
    )


def status_of(booking_id):
    return BookingService.get_booking(booking_id).status


def test_booking_walks_through_its_lifecycle(make_listing):
    booking = book(make_listing())
    assert booking.status == BookingStatus.APPROVED.value

    assert SweeperService.sweep(now=at(9, 59)).changed == 0
    assert status_of(booking.id) == BookingStatus.APPROVED.value

    assert SweeperService.sweep(now=at(10)).changed == 1
    assert status_of(booking.id) == BookingStatus.ACTIVE.value

    assert SweeperService.sweep(now=at(11, 30)).changed == 1
    assert status_of(booking.id) == BookingStatus.COMPLETED.value

    commission = Commission.query.filter_by(booking_id=booking.id).one()
    assert commission.total_price_cents == 2100
    assert commission.commission_cents == 315
    assert commission.net_owner_cents == 1785


def test_sweep_is_idempotent(make_listing):
    booking = book(make_listing())
    SweeperService.sweep(now=at(12))
    events_after_first = len(BookingService.get_booking(booking.id).events)

    second = SweeperService.sweep(now=at(12))

    assert second.changed == 0
    assert second.transitions == 0
    assert len(BookingService.get_booking(booking.id).events) == events_after_first


def test_overdue_booking_is_activated_and_completed_in_one_sweep(make_listing):
    booking = book(make_listing())
    result = SweeperService.sweep(now=at(12))

    assert result.changed == 1
    assert result.transitions == 2
    booking = BookingService.get_booking(booking.id)
    assert [e.payload["to"] for e in booking.events] == ["approved", "active", "completed"]


def test_pending_bookings_wait_for_the_owner(make_listing):
    booking = book(make_listing(approval_mode="manual"))
    assert SweeperService.sweep(now=at(12)).changed == 0
    assert status_of(booking.id) == BookingStatus.PENDING.value


def test_unanswered_request_times_out(app, make_listing):
    app.config["APPROVAL_TIMEOUT_MINUTES"] = 30
    booking = book(make_listing(approval_mode="manual"), now=at(8))

    assert SweeperService.sweep(now=at(8, 20)).changed == 0
    assert SweeperService.sweep(now=at(8, 30)).changed == 1

    booking = BookingService.get_booking(booking.id)
    assert booking.status == BookingStatus.REJECTED.value
    assert booking.events[-1].payload["reason"] == "approval_timeout"


def test_concurrent_sweep_is_skipped(app):
    assert sweeper_service._sweep_guard.acquire(blocking=False)
    try:
        result = SweeperService.sweep(now=at(12))
    finally:
        sweeper_service._sweep_guard.release()
    assert result.skipped


def test_one_failing_booking_does_not_stop_the_sweep(make_listing, monkeypatch):
    listing = make_listing()
    bad_id = book(listing, plate="KA01AB1234").id
    good_id = book(listing, plate="MH12ZZ9999").id
    real_advance = BookingService.advance

    def flaky_advance(booking_id, now):
        if booking_id == bad_id:
            raise RuntimeError("storage hiccup")
        return real_advance(booking_id, now)

    monkeypatch.setattr(BookingService, "advance", staticmethod(flaky_advance))
    result = SweeperService.sweep(now=at(12))

    assert result.failed == [bad_id]
    assert result.changed == 1
    assert status_of(good_id) == BookingStatus.COMPLETED.value
    assert status_of(bad_id) == BookingStatus.APPROVED.value

    monkeypatch.undo()
    assert SweeperService.sweep(now=at(12)).changed == 1
    assert status_of(bad_id) == BookingStatus.COMPLETED.value


def test_last_result_is_kept_for_health_checks(make_listing):
    book(make_listing())
    result = SweeperService.sweep(now=at(10))
    assert SweeperService.last_result is result
    assert result.to_dict()["ran_at"] == at(10).isoformat()
