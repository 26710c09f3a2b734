from datetime import timedelta

from flask import current_app

from parkshare.constants import ApprovalMode, BookingStatus, EventType, PricingMode
from parkshare.errors import AppError, ConflictError, InvalidTransitionError, NotFoundError
from parkshare.extensions import db
from parkshare.models import Booking, BookingEvent
from parkshare.services.commission_service import CommissionService
from parkshare.services.conflict_service import ConflictService
from parkshare.services.listing_policy_service import ListingPolicyService
from parkshare.services.pricing_service import PricingService
from parkshare.utils.clock import as_utc, duration_ms, utcnow
from parkshare.utils.db import unit_of_work

BOOKING_TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.APPROVED, BookingStatus.REJECTED, BookingStatus.CANCELED},
    BookingStatus.APPROVED: {BookingStatus.ACTIVE, BookingStatus.CANCELED},
    BookingStatus.ACTIVE: {BookingStatus.COMPLETED},
    BookingStatus.COMPLETED: set(),
    BookingStatus.REJECTED: set(),
    BookingStatus.CANCELED: set(),
}


class BookingService:
    @staticmethod
    def get_booking(booking_id):
        booking = db.session.get(Booking, booking_id)
        if not booking:
            raise NotFoundError("Booking not found.")
        return booking

    @staticmethod
    def _lock(booking_id):
        booking = db.session.get(Booking, booking_id, with_for_update=True, populate_existing=True)
        if not booking:
            raise NotFoundError("Booking not found.")
        return booking

    @staticmethod
    def can_transition(current, target):
        return BookingStatus(target) in BOOKING_TRANSITIONS[BookingStatus(current)]

    @staticmethod
    def _append_event(booking, event_type, payload, now):
        booking.events.append(
            BookingEvent(seq=len(booking.events) + 1, event_type=event_type, occurred_at=now, payload=payload)
        )
        booking.touch(now)

    @staticmethod
    def _transition(booking, target, now, **payload):
        current = booking.status_enum
        if not BookingService.can_transition(current, target):
            raise InvalidTransitionError(current.value, target.value)
        booking.status = target.value
        BookingService._append_event(
            booking,
            EventType.STATUS_CHANGE,
            {"from": current.value, "to": target.value, **payload},
            now,
        )
        current_app.logger.info("Booking #%s: %s -> %s", booking.id, current.value, target.value)

    @staticmethod
    def _price_window(booking, start, end):
        config = current_app.config
        return PricingService.calculate_price(
            duration_ms(start, end),
            booking.pricing,
            booking.price_per_hour,
            mode=PricingMode(booking.pricing_mode),
            min_billable_hours=config.get("MIN_BILLABLE_HOURS", 1),
            default_rate=config.get("DEFAULT_HOURLY_RATE", 10),
            max_billable_hours=config.get("MAX_BILLABLE_HOURS"),
        )

    @staticmethod
    def _apply_price(booking, price):
        booking.total_price_cents = price.total_price_cents
        booking.pricing_method = price.calculation_method

    @staticmethod
    def _raise_on_conflict(vehicle_plate, start, end, exclude_booking_id=None):
        result = ConflictService.check_vehicle_conflicts(vehicle_plate, start, end, exclude_booking_id)
        if result.has_conflict:
            raise ConflictError(result.message, result.describe())

    @staticmethod
    def request_booking(listing_id, vehicle_plate, start, end, renter_id=None, now=None):
        now = as_utc(now) or utcnow()
        plate = ConflictService.normalize_identity(vehicle_plate)
        if not plate:
            raise AppError("Vehicle plate is required.", 400)
        if start is None or end is None:
            raise AppError("Start and end times are required.", 400)
        start, end = as_utc(start), as_utc(end)
        if end <= start:
            raise AppError("End time must be after start time.", 400)

        policy = ListingPolicyService.resolve(listing_id, require_active=True)
        BookingService._raise_on_conflict(plate, start, end)

        options = PricingService.configured_options()
        price = PricingService.calculate_price(
            duration_ms(start, end), policy.tiered_pricing, policy.legacy_hourly_rate, **options
        )
        initial = BookingStatus.PENDING if policy.approval_mode == ApprovalMode.MANUAL else BookingStatus.APPROVED

        booking = Booking(
            listing_id=policy.listing_id,
            owner_id=policy.owner_id,
            renter_id=renter_id,
            vehicle_plate=plate,
            status=initial.value,
            start_time=start,
            end_time=end,
            price_per_hour=policy.legacy_hourly_rate,
            pricing=policy.tiered_pricing,
            pricing_mode=options["mode"].value,
            pricing_method=price.calculation_method,
            total_price_cents=price.total_price_cents,
            created_at=now,
            updated_at=now,
        )
        timeout = current_app.config.get("APPROVAL_TIMEOUT_MINUTES")
        if initial == BookingStatus.PENDING and timeout:
            booking.approval_expires_at = now + timedelta(minutes=timeout)

        with unit_of_work():
            db.session.add(booking)
            db.session.flush()
            BookingService._append_event(
                booking,
                EventType.STATUS_CHANGE,
                {
                    "from": None,
                    "to": initial.value,
                    "approval_mode": policy.approval_mode.value,
                    "total_price_cents": price.total_price_cents,
                },
                now,
            )
            if initial == BookingStatus.APPROVED:
                CommissionService.on_confirmed(booking, now=now)

        current_app.logger.info(
            "Booking #%s requested for listing #%s by %s (%s, %s cents)",
            booking.id,
            booking.listing_id,
            plate,
            initial.value,
            booking.total_price_cents,
        )
        return booking

    @staticmethod
    def approve(booking_id, now=None):
        now = as_utc(now) or utcnow()
        with unit_of_work():
            booking = BookingService._lock(booking_id)
            BookingService._transition(booking, BookingStatus.APPROVED, now)
            booking.approval_expires_at = None
            CommissionService.on_confirmed(booking, now=now)
        return booking

    @staticmethod
    def reject(booking_id, reason=None, now=None):
        now = as_utc(now) or utcnow()
        with unit_of_work():
            booking = BookingService._lock(booking_id)
            payload = {"reason": reason} if reason else {}
            BookingService._transition(booking, BookingStatus.REJECTED, now, **payload)
        return booking

    @staticmethod
    def cancel(booking_id, reason=None, now=None):
        now = as_utc(now) or utcnow()
        with unit_of_work():
            booking = BookingService._lock(booking_id)
            if not BookingService.can_transition(booking.status, BookingStatus.CANCELED):
                raise InvalidTransitionError(booking.status, BookingStatus.CANCELED.value)
            CommissionService.on_canceled(booking.id)
            payload = {"reason": reason} if reason else {}
            BookingService._transition(booking, BookingStatus.CANCELED, now, **payload)
        return booking

    @staticmethod
    def extend(booking_id, new_end, now=None):
        now = as_utc(now) or utcnow()
        new_end = as_utc(new_end)
        with unit_of_work():
            booking = BookingService._lock(booking_id)
            if booking.status_enum.is_terminal:
                raise InvalidTransitionError(booking.status, "extended")
            previous_end = as_utc(booking.end_time)
            if new_end is None or new_end <= previous_end:
                raise AppError("New end time must be after the current end time.", 400)

            BookingService._raise_on_conflict(booking.vehicle_plate, previous_end, new_end, booking.id)

            previous_total = booking.total_price_cents
            price = BookingService._price_window(booking, booking.start_time, new_end)
            booking.end_time = new_end
            BookingService._apply_price(booking, price)
            BookingService._append_event(
                booking,
                EventType.EXTEND,
                {
                    "previous_end": previous_end.isoformat(),
                    "new_end": new_end.isoformat(),
                    "previous_total_price_cents": previous_total,
                    "total_price_cents": price.total_price_cents,
                },
                now,
            )
            CommissionService.on_repriced(booking, now=now)
        current_app.logger.info("Booking #%s extended to %s", booking.id, new_end.isoformat())
        return booking

    @staticmethod
    def finish_now(booking_id, now=None):
        now = as_utc(now) or utcnow()
        with unit_of_work():
            booking = BookingService._lock(booking_id)
            if booking.status_enum != BookingStatus.ACTIVE:
                raise InvalidTransitionError(booking.status, BookingStatus.COMPLETED.value)
            start, previous_end = as_utc(booking.start_time), as_utc(booking.end_time)
            ended_at = min(now, previous_end)
            if ended_at <= start:
                raise AppError("A booking cannot finish before it starts.", 400)

            price = BookingService._price_window(booking, start, ended_at)
            booking.end_time = ended_at
            booking.status = BookingStatus.COMPLETED.value
            BookingService._apply_price(booking, price)
            BookingService._append_event(
                booking,
                EventType.FINISH_NOW,
                {
                    "ended_at": ended_at.isoformat(),
                    "previous_end": previous_end.isoformat(),
                    "total_price_cents": price.total_price_cents,
                },
                now,
            )
            CommissionService.on_repriced(booking, now=now)
        current_app.logger.info("Booking #%s finished early at %s", booking.id, ended_at.isoformat())
        return booking

    @staticmethod
    def _complete(booking, now):
        # Final price comes from the stored snapshot, never from the listing.
        price = BookingService._price_window(booking, booking.start_time, booking.end_time)
        BookingService._apply_price(booking, price)
        BookingService._transition(
            booking, BookingStatus.COMPLETED, now, total_price_cents=price.total_price_cents
        )
        CommissionService.on_repriced(booking, now=now)

    @staticmethod
    def advance(booking_id, now):
        """Apply every time-triggered transition that is due. Returns how many were applied."""
        with unit_of_work():
            booking = BookingService._lock(booking_id)
            applied = 0
            status = booking.status_enum

            expires_at = as_utc(booking.approval_expires_at)
            if status == BookingStatus.PENDING and expires_at and now >= expires_at:
                BookingService._transition(booking, BookingStatus.REJECTED, now, reason="approval_timeout")
                return 1

            if status == BookingStatus.APPROVED and now >= as_utc(booking.start_time):
                BookingService._transition(booking, BookingStatus.ACTIVE, now)
                status = BookingStatus.ACTIVE
                applied += 1

            if status == BookingStatus.ACTIVE and now >= as_utc(booking.end_time):
                BookingService._complete(booking, now)
                applied += 1
            return applied

    @staticmethod
    def purge_canceled(booking_id):
        with unit_of_work():
            booking = BookingService._lock(booking_id)
            if booking.status_enum != BookingStatus.CANCELED:
                raise InvalidTransitionError(booking.status, "purged")
            CommissionService.on_canceled(booking.id)
            db.session.delete(booking)
        current_app.logger.info("Purged canceled booking #%s", booking_id)
