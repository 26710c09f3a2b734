import re
from dataclasses import dataclass, field

from parkshare.constants import NON_TERMINAL_STATUSES, BookingStatus
from parkshare.models import Booking
from parkshare.utils.clock import as_utc

_PLATE_NOISE = re.compile(r"[\s\-.]")
_ACTIVE_VALUES = [status.value for status in NON_TERMINAL_STATUSES]


@dataclass
class ConflictResult:
    has_conflict: bool
    conflicting_bookings: list = field(default_factory=list)
    message: str = ""

    def describe(self):
        return [ConflictService.describe_booking(b) for b in self.conflicting_bookings]


class ConflictService:
    """Keeps one vehicle from holding two overlapping live bookings."""

    @staticmethod
    def normalize_identity(identity):
        return _PLATE_NOISE.sub("", str(identity or "")).upper()

    @staticmethod
    def overlaps(existing_start, existing_end, start, end):
        # Touching endpoints are not an overlap.
        return as_utc(existing_start) < as_utc(end) and as_utc(existing_end) > as_utc(start)

    @staticmethod
    def find_conflicts(identity, start, end, bookings, exclude_booking_id=None):
        wanted = ConflictService.normalize_identity(identity)
        conflicts = [
            booking
            for booking in bookings
            if booking.id != exclude_booking_id
            and ConflictService.normalize_identity(booking.vehicle_plate) == wanted
            and BookingStatus(booking.status) in NON_TERMINAL_STATUSES
            and ConflictService.overlaps(booking.start_time, booking.end_time, start, end)
        ]
        conflicts.sort(key=lambda b: as_utc(b.start_time))
        if not conflicts:
            return ConflictResult(has_conflict=False, message="Vehicle is free for the requested window.")

        if len(conflicts) == 1:
            first = conflicts[0]
            message = (
                f"Vehicle {wanted} already has booking #{first.id} from "
                f"{as_utc(first.start_time).isoformat()} to {as_utc(first.end_time).isoformat()}."
            )
        else:
            message = f"Vehicle {wanted} already has {len(conflicts)} overlapping bookings."
        return ConflictResult(has_conflict=True, conflicting_bookings=conflicts, message=message)

    @staticmethod
    def _live_bookings_for(identity):
        return Booking.query.filter(
            Booking.vehicle_plate == ConflictService.normalize_identity(identity),
            Booking.status.in_(_ACTIVE_VALUES),
        )

    @staticmethod
    def check_vehicle_conflicts(identity, start, end, exclude_booking_id=None):
        candidates = (
            ConflictService._live_bookings_for(identity)
            .filter(Booking.start_time < end, Booking.end_time > start)
            .all()
        )
        return ConflictService.find_conflicts(identity, start, end, candidates, exclude_booking_id)

    @staticmethod
    def active_bookings_for_vehicle(identity, now):
        return (
            ConflictService._live_bookings_for(identity)
            .filter(Booking.end_time >= now)
            .order_by(Booking.start_time.asc())
            .all()
        )

    @staticmethod
    def describe_booking(booking):
        listing = getattr(booking, "listing", None)
        return {
            "id": booking.id,
            "listing_id": booking.listing_id,
            "listing_title": listing.title if listing is not None else None,
            "status": booking.status,
            "vehicle_plate": booking.vehicle_plate,
            "start_time": as_utc(booking.start_time).isoformat(),
            "end_time": as_utc(booking.end_time).isoformat(),
        }
