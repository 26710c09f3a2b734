import threading
from dataclasses import asdict, dataclass, field
from datetime import datetime

from flask import current_app
from sqlalchemy import and_, or_

from parkshare.constants import BookingStatus
from parkshare.models import Booking
from parkshare.services.booking_service import BookingService
from parkshare.utils.clock import as_utc, utcnow

# One sweep at a time per process; timer ticks and resume triggers share it.
_sweep_guard = threading.Lock()


@dataclass
class SweepResult:
    changed: int = 0
    transitions: int = 0
    failed: list = field(default_factory=list)
    skipped: bool = False
    ran_at: datetime | None = None

    def to_dict(self):
        payload = asdict(self)
        payload["ran_at"] = self.ran_at.isoformat() if self.ran_at else None
        return payload


class SweeperService:
    last_result = None

    @staticmethod
    def due_booking_ids(now):
        due = or_(
            and_(Booking.status == BookingStatus.APPROVED.value, Booking.start_time <= now),
            and_(Booking.status == BookingStatus.ACTIVE.value, Booking.end_time <= now),
            and_(
                Booking.status == BookingStatus.PENDING.value,
                Booking.approval_expires_at.isnot(None),
                Booking.approval_expires_at <= now,
            ),
        )
        rows = Booking.query.with_entities(Booking.id).filter(due).order_by(Booking.start_time.asc()).all()
        return [row.id for row in rows]

    @staticmethod
    def sweep(now=None):
        if not _sweep_guard.acquire(blocking=False):
            current_app.logger.info("Lifecycle sweep already in progress; skipping.")
            return SweepResult(skipped=True)
        try:
            now = as_utc(now) or utcnow()
            result = SweepResult(ran_at=now)
            for booking_id in SweeperService.due_booking_ids(now):
                try:
                    applied = BookingService.advance(booking_id, now)
                except Exception:
                    # Leave the booking as it was; the next sweep retries it.
                    current_app.logger.exception("Lifecycle sweep failed for booking #%s", booking_id)
                    result.failed.append(booking_id)
                    continue
                if applied:
                    result.changed += 1
                    result.transitions += applied

            if result.changed or result.failed:
                current_app.logger.info(
                    "Lifecycle sweep: %s bookings changed, %s transitions, %s failed",
                    result.changed,
                    result.transitions,
                    len(result.failed),
                )
            SweeperService.last_result = result
            return result
        finally:
            _sweep_guard.release()
