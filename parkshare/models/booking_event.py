from sqlalchemy import event

from parkshare.extensions import db
from parkshare.models.base import PKType
from parkshare.utils.clock import utcnow


class BookingEvent(db.Model):
    __tablename__ = "booking_events"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id", ondelete="CASCADE"), nullable=False, index=True)
    seq = db.Column(db.Integer, nullable=False)
    event_type = db.Column(db.String(24), nullable=False)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)
    payload = db.Column(db.JSON, nullable=False, default=dict)

    booking = db.relationship("Booking", back_populates="events")

    __table_args__ = (db.UniqueConstraint("booking_id", "seq", name="uq_booking_event_seq"),)


@event.listens_for(BookingEvent, "before_update")
def _reject_event_rewrite(_mapper, _connection, target):
    raise ValueError(f"Booking events are append-only (event #{target.id}).")
