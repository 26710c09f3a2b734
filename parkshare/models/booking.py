from parkshare.constants import BookingStatus, EventType
from parkshare.extensions import db
from parkshare.models.base import PKType, TimestampMixin


class Booking(TimestampMixin, db.Model):
    __tablename__ = "bookings"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    listing_id = db.Column(PKType, db.ForeignKey("listings.id", ondelete="CASCADE"), nullable=False, index=True)
    owner_id = db.Column(PKType, nullable=False, index=True)
    renter_id = db.Column(PKType, nullable=True, index=True)
    vehicle_plate = db.Column(db.String(32), nullable=False, index=True)

    status = db.Column(db.String(24), nullable=False, default=BookingStatus.PENDING.value, index=True)
    start_time = db.Column(db.DateTime(timezone=True), nullable=False)
    end_time = db.Column(db.DateTime(timezone=True), nullable=False)
    approval_expires_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Pricing snapshot taken at request time.
    price_per_hour = db.Column(db.Numeric(10, 2), nullable=False)
    pricing = db.Column(db.JSON, nullable=True)
    pricing_mode = db.Column(db.String(16), nullable=False)
    pricing_method = db.Column(db.String(16), nullable=False)
    total_price_cents = db.Column(db.Integer, nullable=False)

    version_id = db.Column(db.Integer, nullable=False)

    listing = db.relationship("Listing", back_populates="bookings")
    events = db.relationship(
        "BookingEvent",
        back_populates="booking",
        order_by="BookingEvent.seq",
        cascade="all, delete-orphan",
    )
    commission = db.relationship("Commission", back_populates="booking", uselist=False)

    __mapper_args__ = {"version_id_col": version_id}
    __table_args__ = (
        db.Index("ix_bookings_plate_status", "vehicle_plate", "status"),
        db.Index("ix_bookings_status_start", "status", "start_time"),
        db.CheckConstraint("end_time > start_time", name="ck_booking_window_positive"),
        db.CheckConstraint("total_price_cents >= 0", name="ck_booking_total_non_negative"),
    )

    @property
    def status_enum(self):
        return BookingStatus(self.status)

    def projected_status(self):
        """Replay the event log; must always agree with ``status``."""
        status = None
        for event in self.events:
            if event.event_type == EventType.STATUS_CHANGE:
                status = (event.payload or {}).get("to")
            elif event.event_type == EventType.FINISH_NOW:
                status = BookingStatus.COMPLETED.value
        return status
