from parkshare.extensions import db
from parkshare.models.base import PKType, TimestampMixin
from parkshare.utils.clock import utcnow


class Commission(TimestampMixin, db.Model):
    __tablename__ = "commissions"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    booking_id = db.Column(PKType, db.ForeignKey("bookings.id"), nullable=False, unique=True)
    owner_id = db.Column(PKType, nullable=False, index=True)
    total_price_cents = db.Column(db.Integer, nullable=False)
    commission_cents = db.Column(db.Integer, nullable=False)
    net_owner_cents = db.Column(db.Integer, nullable=False)
    commission_rate = db.Column(db.Numeric(5, 4), nullable=False)
    processed = db.Column(db.Boolean, nullable=False, default=False, index=True)
    payout_id = db.Column(PKType, db.ForeignKey("payouts.id"), nullable=True, index=True)
    calculated_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    booking = db.relationship("Booking", back_populates="commission")
    payout = db.relationship("Payout", back_populates="commissions")

    __table_args__ = (
        db.Index("ix_commissions_owner_processed", "owner_id", "processed"),
        db.CheckConstraint(
            "commission_cents + net_owner_cents = total_price_cents",
            name="ck_commission_split_exact",
        ),
    )
