from parkshare.extensions import db
from parkshare.models.base import PKType, TimestampMixin


class Listing(TimestampMixin, db.Model):
    __tablename__ = "listings"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    owner_id = db.Column(PKType, nullable=False, index=True)
    title = db.Column(db.String(140), nullable=False)
    address = db.Column(db.String(255), nullable=True)
    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    # "auto" | "manual"; older rows only carry requires_manual_approval.
    approval_mode = db.Column(db.String(16), nullable=True)
    requires_manual_approval = db.Column(db.Boolean, nullable=False, default=False)

    price_per_hour = db.Column(db.Numeric(10, 2), nullable=False, default=10)
    pricing = db.Column(db.JSON, nullable=True)

    bookings = db.relationship("Booking", back_populates="listing", lazy="dynamic")

    __table_args__ = (db.Index("ix_listings_owner_active", "owner_id", "is_active"),)
