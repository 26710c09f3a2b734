from parkshare.constants import PayoutStatus
from parkshare.extensions import db
from parkshare.models.base import PKType, TimestampMixin


class Payout(TimestampMixin, db.Model):
    __tablename__ = "payouts"

    id = db.Column(PKType, primary_key=True, autoincrement=True)
    owner_id = db.Column(PKType, nullable=False, index=True)
    net_payout_cents = db.Column(db.Integer, nullable=False)
    total_commission_cents = db.Column(db.Integer, nullable=False, default=0)
    commission_count = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(24), nullable=False, default=PayoutStatus.PENDING, index=True)
    payment_method = db.Column(db.String(32), nullable=False, default="bank_transfer")
    payment_reference = db.Column(db.String(64), nullable=False)
    period_start = db.Column(db.DateTime(timezone=True), nullable=True)
    period_end = db.Column(db.DateTime(timezone=True), nullable=True)

    commissions = db.relationship("Commission", back_populates="payout", order_by="Commission.id")

    @property
    def commission_ids(self):
        return [c.id for c in self.commissions]
