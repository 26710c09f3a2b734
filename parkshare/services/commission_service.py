from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal

from flask import current_app
from sqlalchemy import func

from parkshare.constants import BookingStatus
from parkshare.errors import AlreadyConsolidatedError
from parkshare.extensions import db
from parkshare.models import Booking, Commission
from parkshare.services.pricing_service import PricingService
from parkshare.utils.clock import as_utc, utcnow


@dataclass(frozen=True)
class CommissionSplit:
    total_price_cents: int
    commission_cents: int
    net_owner_cents: int
    commission_rate: Decimal


def _month_bounds(year, month):
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    if month == 12:
        end = datetime(year + 1, 1, 1, tzinfo=timezone.utc)
    else:
        end = datetime(year, month + 1, 1, tzinfo=timezone.utc)
    return start, end


class CommissionService:
    @staticmethod
    def current_rate():
        return Decimal(str(current_app.config.get("COMMISSION_RATE", "0.15")))

    @staticmethod
    def calculate_commission(total_price_cents, rate):
        total = int(total_price_cents)
        rate = Decimal(str(rate))
        commission = int((Decimal(total) * rate).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        # Net is always the remainder, never rounded on its own.
        return CommissionSplit(
            total_price_cents=total,
            commission_cents=commission,
            net_owner_cents=total - commission,
            commission_rate=rate,
        )

    @staticmethod
    def _apply_split(commission, split, now):
        commission.total_price_cents = split.total_price_cents
        commission.commission_cents = split.commission_cents
        commission.net_owner_cents = split.net_owner_cents
        commission.commission_rate = split.commission_rate
        commission.calculated_at = now

    @staticmethod
    def on_confirmed(booking, now=None):
        """Create (or refresh) the commission of a confirmed booking. Caller commits."""
        now = as_utc(now) or utcnow()
        existing = Commission.query.filter_by(booking_id=booking.id).first()
        if existing and existing.processed:
            return existing

        if booking.total_price_cents == 0:
            if existing:
                db.session.delete(existing)
            current_app.logger.info("Booking #%s is free; no commission recorded.", booking.id)
            return None

        split = CommissionService.calculate_commission(booking.total_price_cents, CommissionService.current_rate())
        commission = existing or Commission(booking_id=booking.id, owner_id=booking.owner_id)
        CommissionService._apply_split(commission, split, now)
        if not existing:
            db.session.add(commission)
        db.session.flush()
        current_app.logger.info(
            "Commission for booking #%s: total=%s commission=%s net=%s",
            booking.id,
            split.total_price_cents,
            split.commission_cents,
            split.net_owner_cents,
        )
        return commission

    @staticmethod
    def on_repriced(booking, now=None):
        existing = Commission.query.filter_by(booking_id=booking.id).first()
        if existing is None:
            if BookingStatus(booking.status) == BookingStatus.PENDING:
                return None
            return CommissionService.on_confirmed(booking, now=now)
        if existing.processed:
            if existing.total_price_cents != booking.total_price_cents:
                raise AlreadyConsolidatedError(booking.id, existing.payout_id)
            return existing
        return CommissionService.on_confirmed(booking, now=now)

    @staticmethod
    def on_canceled(booking_id):
        commission = Commission.query.filter_by(booking_id=booking_id).with_for_update().first()
        if commission is None:
            return
        if commission.processed:
            raise AlreadyConsolidatedError(booking_id, commission.payout_id)
        db.session.delete(commission)
        db.session.flush()
        current_app.logger.info("Voided commission #%s of canceled booking #%s", commission.id, booking_id)

    @staticmethod
    def unprocessed_count():
        return Commission.query.filter_by(processed=False).count()

    @staticmethod
    def owner_summary(owner_id, year, month):
        start, end = _month_bounds(year, month)
        commissions = (
            Commission.query.filter(Commission.owner_id == owner_id)
            .filter(Commission.calculated_at >= start, Commission.calculated_at < end)
            .order_by(Commission.calculated_at.desc())
            .all()
        )
        total_commission = sum(c.commission_cents for c in commissions)
        total_net = sum(c.net_owner_cents for c in commissions)
        return {
            "owner_id": owner_id,
            "period": {"year": year, "month": month},
            "commissions": [
                {
                    "id": c.id,
                    "booking_id": c.booking_id,
                    "total_price_cents": c.total_price_cents,
                    "commission_cents": c.commission_cents,
                    "net_owner_cents": c.net_owner_cents,
                    "processed": c.processed,
                    "payout_id": c.payout_id,
                }
                for c in commissions
            ],
            "summary": {
                "count": len(commissions),
                "total_commission_cents": total_commission,
                "total_net_owner_cents": total_net,
                "total_commission": PricingService.format_cents(total_commission),
                "total_net_owner": PricingService.format_cents(total_net),
            },
        }

    @staticmethod
    def monthly_overview(year, month):
        start, end = _month_bounds(year, month)
        rows = (
            db.session.query(
                Commission.owner_id,
                func.count(Commission.id),
                func.coalesce(func.sum(Commission.commission_cents), 0),
                func.coalesce(func.sum(Commission.net_owner_cents), 0),
            )
            .join(Booking, Booking.id == Commission.booking_id)
            .filter(Commission.calculated_at >= start, Commission.calculated_at < end)
            .group_by(Commission.owner_id)
            .order_by(Commission.owner_id.asc())
            .all()
        )
        owners = [
            {
                "owner_id": owner_id,
                "count": int(count),
                "total_commission_cents": int(commission_sum),
                "total_net_owner_cents": int(net_sum),
            }
            for owner_id, count, commission_sum, net_sum in rows
        ]
        platform_revenue = sum(o["total_commission_cents"] for o in owners)
        return {
            "period": {"year": year, "month": month},
            "owners": owners,
            "platform_revenue_cents": platform_revenue,
            "platform_revenue": PricingService.format_cents(platform_revenue),
        }
