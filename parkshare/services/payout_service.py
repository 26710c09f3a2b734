from dataclasses import dataclass, field

from flask import current_app

from parkshare.constants import PayoutStatus
from parkshare.extensions import db
from parkshare.models import Commission, Payout
from parkshare.utils.clock import as_utc, utcnow
from parkshare.utils.db import unit_of_work


@dataclass
class PayoutRunResult:
    success: bool
    message: str
    payouts: list = field(default_factory=list)
    failed_owner_ids: list = field(default_factory=list)
    processed_commission_count: int = 0

    @property
    def payouts_created(self):
        return len(self.payouts)

    def to_dict(self):
        return {
            "success": self.success,
            "message": self.message,
            "payouts_created": self.payouts_created,
            "payouts": self.payouts,
            "failed_owner_ids": self.failed_owner_ids,
            "processed_commission_count": self.processed_commission_count,
        }


class PayoutService:
    @staticmethod
    def pending_owner_ids():
        rows = (
            db.session.query(Commission.owner_id)
            .filter(Commission.processed.is_(False))
            .distinct()
            .order_by(Commission.owner_id.asc())
            .all()
        )
        return [row.owner_id for row in rows]

    @staticmethod
    def _consolidate_owner(owner_id, now):
        """Fold every unprocessed commission of one owner into a single payout, atomically."""
        with unit_of_work():
            commissions = (
                Commission.query.filter_by(owner_id=owner_id, processed=False)
                .order_by(Commission.id.asc())
                .with_for_update()
                .all()
            )
            if not commissions:
                return None

            calculated = [as_utc(c.calculated_at) for c in commissions]
            payout = Payout(
                owner_id=owner_id,
                net_payout_cents=sum(c.net_owner_cents for c in commissions),
                total_commission_cents=sum(c.commission_cents for c in commissions),
                commission_count=len(commissions),
                status=PayoutStatus.PENDING,
                payment_method=current_app.config.get("PAYOUT_PAYMENT_METHOD", "bank_transfer"),
                payment_reference=f"AUTO_PAYOUT_{owner_id}_{now.year}_{now.month:02d}",
                period_start=min(calculated),
                period_end=max(calculated),
                created_at=now,
                updated_at=now,
            )
            db.session.add(payout)
            db.session.flush()
            for commission in commissions:
                commission.processed = True
                commission.payout_id = payout.id
        return payout

    @staticmethod
    def run_payouts(now=None):
        now = as_utc(now) or utcnow()
        owner_ids = PayoutService.pending_owner_ids()
        if not owner_ids:
            current_app.logger.info("Payout run: no unprocessed commissions")
            return PayoutRunResult(success=True, message="No payouts to process")

        result = PayoutRunResult(success=True, message="")
        for owner_id in owner_ids:
            try:
                payout = PayoutService._consolidate_owner(owner_id, now)
            except Exception:
                current_app.logger.exception("Payout run failed for owner %s", owner_id)
                result.failed_owner_ids.append(owner_id)
                continue
            if payout is None:
                continue
            result.processed_commission_count += payout.commission_count
            result.payouts.append(
                {
                    "payout_id": payout.id,
                    "owner_id": owner_id,
                    "net_payout_cents": payout.net_payout_cents,
                    "commission_count": payout.commission_count,
                    "commission_ids": payout.commission_ids,
                }
            )
            current_app.logger.info(
                "Payout #%s for owner %s: %s cents from %s commissions",
                payout.id,
                owner_id,
                payout.net_payout_cents,
                payout.commission_count,
            )

        result.success = not result.failed_owner_ids
        result.message = f"Processed {result.payouts_created} payouts"
        if result.failed_owner_ids:
            result.message += f", {len(result.failed_owner_ids)} owners failed"
        return result
