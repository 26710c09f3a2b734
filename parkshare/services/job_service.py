from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from parkshare.constants import PayoutStatus
from parkshare.extensions import db
from parkshare.models import Payout
from parkshare.services.commission_service import CommissionService
from parkshare.services.sweeper_service import SweeperService
from parkshare.utils.clock import utcnow


class JobService:
    @staticmethod
    def health_check():
        issues = []
        try:
            db.session.execute(text("SELECT 1"))
        except SQLAlchemyError as exc:
            db.session.rollback()
            current_app.logger.error("Health check: database unreachable: %s", exc)
            return {"healthy": False, "issues": [{"type": "DATABASE", "detail": str(exc)}]}

        unprocessed = CommissionService.unprocessed_count()
        threshold = current_app.config.get("UNPROCESSED_COMMISSION_WARN_THRESHOLD", 100)
        if unprocessed > threshold:
            current_app.logger.warning("High number of unprocessed commissions: %s", unprocessed)
            issues.append({"type": "UNPROCESSED_COMMISSIONS", "count": unprocessed})

        failed_payouts = Payout.query.filter_by(status=PayoutStatus.FAILED).count()
        if failed_payouts:
            current_app.logger.warning("Failed payouts detected: %s", failed_payouts)
            issues.append({"type": "FAILED_PAYOUTS", "count": failed_payouts})

        last_sweep = SweeperService.last_result
        return {
            "healthy": not issues,
            "issues": issues,
            "unprocessed_commissions": unprocessed,
            "failed_payouts": failed_payouts,
            "last_sweep": last_sweep.to_dict() if last_sweep else None,
            "checked_at": utcnow().isoformat(),
        }
