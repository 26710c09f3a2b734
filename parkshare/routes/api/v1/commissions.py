from flask import Blueprint, jsonify, request

from parkshare.errors import AppError
from parkshare.services import CommissionService
from parkshare.utils.clock import utcnow

api_commission_bp = Blueprint("api_commission", __name__)


def _period_args():
    today = utcnow()
    year = request.args.get("year", default=today.year, type=int)
    month = request.args.get("month", default=today.month, type=int)
    if not 1 <= month <= 12:
        raise AppError("Month must be between 1 and 12.", 400)
    return year, month


@api_commission_bp.get("/owners/<int:owner_id>")
def owner_commissions(owner_id):
    year, month = _period_args()
    return jsonify(CommissionService.owner_summary(owner_id, year, month))


@api_commission_bp.get("/overview")
def commissions_overview():
    year, month = _period_args()
    return jsonify(CommissionService.monthly_overview(year, month))
