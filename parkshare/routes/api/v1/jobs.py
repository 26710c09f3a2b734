from flask import Blueprint, jsonify

from parkshare.services import JobService, PayoutService, SweeperService

api_job_bp = Blueprint("api_job", __name__)


@api_job_bp.post("/sweep")
def trigger_sweep():
    # Clients call this when they come back to the foreground.
    result = SweeperService.sweep()
    return jsonify(result.to_dict()), (202 if result.skipped else 200)


@api_job_bp.post("/payouts")
def trigger_payouts():
    result = PayoutService.run_payouts()
    return jsonify(result.to_dict()), (200 if result.success else 207)


@api_job_bp.get("/health")
def health():
    report = JobService.health_check()
    return jsonify(report), (200 if report["healthy"] else 503)
