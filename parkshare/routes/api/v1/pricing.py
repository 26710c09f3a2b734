import math

from flask import Blueprint, current_app, jsonify, request

from parkshare.errors import AppError
from parkshare.extensions import limiter
from parkshare.routes.api.v1.bookings import parse_time_field
from parkshare.services import PricingService

api_pricing_bp = Blueprint("api_pricing", __name__)


def _quote_limit():
    return current_app.config.get("QUOTE_RATE_LIMIT", "60 per minute")


@api_pricing_bp.post("/quote")
@limiter.limit(_quote_limit)
def quote():
    """Price a window either for a listing or for an ad-hoc table."""
    payload = request.get_json(silent=True) or {}
    start = parse_time_field(payload, "start_time", required=False)
    end = parse_time_field(payload, "end_time", required=False)

    if payload.get("listing_id") is not None:
        if start is None or end is None:
            raise AppError("'start_time' and 'end_time' are required for a listing quote.", 400)
        result = PricingService.quote_for_listing(payload["listing_id"], start, end)
        warnings = []
    else:
        if start is not None and end is not None:
            duration = (end - start).total_seconds() * 1000
        else:
            try:
                duration = float(payload.get("duration_ms"))
            except (TypeError, ValueError) as exc:
                raise AppError("Provide 'duration_ms' or 'start_time'/'end_time'.", 400) from exc
        pricing = payload.get("pricing")
        try:
            legacy_rate = float(payload.get("price_per_hour", current_app.config.get("DEFAULT_HOURLY_RATE", 10)))
        except (TypeError, ValueError) as exc:
            raise AppError("'price_per_hour' must be a number.", 400) from exc
        if not math.isfinite(legacy_rate):
            raise AppError("'price_per_hour' must be a number.", 400)
        result = PricingService.calculate_price(
            duration, pricing, legacy_rate, **PricingService.configured_options()
        )
        warnings = PricingService.validate_pricing_data(pricing)[1] if pricing else []

    body = result.to_dict()
    body["summary"] = PricingService.format_breakdown(result)
    body["warnings"] = warnings
    return jsonify(body)


@api_pricing_bp.post("/validate")
def validate():
    payload = request.get_json(silent=True) or {}
    PricingService.ensure_valid_pricing(payload.get("pricing"))
    return jsonify({"valid": True})
