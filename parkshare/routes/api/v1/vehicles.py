from flask import Blueprint, jsonify, request

from parkshare.errors import AppError
from parkshare.routes.api.v1.bookings import parse_time_field, serialize_booking
from parkshare.services import ConflictService
from parkshare.utils.clock import utcnow

api_vehicle_bp = Blueprint("api_vehicle", __name__)


@api_vehicle_bp.get("/<plate>/conflicts")
def vehicle_conflicts(plate):
    start = parse_time_field(request.args, "start")
    end = parse_time_field(request.args, "end")
    if end <= start:
        raise AppError("End time must be after start time.", 400)
    exclude = request.args.get("exclude_booking_id", type=int)
    result = ConflictService.check_vehicle_conflicts(plate, start, end, exclude_booking_id=exclude)
    return jsonify(
        {
            "has_conflict": result.has_conflict,
            "message": result.message,
            "conflicts": result.describe(),
        }
    )


@api_vehicle_bp.get("/<plate>/bookings")
def vehicle_bookings(plate):
    rows = ConflictService.active_bookings_for_vehicle(plate, utcnow())
    return jsonify([serialize_booking(b) for b in rows])
