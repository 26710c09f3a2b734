from flask import Blueprint, jsonify, request

from parkshare.errors import AppError
from parkshare.services import BookingService, PricingService
from parkshare.utils.clock import as_utc, parse_timestamp

api_booking_bp = Blueprint("api_booking", __name__)


def parse_time_field(payload, key, required=True):
    raw = payload.get(key)
    try:
        value = parse_timestamp(raw)
    except (TypeError, ValueError) as exc:
        raise AppError(f"Invalid timestamp for '{key}'.", 400) from exc
    if value is None and required:
        raise AppError(f"'{key}' is required.", 400)
    return value


def serialize_booking(booking):
    return {
        "id": booking.id,
        "listing_id": booking.listing_id,
        "owner_id": booking.owner_id,
        "renter_id": booking.renter_id,
        "vehicle_plate": booking.vehicle_plate,
        "status": booking.status,
        "start_time": as_utc(booking.start_time).isoformat(),
        "end_time": as_utc(booking.end_time).isoformat(),
        "total_price_cents": booking.total_price_cents,
        "total_price": PricingService.format_cents(booking.total_price_cents),
        "pricing_method": booking.pricing_method,
        "approval_expires_at": (
            as_utc(booking.approval_expires_at).isoformat() if booking.approval_expires_at else None
        ),
        "updated_at": as_utc(booking.updated_at).isoformat(),
    }


@api_booking_bp.post("")
def create_booking():
    payload = request.get_json(silent=True) or {}
    booking = BookingService.request_booking(
        listing_id=payload.get("listing_id"),
        vehicle_plate=payload.get("vehicle_plate"),
        start=parse_time_field(payload, "start_time"),
        end=parse_time_field(payload, "end_time"),
        renter_id=payload.get("renter_id"),
    )
    return jsonify(serialize_booking(booking)), 201


@api_booking_bp.get("/<int:booking_id>")
def get_booking(booking_id):
    return jsonify(serialize_booking(BookingService.get_booking(booking_id)))


@api_booking_bp.get("/<int:booking_id>/events")
def booking_events(booking_id):
    booking = BookingService.get_booking(booking_id)
    return jsonify(
        [
            {
                "seq": e.seq,
                "type": e.event_type,
                "at": as_utc(e.occurred_at).isoformat(),
                "payload": e.payload,
            }
            for e in booking.events
        ]
    )


@api_booking_bp.post("/<int:booking_id>/approve")
def approve_booking(booking_id):
    return jsonify(serialize_booking(BookingService.approve(booking_id)))


@api_booking_bp.post("/<int:booking_id>/reject")
def reject_booking(booking_id):
    payload = request.get_json(silent=True) or {}
    return jsonify(serialize_booking(BookingService.reject(booking_id, reason=payload.get("reason"))))


@api_booking_bp.post("/<int:booking_id>/cancel")
def cancel_booking(booking_id):
    payload = request.get_json(silent=True) or {}
    return jsonify(serialize_booking(BookingService.cancel(booking_id, reason=payload.get("reason"))))


@api_booking_bp.post("/<int:booking_id>/extend")
def extend_booking(booking_id):
    payload = request.get_json(silent=True) or {}
    booking = BookingService.extend(booking_id, parse_time_field(payload, "end_time"))
    return jsonify(serialize_booking(booking))


@api_booking_bp.post("/<int:booking_id>/finish")
def finish_booking(booking_id):
    return jsonify(serialize_booking(BookingService.finish_now(booking_id)))
