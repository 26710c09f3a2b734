from flask import current_app, jsonify
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError


class AppError(Exception):
    status_code = 400

    def __init__(self, message, status_code=None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message}


class NotFoundError(AppError):
    status_code = 404


class ConflictError(AppError):
    """The vehicle already holds an overlapping pending/approved/active booking."""

    status_code = 409

    def __init__(self, message, conflicts=None):
        super().__init__(message)
        self.conflicts = list(conflicts or [])

    def to_dict(self):
        payload = super().to_dict()
        payload["conflicts"] = self.conflicts
        return payload


class InvalidTransitionError(AppError):
    status_code = 409

    def __init__(self, current, target):
        super().__init__(f"Invalid status transition from {current} to {target}.")
        self.current = current
        self.target = target


class InvalidPricingDataError(AppError):
    status_code = 422

    def __init__(self, errors):
        super().__init__("Invalid pricing table.")
        self.errors = list(errors)

    def to_dict(self):
        payload = super().to_dict()
        payload["errors"] = self.errors
        return payload


class AlreadyConsolidatedError(AppError):
    """The booking's commission has already been included in a payout."""

    status_code = 409

    def __init__(self, booking_id, payout_id=None):
        super().__init__(f"Commission for booking #{booking_id} was already paid out.")
        self.booking_id = booking_id
        self.payout_id = payout_id


def register_error_handlers(app):
    @app.errorhandler(AppError)
    def handle_app_error(err):
        return jsonify(err.to_dict()), err.status_code

    @app.errorhandler(IntegrityError)
    def handle_integrity_error(_err):
        app.logger.warning("Database integrity error")
        return jsonify({"error": "Conflict. Resource already exists."}), 409

    @app.errorhandler(StaleDataError)
    def handle_stale_data(_err):
        current_app.logger.warning("Concurrent modification detected")
        return jsonify({"error": "The booking was modified concurrently. Please retry."}), 409

    @app.errorhandler(400)
    def bad_request(_err):
        return jsonify({"error": "Bad request"}), 400

    @app.errorhandler(404)
    def not_found(_err):
        return jsonify({"error": "Not found"}), 404

    @app.errorhandler(429)
    def too_many_requests(_err):
        return jsonify({"error": "Too many requests"}), 429

    @app.errorhandler(500)
    def server_error(_err):
        app.logger.exception("Internal server error")
        return jsonify({"error": "Internal server error"}), 500
