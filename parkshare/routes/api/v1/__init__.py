from flask import Blueprint

from parkshare.routes.api.v1.bookings import api_booking_bp
from parkshare.routes.api.v1.commissions import api_commission_bp
from parkshare.routes.api.v1.jobs import api_job_bp
from parkshare.routes.api.v1.pricing import api_pricing_bp
from parkshare.routes.api.v1.vehicles import api_vehicle_bp

api_v1_bp = Blueprint("api_v1", __name__)
api_v1_bp.register_blueprint(api_booking_bp, url_prefix="/bookings")
api_v1_bp.register_blueprint(api_vehicle_bp, url_prefix="/vehicles")
api_v1_bp.register_blueprint(api_pricing_bp, url_prefix="/pricing")
api_v1_bp.register_blueprint(api_commission_bp, url_prefix="/commissions")
api_v1_bp.register_blueprint(api_job_bp, url_prefix="/jobs")
