from flask import Blueprint, jsonify

from .auth import auth_bp
from .admin import admin_bp
from .audit_logs import audit_bp
from .rooms import rooms_bp
from .schedules import schedules_bp
from .reservations import reservations_bp
from .notifications import notifications_bp

health_bp = Blueprint("health", __name__)


@health_bp.get("/health")
def health():
    return jsonify(status="ok"), 200


ALL_BLUEPRINTS = (
    health_bp,
    auth_bp,
    admin_bp,
    audit_bp,
    rooms_bp,
    schedules_bp,
    reservations_bp,
    notifications_bp,
)
