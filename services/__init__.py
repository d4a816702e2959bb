from datetime import datetime

from flask import current_app

from models import db
from services.events import EventDispatcher
from services.notifier import NotificationEmitter
from services.reservations import ReservationService


def app_clock():
    """Clock for reservation rules: ``app.extensions["reservation_clock"]`` or local time."""
    return current_app.extensions.get("reservation_clock", datetime.now)


def reservation_service() -> ReservationService:
    """Build a ReservationService wired to the current app and request session."""
    cfg = current_app.config
    emitter = NotificationEmitter(db.session, ttl_hours=cfg.get("NOTIFICATION_TTL_HOURS"))
    return ReservationService(
        db.session,
        locks=current_app.extensions["room_locks"],
        events=EventDispatcher(emitter, log=current_app.logger),
        clock=app_clock(),
        require_instructor_classification=cfg.get("INSTRUCTOR_CLASSIFICATION_REQUIRED", True),
    )
