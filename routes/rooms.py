from flask import Blueprint, request, jsonify, g
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError

from models import db
from models.reservation import Reservation, ACTIVE_STATUSES
from models.room import Room, ROOM_TYPES
from security.rbac import require_roles
from services import app_clock
from services.notifier import notify_room_availability, notify_room_created
from utils.audit import log_event
from utils.auth_context import login_required

rooms_bp = Blueprint("rooms", __name__, url_prefix="/rooms")


def _room_fields(data: dict, partial: bool):
    """Validate a room body; returns (fields, error)."""
    out = {}

    if "room_number" in data or not partial:
        room_number = (data.get("room_number") or "").strip()
        if not room_number:
            return None, "room_number is required"
        out["room_number"] = room_number

    if "building" in data or not partial:
        building = (data.get("building") or "").strip()
        if not building:
            return None, "building is required"
        out["building"] = building

    if "capacity" in data or not partial:
        try:
            capacity = int(data.get("capacity"))
        except (TypeError, ValueError):
            return None, "capacity must be a positive integer"
        if capacity <= 0:
            return None, "capacity must be a positive integer"
        out["capacity"] = capacity

    if "type" in data or not partial:
        room_type = (data.get("type") or "classroom").strip().lower()
        if room_type not in ROOM_TYPES:
            return None, "type must be one of: " + ", ".join(ROOM_TYPES)
        out["type"] = room_type

    if "equipment" in data:
        out["equipment"] = (data.get("equipment") or "").strip() or None

    if "is_available" in data:
        if not isinstance(data["is_available"], bool):
            return None, "is_available must be a boolean"
        out["is_available"] = data["is_available"]

    return out, None


@rooms_bp.get("")
@login_required
def list_rooms():
    q = Room.query
    if request.args.get("available") == "true":
        q = q.filter_by(is_available=True)
    room_type = request.args.get("type")
    if room_type:
        q = q.filter_by(type=room_type)
    rooms = q.order_by(Room.building.asc(), Room.room_number.asc()).all()

    counts = dict(
        db.session.query(Reservation.room_id, func.count(Reservation.id))
        .filter(Reservation.status.in_(ACTIVE_STATUSES), Reservation.date >= app_clock()().date())
        .group_by(Reservation.room_id)
        .all()
    )
    return jsonify(data=[
        dict(r.to_dict(), active_reservations=counts.get(r.id, 0))
        for r in rooms
    ]), 200


@rooms_bp.get("/<int:room_id>")
@login_required
def get_room(room_id: int):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify(error="Room not found"), 404
    return jsonify(data=room.to_dict()), 200


@rooms_bp.post("")
@require_roles("admin")
def create_room():
    data = request.get_json(silent=True) or {}
    fields, error = _room_fields(data, partial=False)
    if error:
        return jsonify(error=error), 400

    room = Room(**fields)
    db.session.add(room)
    try:
        db.session.flush()
        notify_room_created(db.session, room, g.user.id)
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Room number already exists"), 409

    log_event("ROOM_CREATE", user_id=g.user.id, entity="room", entity_id=room.id)
    return jsonify(data=room.to_dict()), 201


@rooms_bp.put("/<int:room_id>")
@require_roles("admin")
def update_room(room_id: int):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify(error="Room not found"), 404

    data = request.get_json(silent=True) or {}
    fields, error = _room_fields(data, partial=True)
    if error:
        return jsonify(error=error), 400

    was_available = room.is_available
    for key, value in fields.items():
        setattr(room, key, value)

    # availability never touches existing reservations
    if room.is_available != was_available:
        notify_room_availability(db.session, room, g.user.id)

    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        return jsonify(error="Room number already exists"), 409

    log_event("ROOM_UPDATE", user_id=g.user.id, entity="room", entity_id=room.id, metadata={"fields": sorted(fields)})
    return jsonify(message="Room updated successfully", data=room.to_dict()), 200


@rooms_bp.delete("/<int:room_id>")
@require_roles("admin")
def delete_room(room_id: int):
    room = db.session.get(Room, room_id)
    if not room:
        return jsonify(error="Room not found"), 404

    db.session.delete(room)
    db.session.commit()

    log_event("ROOM_DELETE", user_id=g.user.id, entity="room", entity_id=room_id)
    return jsonify(message="Room deleted successfully"), 200
