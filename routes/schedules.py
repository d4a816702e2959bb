from flask import Blueprint, request, jsonify, g

from models import db
from models.class_schedule import ClassSchedule, WEEKDAYS
from models.room import Room
from models.user import User
from security.rbac import require_roles
from services.reservations import validate_interval
from utils.audit import log_event
from utils.auth_context import login_required
from utils.parsing import parse_int, parse_time, require_fields

schedules_bp = Blueprint("schedules", __name__, url_prefix="/schedules")


def _check_day(value):
    day = (value or "").strip().lower()
    if day not in WEEKDAYS:
        return None
    return day


def _can_manage(schedule: ClassSchedule) -> bool:
    return g.user.is_admin or schedule.instructor_id == g.user.id


@schedules_bp.get("")
@login_required
def list_schedules():
    q = ClassSchedule.query
    room_id = request.args.get("room_id", type=int)
    if room_id:
        q = q.filter_by(room_id=room_id)
    instructor_id = request.args.get("instructor_id", type=int)
    if instructor_id:
        q = q.filter_by(instructor_id=instructor_id)
    day = request.args.get("day")
    if day:
        q = q.filter_by(day=day.strip().lower())

    order = {name: i for i, name in enumerate(WEEKDAYS)}
    rows = sorted(q.all(), key=lambda cs: (order.get(cs.day, len(order)), cs.start_time, cs.id))
    return jsonify(data=[cs.to_dict() for cs in rows]), 200


@schedules_bp.post("")
@require_roles("admin", "instructor")
def create_schedule():
    data = request.get_json(silent=True) or {}
    require_fields(data, "room_id", "course_code", "course_name", "day", "start_time", "end_time")

    day = _check_day(data.get("day"))
    if not day:
        return jsonify(error="day must be one of: " + ", ".join(WEEKDAYS)), 400
    start_time = parse_time(data["start_time"], "start_time")
    end_time = parse_time(data["end_time"], "end_time")
    validate_interval(start_time, end_time)

    room_id = parse_int(data["room_id"], "room_id")
    if not db.session.get(Room, room_id):
        return jsonify(error="Room not found"), 404

    # instructors always schedule for themselves
    instructor_id = g.user.id
    if g.user.is_admin and data.get("instructor_id"):
        instructor_id = parse_int(data["instructor_id"], "instructor_id")
        instructor = db.session.get(User, instructor_id)
        if not instructor or instructor.role != "instructor":
            return jsonify(error="Instructor not found"), 404

    schedule = ClassSchedule(
        room_id=room_id,
        instructor_id=instructor_id,
        course_code=str(data["course_code"]).strip(),
        course_name=str(data["course_name"]).strip(),
        day=day,
        start_time=start_time,
        end_time=end_time,
    )
    db.session.add(schedule)
    db.session.commit()

    log_event("SCHEDULE_CREATE", user_id=g.user.id, entity="class_schedule", entity_id=schedule.id)
    return jsonify(data=schedule.to_dict()), 201


@schedules_bp.put("/<int:schedule_id>")
@require_roles("admin", "instructor")
def update_schedule(schedule_id: int):
    schedule = db.session.get(ClassSchedule, schedule_id)
    if not schedule or not _can_manage(schedule):
        return jsonify(error="Class schedule not found"), 404

    data = request.get_json(silent=True) or {}
    if "room_id" in data:
        room_id = parse_int(data["room_id"], "room_id")
        if not db.session.get(Room, room_id):
            return jsonify(error="Room not found"), 404
        schedule.room_id = room_id
    if "day" in data:
        day = _check_day(data.get("day"))
        if not day:
            return jsonify(error="day must be one of: " + ", ".join(WEEKDAYS)), 400
        schedule.day = day
    for field in ("course_code", "course_name"):
        if data.get(field):
            setattr(schedule, field, str(data[field]).strip())
    if data.get("start_time"):
        schedule.start_time = parse_time(data["start_time"], "start_time")
    if data.get("end_time"):
        schedule.end_time = parse_time(data["end_time"], "end_time")

    validate_interval(schedule.start_time, schedule.end_time)
    db.session.commit()

    log_event("SCHEDULE_UPDATE", user_id=g.user.id, entity="class_schedule", entity_id=schedule.id)
    return jsonify(data=schedule.to_dict()), 200


@schedules_bp.delete("/<int:schedule_id>")
@require_roles("admin", "instructor")
def delete_schedule(schedule_id: int):
    schedule = db.session.get(ClassSchedule, schedule_id)
    if not schedule or not _can_manage(schedule):
        return jsonify(error="Class schedule not found"), 404

    db.session.delete(schedule)
    db.session.commit()

    log_event("SCHEDULE_DELETE", user_id=g.user.id, entity="class_schedule", entity_id=schedule_id)
    return jsonify(message="Class schedule deleted"), 200
