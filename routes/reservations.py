from flask import Blueprint, request, jsonify, g

from models.class_schedule import ClassSchedule, WEEKDAYS
from models.reservation import Reservation, RESERVATION_STATUSES
from models.user import User
from security.rbac import require_roles
from services import app_clock, reservation_service
from services.errors import ValidationError
from utils.audit import log_event
from utils.auth_context import current_actor, login_required
from utils.parsing import parse_date, parse_int, parse_slot, parse_time, require_fields

reservations_bp = Blueprint("reservations", __name__, url_prefix="/reservations")


@reservations_bp.get("")
@login_required
def list_reservations():
    status = request.args.get("status")
    if status and status not in RESERVATION_STATUSES:
        raise ValidationError("Invalid status filter", fields={"status": "invalid"})
    room_id = request.args.get("room_id", type=int)
    date_str = request.args.get("date")
    day = parse_date(date_str) if date_str else None

    service = reservation_service()
    rows = service.list_reservations(current_actor(), status=status, room_id=room_id, day=day)
    now = service.clock()
    return jsonify(data=[r.to_dict(now=now) for r in rows]), 200


@reservations_bp.get("/<int:reservation_id>")
@login_required
def get_reservation(reservation_id: int):
    service = reservation_service()
    reservation = service.get_reservation(reservation_id, current_actor())
    return jsonify(data=reservation.to_dict(now=service.clock())), 200


@reservations_bp.post("/check-conflict")
@login_required
def check_conflict():
    data = request.get_json(silent=True) or {}
    room_id, day, start_time, end_time = parse_slot(data)

    exclude_id = data.get("exclude_reservation_id")
    conflicts = reservation_service().check_conflicts(
        room_id, day, start_time, end_time,
        exclude_reservation_id=parse_int(exclude_id, "exclude_reservation_id") if exclude_id else None,
    )
    return jsonify(conflicts=[c.to_dict() for c in conflicts]), 200


@reservations_bp.post("")
@login_required
def create_reservation():
    data = request.get_json(silent=True) or {}
    room_id, day, start_time, end_time = parse_slot(data)
    require_fields(data, "purpose")

    classification = {k: data.get(k) for k in ("course", "year", "block")}
    service = reservation_service()
    reservation = service.create_reservation(
        room_id, g.user.id, day, start_time, end_time, str(data["purpose"]), classification
    )

    log_event(
        "RESERVATION_CREATE", user_id=g.user.id, entity="reservation", entity_id=reservation.id,
        metadata={"room_id": room_id, "date": day.isoformat()},
    )
    return jsonify(data=reservation.to_dict(now=service.clock())), 201


@reservations_bp.patch("/<int:reservation_id>")
@login_required
def update_reservation(reservation_id: int):
    data = request.get_json(silent=True) or {}

    changes = {}
    if data.get("room_id") is not None:
        changes["room_id"] = parse_int(data["room_id"], "room_id")
    if data.get("date") is not None:
        changes["date"] = parse_date(data["date"])
    for field in ("start_time", "end_time"):
        if data.get(field) is not None:
            changes[field] = parse_time(data[field], field)
    if data.get("purpose") is not None:
        changes["purpose"] = str(data["purpose"]).strip()
    for field in ("course", "year", "block", "admin_notes", "status"):
        if field in data:
            changes[field] = data[field]

    service = reservation_service()
    reservation = service.update_reservation(reservation_id, current_actor(), changes)
    log_event(
        "RESERVATION_UPDATE", user_id=g.user.id, entity="reservation", entity_id=reservation_id,
        metadata={"fields": sorted(changes)},
    )
    return jsonify(message="Reservation updated successfully", data=reservation.to_dict(now=service.clock())), 200


@reservations_bp.patch("/<int:reservation_id>/status")
@login_required
def update_status(reservation_id: int):
    data = request.get_json(silent=True) or {}
    require_fields(data, "status")

    status = str(data["status"]).strip().lower()
    service = reservation_service()
    reservation = service.transition_status(
        reservation_id, current_actor(), status, notes=data.get("admin_notes")
    )

    log_event(
        "RESERVATION_" + status.upper(), user_id=g.user.id, entity="reservation", entity_id=reservation_id,
    )
    return jsonify(message=f"Reservation {status} successfully", data=reservation.to_dict(now=service.clock())), 200


@reservations_bp.get("/<int:reservation_id>/deletable")
@login_required
def deletable(reservation_id: int):
    service = reservation_service()
    actor = current_actor()
    service.get_reservation(reservation_id, actor)
    decision = service.explain_deletion(reservation_id, actor)
    return jsonify(deletable=decision.allowed, reason=decision.reason), 200


@reservations_bp.delete("/history/<int:reservation_id>")
@login_required
def delete_history_entry(reservation_id: int):
    reservation_service().delete_from_history(reservation_id, current_actor())
    log_event("RESERVATION_HISTORY_DELETE", user_id=g.user.id, entity="reservation", entity_id=reservation_id)
    return jsonify(message="Reservation deleted from history successfully"), 200


@reservations_bp.delete("/history")
@login_required
def purge_history():
    count = reservation_service().purge_history(current_actor())
    log_event("RESERVATION_HISTORY_PURGE", user_id=g.user.id, metadata={"deleted": count})
    return jsonify(message=f"{count} history reservations deleted successfully", deleted_count=count), 200


@reservations_bp.get("/student-schedule")
@require_roles("student")
def student_schedule():
    student = g.user
    now = app_clock()()
    if not (student.department and student.year and student.block):
        return jsonify(class_schedules=[], reservations=[], instructors=[]), 200

    order = {name: i for i, name in enumerate(WEEKDAYS)}
    classes = (
        ClassSchedule.query
        .join(User, ClassSchedule.instructor_id == User.id)
        .filter(
            User.department == student.department,
            User.year == student.year,
            User.block == student.block,
        )
        .all()
    )
    classes.sort(key=lambda cs: (order.get(cs.day, len(order)), cs.start_time))

    instructors = (
        User.query
        .filter_by(role="instructor", department=student.department, year=student.year, block=student.block)
        .order_by(User.name.asc())
        .all()
    )

    reservations = (
        Reservation.query
        .filter(
            Reservation.course == student.department,
            Reservation.year == student.year,
            Reservation.block == student.block,
            Reservation.status == "approved",
            Reservation.date >= now.date(),
        )
        .order_by(Reservation.date.asc(), Reservation.start_time.asc())
        .all()
    )

    return jsonify(
        class_schedules=[cs.to_dict() for cs in classes],
        reservations=[r.to_dict(now=now) for r in reservations],
        instructors=[{"id": u.id, "name": u.name, "email": u.email} for u in instructors],
    ), 200
