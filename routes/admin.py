import secrets

from flask import Blueprint, jsonify, g, request

from models import db
from models.class_schedule import ClassSchedule
from models.notification import Notification
from models.reservation import Reservation
from models.session import Session
from models.user import User, ROLES
from security.password import hash_password, validate_password
from security.rbac import require_roles
from security.session import revoke_all_sessions
from utils.audit import log_event
from utils.auth_context import login_required

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")

PROFILE_FIELDS = {"name": 255, "student_id": 50, "department": 255, "year": 10, "block": 10}

# required on student accounts
STUDENT_FIELDS = ("student_id", "department", "year", "block")


def _clean(value, max_len):
    if value is None:
        return None
    value = str(value).strip()
    return value[:max_len] or None


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _student_id_taken(student_id, exclude_user_id=None) -> bool:
    q = User.query.filter(User.student_id == student_id)
    if exclude_user_id is not None:
        q = q.filter(User.id != exclude_user_id)
    return q.first() is not None


@admin_bp.get("/users")
@require_roles("admin")
def list_users():
    role_filter = (request.args.get("role") or "").strip().lower()
    q = User.query
    if role_filter:
        if role_filter not in ROLES:
            return jsonify(error="Invalid role filter"), 400
        q = q.filter_by(role=role_filter)

    users = q.order_by(User.created_at.desc()).limit(500).all()
    return jsonify(data=[u.to_dict() for u in users]), 200


@admin_bp.get("/instructors")
@login_required
def list_instructors():
    # any signed-in user
    rows = User.query.filter_by(role="instructor").order_by(User.name.asc()).all()
    return jsonify(data=[
        {"id": u.id, "name": u.name, "email": u.email, "department": u.department}
        for u in rows
    ]), 200


@admin_bp.post("/users")
@require_roles("admin")
def create_user():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    role = (data.get("role") or "").strip().lower()
    fields = {k: _clean(data.get(k), n) for k, n in PROFILE_FIELDS.items()}

    if not fields["name"] or not email or not password or not role:
        return jsonify(error="Missing required fields"), 400
    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if role not in ROLES:
        return jsonify(error="Role must be one of: " + ", ".join(ROLES)), 400
    if role == "student":
        missing = [k for k in STUDENT_FIELDS if not fields[k]]
        if missing:
            return jsonify(error="Student accounts require: " + ", ".join(missing)), 400
    errors = validate_password(password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400

    if User.query.filter_by(email=email).first():
        return jsonify(error="Email address is already registered"), 409
    if role == "student" and _student_id_taken(fields["student_id"]):
        return jsonify(error="Student ID is already registered"), 409

    user = User(email=email, password_hash=hash_password(password), role=role, **fields)
    db.session.add(user)
    db.session.commit()

    log_event("USER_CREATE", user_id=g.user.id, entity="user", entity_id=user.id, metadata={"role": role})
    return jsonify(data=user.to_dict()), 201




@admin_bp.patch("/users/<int:user_id>")
@require_roles("admin")
def update_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404

    data = request.get_json(silent=True) or {}
    updates = {k: _clean(data.get(k), n) for k, n in PROFILE_FIELDS.items() if k in data}
    if "name" in updates and not updates["name"]:
        return jsonify(error="Name is required"), 400

    if "role" in data:
        role = (data.get("role") or "").strip().lower()
        if role not in ROLES:
            return jsonify(error="Role must be one of: " + ", ".join(ROLES)), 400
        if user.role == "admin" and role != "admin":
            return jsonify(error="Cannot change role of administrator accounts"), 403
        updates["role"] = role

    if "email" in data:
        email = (data.get("email") or "").strip().lower()
        if not _is_valid_email(email):
            return jsonify(error="Invalid email"), 400
        if User.query.filter(User.email == email, User.id != user.id).first():
            return jsonify(error="Email address is already registered"), 409
        updates["email"] = email

    password = data.get("password")
    if password is not None and str(password).strip():
        errors = validate_password(password)
        if errors:
            return jsonify(error="Password does not meet policy", details=errors), 400

    role = updates.get("role", user.role)
    if role == "student":
        missing = [k for k in STUDENT_FIELDS if not updates.get(k, getattr(user, k))]
        if missing:
            return jsonify(error="Student accounts require: " + ", ".join(missing)), 400
        student_id = updates.get("student_id", user.student_id)
        if _student_id_taken(student_id, exclude_user_id=user.id):
            return jsonify(error="Student ID is already registered"), 409

    changed = sorted(k for k, v in updates.items() if getattr(user, k) != v)
    if password is not None and str(password).strip():
        user.password_hash = hash_password(password)
        changed.append("password")
    if not updates and "password" not in changed:
        return jsonify(error="No fields to update"), 400

    for key, value in updates.items():
        setattr(user, key, value)
    db.session.commit()

    revoked = 0
    if "password" in changed or "role" in changed:
        # existing sessions end on a password or role change
        revoked = revoke_all_sessions(user.id)

    log_event(
        "USER_UPDATE", user_id=g.user.id, entity="user", entity_id=user.id,
        metadata={"fields": changed, "revoked_sessions": revoked},
    )
    return jsonify(message="User updated successfully", data=user.to_dict()), 200


@admin_bp.delete("/users/<int:user_id>")
@require_roles("admin")
def delete_user(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404
    if user.role == "admin":
        return jsonify(error="Cannot delete administrator accounts"), 403

    # SQLite does not enforce ON DELETE
    Session.query.filter_by(user_id=user.id).delete()
    Notification.query.filter_by(user_id=user.id).delete()
    Notification.query.filter_by(sender_id=user.id).update({"sender_id": None})
    Reservation.query.filter_by(user_id=user.id).delete()
    ClassSchedule.query.filter_by(instructor_id=user.id).delete()
    db.session.delete(user)
    db.session.commit()

    log_event("USER_DELETE", user_id=g.user.id, entity="user", entity_id=user_id)
    return jsonify(message="User deleted successfully"), 200


@admin_bp.patch("/users/<int:user_id>/reset-password")
@require_roles("admin")
def reset_password(user_id: int):
    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404
    if user.role == "admin":
        return jsonify(error="Cannot reset password for admin users"), 403

    temporary = secrets.token_urlsafe(12)
    user.password_hash = hash_password(temporary)
    db.session.commit()
    revoked = revoke_all_sessions(user.id)

    log_event(
        "USER_PASSWORD_RESET", user_id=g.user.id, entity="user", entity_id=user.id,
        metadata={"revoked_sessions": revoked},
    )
    # shown once; the user changes it after logging in
    return jsonify(message="Password reset successfully", temporary_password=temporary), 200


@admin_bp.patch("/users/<int:user_id>/status")
@require_roles("admin")
def update_user_status(user_id: int):
    data = request.get_json(silent=True) or {}
    is_active = data.get("is_active")
    if not isinstance(is_active, bool):
        return jsonify(error="is_active must be a boolean"), 400

    user = db.session.get(User, user_id)
    if not user:
        return jsonify(error="User not found"), 404
    if user.id == g.user.id:
        return jsonify(error="You cannot change your own account status"), 400

    user.is_active = is_active
    db.session.commit()

    revoked = 0
    if not is_active:
        revoked = revoke_all_sessions(user.id)

    log_event(
        "USER_ACTIVATE" if is_active else "USER_DEACTIVATE",
        user_id=g.user.id, entity="user", entity_id=user.id,
        metadata={"revoked_sessions": revoked},
    )
    return jsonify(data=user.to_dict()), 200
