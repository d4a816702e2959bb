from datetime import datetime

from flask import Blueprint, request, jsonify, current_app, g

from models import db
from models.user import User
from security.csrf import clear_csrf_token, issue_csrf_token
from security.password import hash_password, validate_password, verify_password
from security.session import create_session, revoke_all_sessions, revoke_session, token_from_request
from utils.audit import log_event
from utils.auth_context import login_required

auth_bp = Blueprint("auth", __name__, url_prefix="/auth")

# admins are created via `flask make-admin`, never through self-registration
SELF_REGISTER_ROLES = ("student", "instructor")


def _is_valid_email(email: str) -> bool:
    return isinstance(email, str) and "@" in email and len(email) <= 255


def _optional(data, name, max_len):
    value = data.get(name)
    if value is None:
        return None
    value = str(value).strip()
    return value[:max_len] or None


@auth_bp.post("/register")
def register():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""
    name = (data.get("name") or "").strip()
    role = (data.get("role") or "student").strip().lower()

    if not _is_valid_email(email):
        return jsonify(error="Invalid email"), 400
    if not name:
        return jsonify(error="Name is required"), 400
    if role not in SELF_REGISTER_ROLES:
        return jsonify(error="Role must be student or instructor"), 400
    errors = validate_password(password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400

    if User.query.filter_by(email=email).first():
        log_event("REGISTER_FAIL_EMAIL_EXISTS", metadata={"email": email})
        return jsonify(error="Email already registered"), 409

    user = User(
        email=email,
        password_hash=hash_password(password),
        name=name,
        role=role,
        student_id=_optional(data, "student_id", 50),
        department=_optional(data, "department", 255),
        year=_optional(data, "year", 10),
        block=_optional(data, "block", 10),
    )
    db.session.add(user)
    db.session.commit()
    log_event("REGISTER_SUCCESS", user_id=user.id, entity="user", entity_id=user.id)

    return jsonify(message="Registered successfully", data=user.to_dict()), 201


@auth_bp.post("/login")
def login():
    data = request.get_json(silent=True) or {}
    email = (data.get("email") or "").strip().lower()
    password = data.get("password") or ""

    user = User.query.filter_by(email=email).first()
    if not user or not verify_password(password, user.password_hash):
        log_event("LOGIN_FAIL", user_id=user.id if user else None, metadata={"email": email})
        return jsonify(error="Invalid credentials"), 401

    if not user.is_active:
        log_event("LOGIN_INACTIVE", user_id=user.id)
        return jsonify(error="Account is inactive. Contact an administrator."), 403

    user.last_login_at = datetime.utcnow()
    raw_token = create_session(user.id)

    resp = jsonify(message="Login OK", token=raw_token, user=user.to_dict())
    resp.set_cookie(
        current_app.config.get("AUTH_COOKIE_NAME", "roomres_session"),
        raw_token,
        httponly=True,
        secure=current_app.config.get("SESSION_COOKIE_SECURE", False),
        samesite=current_app.config.get("SESSION_COOKIE_SAMESITE", "Lax"),
        max_age=current_app.config.get("SESSION_LIFETIME_SECONDS", 8 * 60 * 60),
        path="/",
    )
    resp = issue_csrf_token(resp)

    log_event("LOGIN_SUCCESS", user_id=user.id)
    return resp, 200


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(data=g.user.to_dict()), 200


@auth_bp.post("/logout")
@login_required
def logout():
    revoke_session(token_from_request())
    log_event("LOGOUT", user_id=g.user.id)

    resp = jsonify(message="Logged out")
    resp.delete_cookie(current_app.config.get("AUTH_COOKIE_NAME", "roomres_session"), path="/")
    resp = clear_csrf_token(resp)
    return resp, 200


@auth_bp.post("/change_password")
@login_required
def change_password():
    data = request.get_json(silent=True) or {}
    current_password = data.get("current_password") or ""
    new_password = data.get("new_password") or ""

    if not verify_password(current_password, g.user.password_hash):
        return jsonify(error="Invalid current password"), 401

    errors = validate_password(new_password)
    if errors:
        return jsonify(error="Password does not meet policy", details=errors), 400

    g.user.password_hash = hash_password(new_password)
    db.session.commit()

    # other devices must log in again
    revoked = revoke_all_sessions(g.user.id)
    log_event("PASSWORD_CHANGED", user_id=g.user.id, metadata={"revoked_sessions": revoked})
    return jsonify(message="Password updated. Please log in again."), 200
