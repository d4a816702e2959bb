from datetime import datetime

from flask import Blueprint, request, jsonify, g
from sqlalchemy import case, or_

from models import db
from models.notification import Notification
from utils.auth_context import login_required

notifications_bp = Blueprint("notifications", __name__, url_prefix="/notifications")


def _visible():
    now = datetime.utcnow()
    return Notification.query.filter(
        Notification.user_id == g.user.id,
        or_(Notification.expires_at.is_(None), Notification.expires_at > now),
    )


@notifications_bp.get("")
@login_required
def list_notifications():
    limit = request.args.get("limit", type=int) or 50
    limit = max(1, min(limit, 200))

    rows = (
        _visible()
        .order_by(
            case((Notification.is_read.is_(False), 0), else_=1),
            case((Notification.is_important.is_(True), 0), else_=1),
            Notification.created_at.desc(),
        )
        .limit(limit)
        .all()
    )
    return jsonify(data=[n.to_dict() for n in rows]), 200


@notifications_bp.get("/unread-count")
@login_required
def unread_count():
    count = _visible().filter(Notification.is_read.is_(False)).count()
    return jsonify(count=count), 200


@notifications_bp.patch("/<int:notification_id>")
@login_required
def mark_read(notification_id: int):
    row = Notification.query.filter_by(id=notification_id, user_id=g.user.id).first()
    if not row:
        return jsonify(error="Notification not found"), 404

    if not row.is_read:
        row.is_read = True
        row.read_at = datetime.utcnow()
        db.session.commit()
    return jsonify(data=row.to_dict()), 200


@notifications_bp.post("/read-all")
@login_required
def mark_all_read():
    now = datetime.utcnow()
    updated = (
        Notification.query
        .filter_by(user_id=g.user.id, is_read=False)
        .update({"is_read": True, "read_at": now}, synchronize_session=False)
    )
    db.session.commit()
    return jsonify(updated=updated), 200


@notifications_bp.delete("/<int:notification_id>")
@login_required
def delete_notification(notification_id: int):
    row = Notification.query.filter_by(id=notification_id, user_id=g.user.id).first()
    if not row:
        return jsonify(error="Notification not found"), 404

    db.session.delete(row)
    db.session.commit()
    return jsonify(message="Notification deleted"), 200
