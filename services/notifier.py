"""In-app notifications for reservation and room events."""

from datetime import datetime, timedelta

from sqlalchemy import select

from models.notification import Notification
from models.reservation import Reservation
from models.user import User

DEFAULT_TTL_HOURS = {"created": 72}
FALLBACK_TTL_HOURS = 48


def format_time_12h(value) -> str:
    # 13:15 -> "1:15 PM"
    hours12 = value.hour % 12 or 12
    period = "PM" if value.hour >= 12 else "AM"
    return f"{hours12}:{value.minute:02d} {period}"


def format_date_readable(value) -> str:
    # 2025-12-06 -> "December 6, 2025"
    return f"{value.strftime('%B')} {value.day}, {value.year}"


def resolve_recipients(session, target):
    """``target`` is a list of user ids or one of: all, admin, instructors, students."""
    if not isinstance(target, str):
        return list(target)

    roles = {
        "all": ("student", "instructor", "admin"),
        "admin": ("admin",),
        "instructors": ("instructor",),
        "students": ("student",),
    }[target]
    stmt = select(User.id).where(User.role.in_(roles), User.is_active.is_(True))
    return list(session.execute(stmt).scalars())


def create_notifications(session, target, sender_id, type_, title, message,
                         related_table=None, related_id=None, is_important=False,
                         expires_in_hours=None, now=None):
    """Insert one row per recipient; returns the rows. The caller commits."""
    now = now or datetime.utcnow()
    expires_at = now + timedelta(hours=expires_in_hours) if expires_in_hours else None

    rows = []
    for user_id in resolve_recipients(session, target):
        row = Notification(
            user_id=user_id,
            sender_id=sender_id,
            type=type_,
            title=title,
            message=message,
            related_table=related_table,
            related_id=related_id,
            is_important=is_important,
            expires_at=expires_at,
            created_at=now,
        )
        session.add(row)
        rows.append(row)
    return rows


class NotificationEmitter:
    """Turns a ReservationEvent into notification rows and commits them."""

    def __init__(self, session, ttl_hours=None):
        self.session = session
        self.ttl_hours = dict(DEFAULT_TTL_HOURS)
        self.ttl_hours.update(ttl_hours or {})

    def __call__(self, event):
        try:
            self._emit(event)
            self.session.commit()
        except Exception:
            self.session.rollback()
            raise

    def _emit(self, event):
        reservation = self.session.get(Reservation, event.reservation_id)
        owner = self.session.get(User, event.owner_id)
        if reservation is None or owner is None:
            return

        admin_name = "Admin"
        if event.actor_id:
            admin = self.session.get(User, event.actor_id)
            if admin is not None:
                admin_name = admin.name

        room_number = reservation.room.room_number
        day = format_date_readable(reservation.date)
        time_range = f"{format_time_12h(reservation.start_time)} - {format_time_12h(reservation.end_time)}"
        important = False

        if event.kind == "created":
            title = f"New Reservation Request: {room_number}"
            message = (
                f"{owner.name} ({owner.email}) requested {room_number} on {day} "
                f"({time_range}) for: {reservation.purpose}"
            )
            target = "admin"
            important = True
        elif event.kind == "approved":
            title = f"Reservation Approved: {room_number}"
            message = f"Your reservation for {room_number} on {day} ({time_range}) has been approved by {admin_name}."
            target = [owner.id]
        elif event.kind == "rejected":
            title = f"Reservation Rejected: {room_number}"
            message = f"Your reservation for {room_number} on {day} ({time_range}) was rejected by {admin_name}."
            target = [owner.id]
            important = True
        elif event.kind == "cancelled":
            title = f"Reservation Cancelled: {room_number}"
            if event.actor_id:
                message = f"{admin_name} cancelled your reservation for {room_number} on {day}"
                target = [owner.id]
            else:
                message = f"{owner.name} cancelled their reservation for {room_number} on {day}"
                target = "admin"
            important = True
        elif event.kind == "updated":
            title = f"Reservation Updated: {room_number}"
            message = f"Your reservation for {room_number} on {day} ({time_range}) has been updated."
            target = [owner.id]
        else:
            raise ValueError(f"Unknown reservation event kind: {event.kind}")

        create_notifications(
            self.session,
            target,
            sender_id=event.actor_id or owner.id,
            type_=f"reservation_{event.kind}",
            title=title,
            message=message,
            related_table="reservations",
            related_id=reservation.id,
            is_important=important,
            expires_in_hours=self.ttl_hours.get(event.kind, FALLBACK_TTL_HOURS),
        )


def notify_room_created(session, room, admin_id):
    create_notifications(
        session,
        "all",
        sender_id=admin_id,
        type_="room_created",
        title=f"New Room Available: {room.room_number}",
        message=(
            f"A new room has been added to the system: {room.room_number} in {room.building}. "
            f"Capacity: {room.capacity} students."
        ),
        related_table="rooms",
        related_id=room.id,
    )


def notify_room_availability(session, room, admin_id):
    if room.is_available:
        type_ = "room_available"
        title = f"Room Now Available: {room.room_number}"
        message = f"{room.room_number} in {room.building} is now available for reservation."
    else:
        type_ = "room_unavailable"
        title = f"Room Unavailable: {room.room_number}"
        message = f"{room.room_number} in {room.building} is temporarily unavailable."

    create_notifications(
        session,
        "all",
        sender_id=admin_id,
        type_=type_,
        title=title,
        message=message,
        related_table="rooms",
        related_id=room.id,
    )
