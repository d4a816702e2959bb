from datetime import datetime
from models.db import db

RESERVATION_STATUSES = ("pending", "approved", "rejected", "cancelled")

# statuses that hold a room slot
ACTIVE_STATUSES = ("pending", "approved")


class Reservation(db.Model):
    __tablename__ = "reservations"

    id = db.Column(db.Integer, primary_key=True)

    room_id = db.Column(db.Integer, db.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)
    purpose = db.Column(db.String(255), nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending")
    # status values: pending, approved, rejected, cancelled ("completed" is derived)
    admin_notes = db.Column(db.Text, nullable=True)

    # classification copied from the requester
    course = db.Column(db.String(255), nullable=True)
    year = db.Column(db.String(10), nullable=True)
    block = db.Column(db.String(10), nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    room = db.relationship("Room", back_populates="reservations")
    user = db.relationship("User")

    __table_args__ = (
        db.Index("ix_reservations_room_date_status", "room_id", "date", "status"),
    )

    def to_dict(self, now=None):
        from services.retention import effective_status

        return {
            "id": self.id,
            "room_id": self.room_id,
            "user_id": self.user_id,
            "date": self.date.isoformat(),
            "start_time": self.start_time.strftime("%H:%M:%S"),
            "end_time": self.end_time.strftime("%H:%M:%S"),
            "purpose": self.purpose,
            "status": self.status,
            "effective_status": effective_status(self, now or datetime.now()),
            "admin_notes": self.admin_notes,
            "course": self.course,
            "year": self.year,
            "block": self.block,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
            "room": self.room.to_dict() if self.room else None,
            "user": {
                "id": self.user.id,
                "name": self.user.name,
                "email": self.user.email,
                "role": self.user.role,
            } if self.user else None,
        }
