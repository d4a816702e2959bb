from datetime import datetime
from models.db import db

ROOM_TYPES = ("classroom", "lab", "conference")


class Room(db.Model):
    __tablename__ = "rooms"

    id = db.Column(db.Integer, primary_key=True)
    room_number = db.Column(db.String(50), unique=True, nullable=False)
    building = db.Column(db.String(255), nullable=False)
    capacity = db.Column(db.Integer, nullable=False)
    type = db.Column(db.String(20), nullable=False, default="classroom")
    equipment = db.Column(db.Text, nullable=True)

    # admin toggle; does not touch existing reservations
    is_available = db.Column(db.Boolean, default=True, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    reservations = db.relationship(
        "Reservation", back_populates="room", cascade="all, delete-orphan"
    )
    class_schedules = db.relationship(
        "ClassSchedule", back_populates="room", cascade="all, delete-orphan"
    )

    def to_dict(self):
        return {
            "id": self.id,
            "room_number": self.room_number,
            "building": self.building,
            "capacity": self.capacity,
            "type": self.type,
            "equipment": self.equipment,
            "is_available": self.is_available,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
