from datetime import datetime
from models.db import db

# index matches date.weekday()
WEEKDAYS = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class ClassSchedule(db.Model):
    __tablename__ = "class_schedules"

    id = db.Column(db.Integer, primary_key=True)
    room_id = db.Column(db.Integer, db.ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    instructor_id = db.Column(db.Integer, db.ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    course_code = db.Column(db.String(50), nullable=False)
    course_name = db.Column(db.String(255), nullable=False)
    day = db.Column(db.String(10), nullable=False)
    start_time = db.Column(db.Time, nullable=False)
    end_time = db.Column(db.Time, nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    room = db.relationship("Room", back_populates="class_schedules")
    instructor = db.relationship("User")

    __table_args__ = (
        db.Index("ix_class_schedules_room_day", "room_id", "day"),
    )

    def to_dict(self):
        return {
            "id": self.id,
            "room_id": self.room_id,
            "instructor_id": self.instructor_id,
            "course_code": self.course_code,
            "course_name": self.course_name,
            "day": self.day,
            "start_time": self.start_time.strftime("%H:%M:%S"),
            "end_time": self.end_time.strftime("%H:%M:%S"),
            "room": self.room.to_dict() if self.room else None,
            "instructor_name": self.instructor.name if self.instructor else None,
        }
