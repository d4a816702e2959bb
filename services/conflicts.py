"""Conflict detection for candidate reservations.

A candidate conflicts with same-date reservations that still hold the slot
(pending or approved) and with weekly class schedules on the matching weekday.
Rejected and cancelled reservations never block a slot, so a rejected request
can be made again.
"""

from dataclasses import dataclass
from datetime import date, time
from typing import List, Optional

from sqlalchemy import select

from models.class_schedule import ClassSchedule, WEEKDAYS
from models.reservation import Reservation, ACTIVE_STATUSES
from services.overlap import overlaps


def weekday_name(day: date) -> str:
    return WEEKDAYS[day.weekday()]


@dataclass(frozen=True)
class Conflict:
    kind: str  # "reservation" or "class"
    id: int
    title: str
    name: str
    start_time: time
    end_time: time
    status: Optional[str] = None

    def to_dict(self):
        start = self.start_time.strftime("%H:%M:%S")
        end = self.end_time.strftime("%H:%M:%S")
        return {
            "id": self.id,
            "type": self.kind,
            "title": self.title,
            "instructor": self.name,
            "start_time": start,
            "end_time": end,
            "time": f"{start} - {end}",
            "status": self.status,
        }


class ConflictDetector:
    def __init__(self, session):
        self.session = session

    def check(
        self,
        room_id: int,
        day: date,
        start_time: time,
        end_time: time,
        exclude_reservation_id: Optional[int] = None,
    ) -> List[Conflict]:
        """Return every reservation and class that overlaps the candidate.

        Reservations come first, then classes, each ordered by start time.
        Read-only; the caller owns the transaction.
        """
        conflicts = self._reservation_conflicts(room_id, day, start_time, end_time, exclude_reservation_id)
        conflicts.extend(self._class_conflicts(room_id, weekday_name(day), start_time, end_time))
        return conflicts

    def _reservation_conflicts(self, room_id, day, start_time, end_time, exclude_id):
        stmt = (
            select(Reservation)
            .where(
                Reservation.room_id == room_id,
                Reservation.date == day,
                Reservation.status.in_(ACTIVE_STATUSES),
            )
            .order_by(Reservation.start_time.asc(), Reservation.id.asc())
        )
        if exclude_id is not None:
            stmt = stmt.where(Reservation.id != exclude_id)

        out = []
        for r in self.session.execute(stmt).scalars():
            if overlaps(r.start_time, r.end_time, start_time, end_time):
                out.append(Conflict(
                    kind="reservation",
                    id=r.id,
                    title=r.purpose,
                    name=r.user.name if r.user else "",
                    start_time=r.start_time,
                    end_time=r.end_time,
                    status=r.status,
                ))
        return out

    def _class_conflicts(self, room_id, day_name, start_time, end_time):
        stmt = (
            select(ClassSchedule)
            .where(ClassSchedule.room_id == room_id, ClassSchedule.day == day_name)
            .order_by(ClassSchedule.start_time.asc(), ClassSchedule.id.asc())
        )

        out = []
        for cs in self.session.execute(stmt).scalars():
            if overlaps(cs.start_time, cs.end_time, start_time, end_time):
                out.append(Conflict(
                    kind="class",
                    id=cs.id,
                    title=cs.course_name,
                    name=cs.instructor.name if cs.instructor else "",
                    start_time=cs.start_time,
                    end_time=cs.end_time,
                ))
        return out
