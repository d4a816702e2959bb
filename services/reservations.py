import logging
from datetime import date, datetime, time
from typing import Callable, List, Optional

from sqlalchemy import select

from models.reservation import Reservation
from models.room import Room
from models.user import User
from services.actor import Actor
from services.conflicts import Conflict, ConflictDetector
from services.errors import (
    AuthorizationError,
    ConflictError,
    NotFoundError,
    StateError,
    ValidationError,
)
from services.events import EventDispatcher, ReservationEvent
from services.lifecycle import check_transition, transition_event
from services.locks import RoomLockRegistry
from services.retention import RetentionDecision, can_delete
from services.transaction import transaction

logger = logging.getLogger(__name__)

CLASSIFICATION_FIELDS = ("course", "year", "block")
EDITABLE_FIELDS = ("room_id", "date", "start_time", "end_time", "purpose")


def validate_interval(start_time: time, end_time: time) -> None:
    if end_time <= start_time:
        raise ValidationError(
            "end_time must be after start_time",
            fields={"end_time": "must be after start_time"},
        )


class ReservationService:
    """Reservation operations over one database session.

    Collaborators are injected: the session, the per-room lock registry, the
    post-commit event dispatcher and a clock returning naive local time.
    """

    def __init__(
        self,
        session,
        locks: RoomLockRegistry,
        events: EventDispatcher,
        clock: Callable[[], datetime] = datetime.now,
        require_instructor_classification: bool = True,
    ):
        self.session = session
        self.locks = locks
        self.events = events
        self.clock = clock
        self.require_instructor_classification = require_instructor_classification
        self.detector = ConflictDetector(session)

    # ---------- lookups ----------

    def _get_reservation(self, reservation_id: int, for_update: bool = False) -> Reservation:
        stmt = select(Reservation).where(Reservation.id == reservation_id)
        if for_update:
            stmt = stmt.with_for_update()
        reservation = self.session.execute(stmt).scalar_one_or_none()
        if reservation is None:
            raise NotFoundError("Reservation not found")
        return reservation

    def _lock_room(self, room_id: int) -> Room:
        # row lock serializes per room across processes where the backend supports it
        stmt = select(Room).where(Room.id == room_id).with_for_update()
        room = self.session.execute(stmt).scalar_one_or_none()
        if room is None:
            raise NotFoundError("Room not found")
        return room

    def get_reservation(self, reservation_id: int, actor: Actor) -> Reservation:
        reservation = self._get_reservation(reservation_id)
        if not (actor.is_admin or actor.owns(reservation)):
            # same answer as a missing row
            raise NotFoundError("Reservation not found")
        return reservation

    def list_reservations(self, actor: Actor, status: Optional[str] = None,
                          room_id: Optional[int] = None, day: Optional[date] = None) -> List[Reservation]:
        stmt = select(Reservation)
        if not actor.is_admin:
            stmt = stmt.where(Reservation.user_id == actor.user_id)
        if status:
            stmt = stmt.where(Reservation.status == status)
        if room_id:
            stmt = stmt.where(Reservation.room_id == room_id)
        if day:
            stmt = stmt.where(Reservation.date == day)
        stmt = stmt.order_by(Reservation.date.desc(), Reservation.start_time.asc())
        return list(self.session.execute(stmt).scalars())

    # ---------- conflicts & creation ----------

    def check_conflicts(self, room_id: int, day: date, start_time: time, end_time: time,
                        exclude_reservation_id: Optional[int] = None) -> List[Conflict]:
        validate_interval(start_time, end_time)
        try:
            return self.detector.check(room_id, day, start_time, end_time, exclude_reservation_id)
        finally:
            # release the read transaction
            self.session.rollback()

    def _classification(self, requester: User, classification: Optional[dict]) -> dict:
        given = {k: (classification or {}).get(k) or None for k in CLASSIFICATION_FIELDS}

        if requester.role == "instructor":
            missing = [k for k in CLASSIFICATION_FIELDS if not given[k]]
            if missing and self.require_instructor_classification:
                raise ValidationError(
                    "Course, year, and block are required for instructor reservations",
                    fields={k: "required" for k in missing},
                )
            return given

        if requester.role == "student":
            defaults = {"course": requester.department, "year": requester.year, "block": requester.block}
            return {k: given[k] or defaults[k] for k in CLASSIFICATION_FIELDS}

        return given

    def create_reservation(self, room_id: int, requester_id: int, day: date, start_time: time,
                           end_time: time, purpose: str, classification: Optional[dict] = None) -> Reservation:
        validate_interval(start_time, end_time)
        if not purpose or not purpose.strip():
            raise ValidationError("purpose is required", fields={"purpose": "required"})

        with self.locks.hold(room_id):
            with transaction(self.session):
                requester = self.session.get(User, requester_id)
                if requester is None:
                    raise NotFoundError("User not found")
                fields = self._classification(requester, classification)

                self._lock_room(room_id)
                conflicts = self.detector.check(room_id, day, start_time, end_time)
                if conflicts:
                    raise ConflictError(conflicts)

                reservation = Reservation(
                    room_id=room_id,
                    user_id=requester_id,
                    date=day,
                    start_time=start_time,
                    end_time=end_time,
                    purpose=purpose.strip(),
                    status="pending",
                    **fields,
                )
                self.session.add(reservation)
                self.session.flush()
                reservation_id = reservation.id

        logger.info("Reservation %s created for room %s on %s", reservation_id, room_id, day)
        self.events.dispatch([ReservationEvent(reservation_id, requester_id, None, "created")])
        return self._get_reservation(reservation_id)

    # ---------- edits ----------

    def update_reservation(self, reservation_id: int, actor: Actor, changes: dict) -> Reservation:
        if "status" in changes:
            raise ValidationError(
                "Use the status endpoint to change a reservation's status",
                fields={"status": "not editable here"},
            )

        current = self._get_reservation(reservation_id)
        if not (actor.is_admin or actor.owns(current)):
            raise AuthorizationError("You can only edit your own reservations")
        old_room_id = current.room_id
        new_room_id = changes.get("room_id") or old_room_id
        self.session.rollback()

        with self.locks.hold(old_room_id, new_room_id):
            with transaction(self.session):
                reservation = self._get_reservation(reservation_id, for_update=True)
                if not actor.is_admin and reservation.status != "pending":
                    raise StateError(reservation.status, "updated", "Only pending reservations can be edited")

                applied = {k: changes[k] for k in EDITABLE_FIELDS if changes.get(k) is not None}
                if actor.role in ("instructor", "admin"):
                    applied.update({k: changes[k] for k in CLASSIFICATION_FIELDS if k in changes})
                if actor.is_admin and "admin_notes" in changes:
                    applied["admin_notes"] = changes["admin_notes"]
                if not applied:
                    raise ValidationError("No valid fields to update")

                moved = any(
                    k in applied and applied[k] != getattr(reservation, k)
                    for k in ("room_id", "date", "start_time", "end_time")
                )
                for key, value in applied.items():
                    setattr(reservation, key, value)
                validate_interval(reservation.start_time, reservation.end_time)

                if moved:
                    self._lock_room(reservation.room_id)
                if moved and reservation.status in ("pending", "approved"):
                    conflicts = self.detector.check(
                        reservation.room_id,
                        reservation.date,
                        reservation.start_time,
                        reservation.end_time,
                        exclude_reservation_id=reservation.id,
                    )
                    if conflicts:
                        raise ConflictError(conflicts)
                owner_id = reservation.user_id

        if actor.is_admin and owner_id != actor.user_id:
            self.events.dispatch([ReservationEvent(reservation_id, owner_id, actor.user_id, "updated")])
        return self._get_reservation(reservation_id)

    # ---------- lifecycle ----------

    def transition_status(self, reservation_id: int, actor: Actor, new_status: str,
                          notes: Optional[str] = None) -> Reservation:
        current = self._get_reservation(reservation_id)
        room_id = current.room_id
        self.session.rollback()

        with self.locks.hold(room_id):
            with transaction(self.session):
                reservation = self._get_reservation(reservation_id, for_update=True)
                check_transition(reservation, actor, new_status)

                previous = reservation.status
                reservation.status = new_status
                if notes is not None:
                    reservation.admin_notes = notes
                event = transition_event(reservation, actor, new_status)

        logger.info(
            "Reservation %s: %s -> %s by user %s", reservation_id, previous, new_status, actor.user_id
        )
        self.events.dispatch([event])
        return self._get_reservation(reservation_id)

    # ---------- history retention ----------

    def explain_deletion(self, reservation_id: int, actor: Actor) -> RetentionDecision:
        reservation = self._get_reservation(reservation_id)
        return can_delete(reservation, actor, self.clock())

    def can_delete_from_history(self, reservation_id: int, actor: Actor) -> bool:
        return self.explain_deletion(reservation_id, actor).allowed

    def delete_from_history(self, reservation_id: int, actor: Actor) -> None:
        with transaction(self.session):
            reservation = self._get_reservation(reservation_id, for_update=True)
            decision = can_delete(reservation, actor, self.clock())
            if not decision.allowed:
                if decision.code == "forbidden":
                    raise AuthorizationError(decision.reason)
                raise StateError(reservation.status, "deleted", decision.reason)
            self.session.delete(reservation)

        logger.info("Reservation %s deleted from history by user %s", reservation_id, actor.user_id)

    def purge_history(self, actor: Actor) -> int:
        """Hard-delete every record the actor owns that the policy allows."""
        now = self.clock()
        with transaction(self.session):
            stmt = select(Reservation).where(Reservation.user_id == actor.user_id)
            deleted = 0
            for reservation in self.session.execute(stmt).scalars().all():
                if can_delete(reservation, actor, now).allowed:
                    self.session.delete(reservation)
                    deleted += 1
        return deleted
