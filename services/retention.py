from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from services.actor import Actor

# always deletable once the actor is allowed at all
TERMINAL_STATUSES = ("cancelled", "rejected")


@dataclass(frozen=True)
class RetentionDecision:
    allowed: bool
    reason: Optional[str] = None
    code: Optional[str] = None  # forbidden | pending | upcoming | status

    def __bool__(self):
        return self.allowed


def is_past(reservation, now: datetime) -> bool:
    return now > datetime.combine(reservation.date, reservation.end_time)


def effective_status(reservation, now: datetime) -> str:
    """Stored status, with past approved reservations shown as completed."""
    if reservation.status == "approved" and is_past(reservation, now):
        return "completed"
    return reservation.status


def can_delete(reservation, actor: Actor, now: datetime) -> RetentionDecision:
    if not (actor.is_admin or actor.owns(reservation)):
        return RetentionDecision(False, "You can only delete your own reservations", "forbidden")

    if reservation.status == "pending":
        return RetentionDecision(
            False,
            "Pending reservations cannot be deleted from history. Please cancel them first.",
            "pending",
        )

    if reservation.status == "approved":
        if is_past(reservation, now):
            return RetentionDecision(True)
        return RetentionDecision(
            False,
            "Upcoming approved reservations cannot be deleted. Please cancel them first.",
            "upcoming",
        )

    if reservation.status in TERMINAL_STATUSES:
        return RetentionDecision(True)

    return RetentionDecision(
        False,
        "Only completed, cancelled, rejected, or past approved reservations can be deleted from history.",
        "status",
    )
