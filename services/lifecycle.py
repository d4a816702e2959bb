"""Reservation status transitions.

    pending  -> approved | rejected | cancelled
    approved -> cancelled

Only admins approve or reject. Cancelling is open to the owner and to admins.
"completed" is never written; it is derived from the clock (see retention).
"""

from typing import Optional

from models.reservation import RESERVATION_STATUSES
from services.actor import Actor
from services.errors import AuthorizationError, StateError, ValidationError
from services.events import ReservationEvent

# requested status -> statuses it may be reached from
TRANSITIONS = {
    "approved": ("pending",),
    "rejected": ("pending",),
    "cancelled": ("pending", "approved"),
}

ADMIN_ONLY = {"approved", "rejected"}

KNOWN_STATUSES = set(RESERVATION_STATUSES) | {"completed"}


def check_transition(reservation, actor: Actor, new_status: str) -> None:
    """Raise unless ``actor`` may move ``reservation`` to ``new_status``.

    Authorization is decided before reachability so a student probing an
    admin-only transition always gets the same answer.
    """
    if new_status not in KNOWN_STATUSES:
        raise ValidationError(
            "Invalid status. Must be one of: approved, rejected, cancelled",
            fields={"status": "invalid"},
        )

    if new_status not in TRANSITIONS:
        # pending / completed are not reachable through a status change
        raise StateError(reservation.status, new_status)

    if new_status in ADMIN_ONLY:
        if not actor.is_admin:
            raise AuthorizationError("Only administrators can approve or reject reservations")
    elif not (actor.is_admin or actor.owns(reservation)):
        raise AuthorizationError("You can only cancel your own reservations")

    if reservation.status not in TRANSITIONS[new_status]:
        raise StateError(reservation.status, new_status)


def transition_event(reservation, actor: Actor, new_status: str) -> Optional[ReservationEvent]:
    """The notification event a successful transition produces."""
    if new_status in ADMIN_ONLY:
        actor_id = actor.user_id
    elif actor.is_admin and not actor.owns(reservation):
        actor_id = actor.user_id
    else:
        # self-service cancellation carries no admin attribution
        actor_id = None

    return ReservationEvent(
        reservation_id=reservation.id,
        owner_id=reservation.user_id,
        actor_id=actor_id,
        kind=new_status,
    )
