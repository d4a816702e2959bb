import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

logger = logging.getLogger(__name__)

EVENT_KINDS = ("created", "approved", "rejected", "cancelled", "updated")


@dataclass(frozen=True)
class ReservationEvent:
    reservation_id: int
    owner_id: int
    actor_id: Optional[int]
    kind: str


class EventDispatcher:
    """Hands committed reservation events to the notification emitter.

    Runs only after the state change has been committed, and never lets an
    emitter failure escape to the caller.
    """

    def __init__(self, emitter: Callable[[ReservationEvent], None], log=None):
        self.emitter = emitter
        self.log = log or logger

    def dispatch(self, events: Iterable[Optional[ReservationEvent]]) -> int:
        sent = 0
        for event in events:
            if event is None:
                continue
            try:
                self.emitter(event)
                sent += 1
            except Exception:
                self.log.exception(
                    "Notification failed for reservation %s (%s)", event.reservation_id, event.kind
                )
        return sent
