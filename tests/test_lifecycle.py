from types import SimpleNamespace

import pytest

from services.actor import Actor
from services.errors import AuthorizationError, StateError, ValidationError
from services.lifecycle import check_transition, transition_event

OWNER = Actor(user_id=1, role="student")
STRANGER = Actor(user_id=2, role="student")
ADMIN = Actor(user_id=9, role="admin")


def reservation(status, owner_id=1):
    return SimpleNamespace(id=42, user_id=owner_id, status=status)


@pytest.mark.parametrize("target", ["approved", "rejected", "cancelled"])
def test_admin_can_resolve_pending(target):
    check_transition(reservation("pending"), ADMIN, target)


def test_owner_can_cancel_pending_and_approved():
    check_transition(reservation("pending"), OWNER, "cancelled")
    check_transition(reservation("approved"), OWNER, "cancelled")


@pytest.mark.parametrize("target", ["approved", "rejected"])
def test_owner_cannot_approve_or_reject(target):
    with pytest.raises(AuthorizationError):
        check_transition(reservation("pending"), OWNER, target)


@pytest.mark.parametrize("target", ["approved", "rejected"])
def test_instructor_owner_cannot_approve_or_reject(target):
    """Instructors book rooms too, but approval stays with admins."""
    instructor = Actor(user_id=7, role="instructor")
    with pytest.raises(AuthorizationError):
        check_transition(reservation("pending", owner_id=7), instructor, target)


def test_instructor_owner_can_cancel():
    instructor = Actor(user_id=7, role="instructor")
    check_transition(reservation("approved", owner_id=7), instructor, "cancelled")


def test_authorization_checked_before_state():
    """A student asking to approve a cancelled booking is told no, not 'wrong state'."""
    with pytest.raises(AuthorizationError):
        check_transition(reservation("cancelled"), OWNER, "approved")


def test_stranger_cannot_cancel():
    with pytest.raises(AuthorizationError):
        check_transition(reservation("pending"), STRANGER, "cancelled")


def test_admin_cancels_any_reservation():
    check_transition(reservation("approved", owner_id=5), ADMIN, "cancelled")


@pytest.mark.parametrize("current", ["rejected", "cancelled"])
@pytest.mark.parametrize("target", ["approved", "rejected", "cancelled"])
def test_terminal_statuses_cannot_move(current, target):
    with pytest.raises(StateError) as exc:
        check_transition(reservation(current), ADMIN, target)
    assert exc.value.current_status == current
    assert exc.value.requested_status == target


def test_approved_cannot_be_rejected_or_reapproved():
    for target in ("approved", "rejected"):
        with pytest.raises(StateError):
            check_transition(reservation("approved"), ADMIN, target)


@pytest.mark.parametrize("target", ["pending", "completed"])
def test_unreachable_statuses_are_state_errors(target):
    with pytest.raises(StateError):
        check_transition(reservation("pending"), ADMIN, target)


def test_unknown_status_is_validation_error():
    with pytest.raises(ValidationError):
        check_transition(reservation("pending"), ADMIN, "archived")


def test_approval_event_names_the_admin():
    event = transition_event(reservation("pending"), ADMIN, "approved")
    assert event.kind == "approved"
    assert event.reservation_id == 42
    assert event.owner_id == 1
    assert event.actor_id == ADMIN.user_id


def test_owner_cancellation_has_no_actor():
    event = transition_event(reservation("approved"), OWNER, "cancelled")
    assert event.actor_id is None


def test_admin_cancelling_someone_elses_booking_is_attributed():
    event = transition_event(reservation("approved", owner_id=5), ADMIN, "cancelled")
    assert event.actor_id == ADMIN.user_id
    assert event.owner_id == 5
