from datetime import date

from models import db
from services.conflicts import ConflictDetector, weekday_name

from conftest import MONDAY, t


def test_weekday_name_matches_calendar():
    assert weekday_name(MONDAY) == "monday"
    assert weekday_name(date(2025, 3, 16)) == "sunday"


def test_no_bookings_means_no_conflicts(make_room):
    room = make_room()
    assert ConflictDetector(db.session).check(room.id, MONDAY, t(9), t(11)) == []


def test_class_on_same_weekday_conflicts(make_room, make_user, make_class):
    room = make_room(room_number="5")
    prof = make_user("instructor", name="Prof. Reyes")
    make_class(room, prof, "monday", t(9), t(10), course_name="Data Structures")

    conflicts = ConflictDetector(db.session).check(room.id, MONDAY, t(9, 30), t(10, 30))

    assert len(conflicts) == 1
    body = conflicts[0].to_dict()
    assert body["type"] == "class"
    assert body["title"] == "Data Structures"
    assert body["instructor"] == "Prof. Reyes"
    assert body["time"] == "09:00:00 - 10:00:00"
    assert body["status"] is None


def test_class_on_other_weekday_is_ignored(make_room, make_user, make_class):
    room = make_room()
    make_class(room, make_user("instructor"), "tuesday", t(9), t(10))

    assert ConflictDetector(db.session).check(room.id, MONDAY, t(9), t(10)) == []


def test_rejected_and_cancelled_do_not_block(make_room, make_user, make_reservation):
    room = make_room()
    student = make_user()
    make_reservation(room, student, MONDAY, t(9), t(11), status="rejected")
    make_reservation(room, student, MONDAY, t(9), t(11), status="cancelled")

    assert ConflictDetector(db.session).check(room.id, MONDAY, t(9), t(11)) == []


def test_other_rooms_and_dates_are_ignored(make_room, make_user, make_reservation):
    room, other = make_room(), make_room()
    student = make_user()
    make_reservation(other, student, MONDAY, t(9), t(11))
    make_reservation(room, student, date(2025, 3, 11), t(9), t(11))

    assert ConflictDetector(db.session).check(room.id, MONDAY, t(9), t(11)) == []


def test_adjacent_reservation_does_not_conflict(make_room, make_user, make_reservation):
    room = make_room()
    make_reservation(room, make_user(), MONDAY, t(9), t(10))

    assert ConflictDetector(db.session).check(room.id, MONDAY, t(10), t(11)) == []


def test_reservations_listed_before_classes_in_start_order(make_room, make_user, make_reservation, make_class):
    room = make_room()
    student = make_user()
    late = make_reservation(room, student, MONDAY, t(11), t(12), status="approved")
    early = make_reservation(room, student, MONDAY, t(8), t(10))
    lecture = make_class(room, make_user("instructor"), "monday", t(9), t(10))

    conflicts = ConflictDetector(db.session).check(room.id, MONDAY, t(8), t(13))

    assert [(c.kind, c.id) for c in conflicts] == [
        ("reservation", early.id),
        ("reservation", late.id),
        ("class", lecture.id),
    ]
    assert conflicts[1].status == "approved"


def test_excluded_reservation_is_skipped(make_room, make_user, make_reservation):
    room = make_room()
    own = make_reservation(room, make_user(), MONDAY, t(9), t(11))

    detector = ConflictDetector(db.session)
    assert detector.check(room.id, MONDAY, t(9), t(11), exclude_reservation_id=own.id) == []
    assert len(detector.check(room.id, MONDAY, t(9), t(11))) == 1
