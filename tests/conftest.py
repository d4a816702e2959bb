from datetime import date, datetime, time
from unittest.mock import MagicMock

import pytest

from app import create_app
from models import db
from models.class_schedule import ClassSchedule
from models.reservation import Reservation
from models.room import Room
from models.user import User
from security.password import hash_password
from services.events import EventDispatcher
from services.locks import RoomLockRegistry
from services.notifier import NotificationEmitter
from services.reservations import ReservationService

PASSWORD = "correct-horse-1"


class FixedClock:
    """Settable stand-in for datetime.now."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": "sqlite:///" + str(tmp_path / "test.db"),
        "BCRYPT_ROUNDS": 4,
    })
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def clock(app):
    fixed = FixedClock(datetime(2025, 3, 1, 8, 0))
    app.extensions["reservation_clock"] = fixed
    return fixed


@pytest.fixture
def make_user(app):
    counter = {"n": 0}

    def _make(role="student", email=None, name=None, **fields):
        counter["n"] += 1
        user = User(
            email=email or f"{role}{counter['n']}@example.edu",
            password_hash=hash_password(PASSWORD),
            name=name or f"{role.title()} {counter['n']}",
            role=role,
            **fields,
        )
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture
def make_room(app):
    counter = {"n": 0}

    def _make(room_number=None, **fields):
        counter["n"] += 1
        room = Room(
            room_number=room_number or f"R-{counter['n']:03d}",
            building=fields.pop("building", "CICT Building"),
            capacity=fields.pop("capacity", 30),
            **fields,
        )
        db.session.add(room)
        db.session.commit()
        return room

    return _make


@pytest.fixture
def make_reservation(app):
    def _make(room, user, day, start, end, status="pending", purpose="Study group", **fields):
        reservation = Reservation(
            room_id=room.id,
            user_id=user.id,
            date=day,
            start_time=start,
            end_time=end,
            purpose=purpose,
            status=status,
            **fields,
        )
        db.session.add(reservation)
        db.session.commit()
        return reservation

    return _make


@pytest.fixture
def make_class(app):
    def _make(room, instructor, day, start, end, course_code="IT101", course_name="Intro to Computing"):
        schedule = ClassSchedule(
            room_id=room.id,
            instructor_id=instructor.id,
            course_code=course_code,
            course_name=course_name,
            day=day,
            start_time=start,
            end_time=end,
        )
        db.session.add(schedule)
        db.session.commit()
        return schedule

    return _make


@pytest.fixture
def emitter():
    return MagicMock()


@pytest.fixture
def service(app, clock, emitter):
    """Service with a mocked notification emitter."""
    return ReservationService(
        db.session,
        locks=RoomLockRegistry(),
        events=EventDispatcher(emitter),
        clock=clock,
    )


@pytest.fixture
def notifying_service(app, clock):
    """Service that writes real notification rows."""
    return ReservationService(
        db.session,
        locks=RoomLockRegistry(),
        events=EventDispatcher(NotificationEmitter(db.session)),
        clock=clock,
    )


@pytest.fixture
def login(client):
    def _login(user):
        resp = client.post("/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200, resp.get_json()
        return {"Authorization": "Bearer " + resp.get_json()["token"]}

    return _login


# common slot helpers
MONDAY = date(2025, 3, 10)


def t(hh, mm=0):
    return time(hh, mm)
