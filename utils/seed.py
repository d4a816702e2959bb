from models import db
from models.room import Room

DEMO_ROOMS = [
    {"room_number": "CL-101", "building": "CICT Building", "capacity": 40, "type": "classroom",
     "equipment": "Projector, Whiteboard"},
    {"room_number": "CL-102", "building": "CICT Building", "capacity": 40, "type": "classroom",
     "equipment": "Projector, Whiteboard"},
    {"room_number": "LAB-201", "building": "CICT Building", "capacity": 30, "type": "lab",
     "equipment": "30 Workstations, Projector"},
    {"room_number": "CONF-301", "building": "Admin Building", "capacity": 15, "type": "conference",
     "equipment": "TV Display, Conference Phone"},
]


def seed_rooms():
    """Insert the demo rooms that are missing. Returns how many were added."""
    existing = {r.room_number for r in Room.query.all()}
    added = 0
    for fields in DEMO_ROOMS:
        if fields["room_number"] not in existing:
            db.session.add(Room(**fields))
            added += 1
    db.session.commit()
    return added
