from datetime import datetime

from models import db
from models.audit_log import AuditLog
from models.reservation import Reservation

from conftest import MONDAY, t


def slot(room, start="09:00", end="11:00", **extra):
    body = {"room_id": room.id, "date": MONDAY.isoformat(), "start_time": start, "end_time": end,
            "purpose": "Capstone meeting"}
    body.update(extra)
    return body


def test_requires_login(client):
    assert client.get("/reservations").status_code == 401
    assert client.post("/reservations", json={}).status_code == 401


def test_create_then_conflict(client, clock, make_user, make_room, login):
    room = make_room()
    first = client.post("/reservations", headers=login(make_user()), json=slot(room))
    assert first.status_code == 201
    data = first.get_json()["data"]
    assert data["status"] == "pending"
    assert data["start_time"] == "09:00:00"
    assert AuditLog.query.filter_by(action="RESERVATION_CREATE").count() == 1

    second = client.post("/reservations", headers=login(make_user()), json=slot(room, "10:00", "10:30"))
    assert second.status_code == 409
    body = second.get_json()
    assert [c["id"] for c in body["conflicts"]] == [data["id"]]
    assert body["conflicts"][0]["type"] == "reservation"


def test_invalid_input_is_400(client, clock, make_user, make_room, login):
    headers = login(make_user())
    room = make_room()

    resp = client.post("/reservations", headers=headers, json=slot(room, "11:00", "09:00"))
    assert resp.status_code == 400
    assert resp.get_json()["fields"] == {"end_time": "must be after start_time"}

    resp = client.post("/reservations", headers=headers, json=slot(room, date="10/03/2025"))
    assert resp.status_code == 400

    resp = client.post("/reservations", headers=headers, json={"room_id": room.id})
    assert resp.status_code == 400
    assert set(resp.get_json()["fields"]) == {"date", "start_time", "end_time"}


def test_check_conflict_reports_classes(client, clock, make_user, make_room, make_class, login):
    room = make_room()
    make_class(room, make_user("instructor"), "monday", t(9), t(10))

    resp = client.post("/reservations/check-conflict", headers=login(make_user()),
                       json=slot(room, "09:30", "10:30"))
    assert resp.status_code == 200
    conflicts = resp.get_json()["conflicts"]
    assert len(conflicts) == 1
    assert conflicts[0]["type"] == "class"

    resp = client.post("/reservations/check-conflict", headers=login(make_user()),
                       json=slot(room, "10:00", "11:00"))
    assert resp.get_json()["conflicts"] == []


def test_admin_approves(client, clock, make_user, make_room, make_reservation, login):
    owner = make_user()
    reservation = make_reservation(make_room(), owner, MONDAY, t(9), t(11))
    reservation_id = reservation.id

    resp = client.patch(f"/reservations/{reservation_id}/status", headers=login(make_user("admin")),
                        json={"status": "approved", "admin_notes": "Enjoy"})
    assert resp.status_code == 200
    assert resp.get_json()["message"] == "Reservation approved successfully"
    assert resp.get_json()["data"]["admin_notes"] == "Enjoy"

    resp = client.get("/notifications", headers=login(owner))
    assert [n["type"] for n in resp.get_json()["data"]] == ["reservation_approved"]


def test_status_errors(client, clock, make_user, make_room, make_reservation, login):
    owner = make_user()
    reservation = make_reservation(make_room(), owner, MONDAY, t(9), t(11), status="cancelled")
    url = f"/reservations/{reservation.id}/status"

    resp = client.patch(url, headers=login(owner), json={"status": "approved"})
    assert resp.status_code == 403

    resp = client.patch(url, headers=login(make_user("admin")), json={"status": "approved"})
    assert resp.status_code == 400
    assert resp.get_json()["current_status"] == "cancelled"

    resp = client.patch(url, headers=login(owner), json={"status": "archived"})
    assert resp.status_code == 400

    assert client.patch("/reservations/999/status", headers=login(owner),
                        json={"status": "cancelled"}).status_code == 404


def test_other_users_reservation_is_hidden(client, clock, make_user, make_room, make_reservation, login):
    reservation = make_reservation(make_room(), make_user(), MONDAY, t(9), t(11))

    assert client.get(f"/reservations/{reservation.id}", headers=login(make_user())).status_code == 404
    resp = client.get(f"/reservations/{reservation.id}", headers=login(make_user("admin")))
    assert resp.status_code == 200


def test_list_filters(client, clock, make_user, make_room, make_reservation, login):
    owner = make_user()
    room = make_room()
    make_reservation(room, owner, MONDAY, t(9), t(10))
    make_reservation(room, owner, MONDAY, t(10), t(11), status="approved")
    headers = login(owner)

    assert len(client.get("/reservations", headers=headers).get_json()["data"]) == 2
    resp = client.get("/reservations?status=approved", headers=headers)
    assert [r["status"] for r in resp.get_json()["data"]] == ["approved"]
    assert client.get("/reservations?status=bogus", headers=headers).status_code == 400


def test_owner_edits_pending(client, clock, make_user, make_room, make_reservation, login):
    owner = make_user()
    reservation = make_reservation(make_room(), owner, MONDAY, t(9), t(10))

    resp = client.patch(f"/reservations/{reservation.id}", headers=login(owner),
                        json={"purpose": "Thesis writing", "end_time": "10:30"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["purpose"] == "Thesis writing"
    assert resp.get_json()["data"]["end_time"] == "10:30:00"

    resp = client.patch(f"/reservations/{reservation.id}", headers=login(owner), json={"status": "approved"})
    assert resp.status_code == 400


def test_history_deletion(client, clock, make_user, make_room, make_reservation, login):
    owner = make_user()
    headers = login(owner)
    reservation = make_reservation(make_room(), owner, MONDAY, t(9), t(11), status="approved")
    reservation_id = reservation.id

    clock.now = datetime(2025, 3, 10, 10, 0)
    resp = client.get(f"/reservations/{reservation_id}/deletable", headers=headers)
    assert resp.get_json()["deletable"] is False
    assert "Upcoming approved" in resp.get_json()["reason"]
    assert client.delete(f"/reservations/history/{reservation_id}", headers=headers).status_code == 400

    clock.now = datetime(2025, 3, 10, 11, 5)
    resp = client.get(f"/reservations/{reservation_id}", headers=headers)
    assert resp.get_json()["data"]["status"] == "approved"
    assert client.get(f"/reservations/{reservation_id}/deletable", headers=headers).get_json()["deletable"] is True
    assert client.delete(f"/reservations/history/{reservation_id}", headers=headers).status_code == 200
    assert db.session.get(Reservation, reservation_id) is None


def test_purge_history(client, clock, make_user, make_room, make_reservation, login):
    owner = make_user()
    room = make_room()
    make_reservation(room, owner, MONDAY, t(9), t(10), status="cancelled")
    make_reservation(room, owner, MONDAY, t(10), t(11), status="rejected")
    make_reservation(room, owner, MONDAY, t(11), t(12))

    resp = client.delete("/reservations/history", headers=login(owner))
    assert resp.status_code == 200
    assert resp.get_json()["deleted_count"] == 2
    assert Reservation.query.count() == 1


def test_student_schedule(client, clock, make_user, make_room, make_class, make_reservation, login):
    room = make_room()
    prof = make_user("instructor", department="BSIT", year="3", block="A")
    other = make_user("instructor", department="BSIT", year="3", block="B")
    make_class(room, prof, "wednesday", t(13), t(15), course_name="Networks")
    make_class(room, prof, "monday", t(9), t(10), course_name="Databases")
    make_class(room, other, "monday", t(11), t(12), course_name="Elsewhere")
    make_reservation(room, prof, MONDAY.replace(year=2099), t(9), t(10), status="approved",
                     course="BSIT", year="3", block="A")

    student = make_user(department="BSIT", year="3", block="A")
    resp = client.get("/reservations/student-schedule", headers=login(student))
    assert resp.status_code == 200
    body = resp.get_json()
    assert [c["course_name"] for c in body["class_schedules"]] == ["Databases", "Networks"]
    assert len(body["reservations"]) == 1

    assert client.get("/reservations/student-schedule", headers=login(prof)).status_code == 403


def test_instructor_cannot_approve_own_reservation(client, clock, make_user, make_room, make_reservation, login):
    prof = make_user("instructor")
    reservation = make_reservation(make_room(), prof, MONDAY, t(9), t(11), course="BSIT", year="3", block="A")
    reservation_id = reservation.id
    headers = login(prof)

    for status in ("approved", "rejected"):
        resp = client.patch(f"/reservations/{reservation_id}/status", headers=headers, json={"status": status})
        assert resp.status_code == 403
    assert db.session.get(Reservation, reservation_id).status == "pending"


def test_effective_status_follows_configured_clock(client, clock, make_user, make_room, make_reservation, login):
    """Serialized status and the deletion verdict agree on what time it is."""
    owner = make_user()
    headers = login(owner)
    reservation = make_reservation(make_room(), owner, MONDAY, t(9), t(11), status="approved")
    reservation_id = reservation.id

    clock.now = datetime(2025, 3, 1, 8, 0)
    data = client.get(f"/reservations/{reservation_id}", headers=headers).get_json()["data"]
    assert data["effective_status"] == "approved"
    assert client.get(f"/reservations/{reservation_id}/deletable", headers=headers).get_json()["deletable"] is False

    clock.now = datetime(2025, 3, 10, 12, 0)
    listed = client.get("/reservations", headers=headers).get_json()["data"]
    assert [r["effective_status"] for r in listed] == ["completed"]
    assert client.get(f"/reservations/{reservation_id}/deletable", headers=headers).get_json()["deletable"] is True


def test_student_schedule_lists_matching_instructors(client, clock, make_user, login):
    make_user("instructor", name="Prof. Match", department="BSIT", year="3", block="A")
    make_user("instructor", name="Prof. Other", department="BSIT", year="3", block="B")
    student = make_user(department="BSIT", year="3", block="A")

    body = client.get("/reservations/student-schedule", headers=login(student)).get_json()
    assert [i["name"] for i in body["instructors"]] == ["Prof. Match"]
