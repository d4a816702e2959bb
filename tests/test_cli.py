from models import db
from models.room import Room
from models.user import User
from utils.seed import DEMO_ROOMS


def test_seed_demo_is_idempotent(app):
    runner = app.test_cli_runner()

    result = runner.invoke(args=["seed-demo"])
    assert f"{len(DEMO_ROOMS)} rooms added" in result.output
    result = runner.invoke(args=["seed-demo"])
    assert "0 rooms added" in result.output
    assert Room.query.count() == len(DEMO_ROOMS)


def test_make_admin_promotes_existing_user(app, make_user):
    user = make_user(email="dean@example.edu")
    runner = app.test_cli_runner()

    result = runner.invoke(args=["make-admin", "Dean@example.edu"])
    assert "promoted to admin" in result.output
    assert db.session.get(User, user.id).role == "admin"

    result = runner.invoke(args=["make-admin", "nobody@example.edu"])
    assert "User not found" in result.output
