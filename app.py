import click
from flask import Flask, g, jsonify, request
from flask_migrate import Migrate

from config import Config
from models import db
from models.user import User
from routes import ALL_BLUEPRINTS
from security.csrf import STATE_CHANGING_METHODS, cookie_authenticated, require_csrf
from services.errors import ReservationError
from services.locks import RoomLockRegistry
from utils.auth_context import load_current_user
from utils.seed import seed_rooms


def create_app(overrides=None):
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    # Register routes
    for bp in ALL_BLUEPRINTS:
        app.register_blueprint(bp)

    # Database init
    db.init_app(app)

    # Migrations
    Migrate(app, db)

    # Per-room mutex shared by every request in this process
    RoomLockRegistry(app)

    @app.before_request
    def _load_user():
        load_current_user()

    CSRF_EXEMPT_PATHS = {
        "/auth/login",
        "/auth/register",
        "/health",
    }

    @app.before_request
    def _csrf_protect():
        # only cookie sessions need the double-submit token
        if request.method not in STATE_CHANGING_METHODS or request.path in CSRF_EXEMPT_PATHS:
            return None
        if getattr(g, "user", None) is not None and cookie_authenticated():
            return require_csrf()
        return None

    @app.errorhandler(ReservationError)
    def _reservation_error(err):
        db.session.rollback()
        if err.status_code >= 500:
            app.logger.error("Request failed: %s", err.message)
        return jsonify(err.to_dict()), err.status_code

    @app.after_request
    def add_security_headers(resp):
        resp.headers["X-Content-Type-Options"] = "nosniff"
        resp.headers["X-Frame-Options"] = "DENY"
        resp.headers["Referrer-Policy"] = "no-referrer"
        resp.headers["Content-Security-Policy"] = "default-src 'none'; frame-ancestors 'none';"
        return resp

    register_cli(app)

    return app


def register_cli(app):
    @app.cli.command("make-admin")
    @click.argument("email")
    def make_admin(email):
        """Promote a user to admin by email (bootstrap)."""
        user = User.query.filter_by(email=email.strip().lower()).first()
        if not user:
            click.echo("User not found")
            return

        user.role = "admin"
        user.is_active = True
        db.session.commit()
        click.echo(f"{user.email} promoted to admin")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Insert demo rooms."""
        added = seed_rooms()
        click.echo(f"{added} rooms added")


if __name__ == "__main__":
    app = create_app()
    # Run locally
    app.run(host="127.0.0.1", port=5002)
