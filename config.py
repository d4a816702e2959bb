import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))

class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to app.py as roomres.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "roomres.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Cookie fallback for the bearer token
    AUTH_COOKIE_NAME = "roomres_session"

    # 8 hours session lifetime
    SESSION_LIFETIME_SECONDS = int(os.getenv("SESSION_LIFETIME_SECONDS", str(8 * 60 * 60)))

    # Idle timeout: 30 minutes
    IDLE_TIMEOUT_SECONDS = int(os.getenv("IDLE_TIMEOUT_SECONDS", str(30 * 60)))

    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = os.getenv("SESSION_COOKIE_SECURE", "false").lower() == "true"

    # Passwords
    BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))
    PASSWORD_MIN_LENGTH = int(os.getenv("PASSWORD_MIN_LENGTH", "8"))

    # Notification lifetime per reservation event kind (hours); others default to 48
    NOTIFICATION_TTL_HOURS = {"created": 72, "approved": 48, "rejected": 48, "cancelled": 48, "updated": 48}

    # Instructors must tag reservations with course/year/block
    INSTRUCTOR_CLASSIFICATION_REQUIRED = (
        os.getenv("INSTRUCTOR_CLASSIFICATION_REQUIRED", "true").lower() == "true"
    )

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
