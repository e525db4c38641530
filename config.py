import os

basedir = os.path.abspath(os.path.dirname(__file__))

class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev_secret_key_change_me")

    DB_PATH = os.environ.get("DB_PATH", os.path.join(basedir, "ledger.db"))
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", f"sqlite:///{DB_PATH}")

    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session cookie hardening (tune for production)
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    LOG_DIR = os.environ.get("LOG_DIR", os.path.join(basedir, "logs"))
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Business rules
    ATTENDANCE_SCAN_COOLDOWN_MINUTES = int(os.environ.get("ATTENDANCE_SCAN_COOLDOWN_MINUTES", 10))
    DEFAULT_WORKER_BONUS = os.environ.get("DEFAULT_WORKER_BONUS", "5000")
    # date.weekday(): Thursday, Friday
    WEEKEND_DAYS = (3, 4)
    CASHBOX_CURRENCIES = ("CNY", "USD")

    # a PENDING key older than this is treated as applied with its response lost
    IDEMPOTENCY_PENDING_TIMEOUT_SECONDS = int(os.environ.get("IDEMPOTENCY_PENDING_TIMEOUT_SECONDS", 60))


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    LOG_LEVEL = "WARNING"
