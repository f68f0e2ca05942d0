# zenith_backend/config.py
import os
from dotenv import load_dotenv

BASE_DIR = os.path.abspath(os.path.dirname(__file__))
load_dotenv(os.path.join(BASE_DIR, ".env"))

INSTANCE_DIR = os.path.join(BASE_DIR, "instance")


def _env(key: str, default=None):
    v = os.getenv(key)
    return v if v not in (None, "", "None") else default


def _env_bool(key: str, default: bool = False) -> bool:
    v = os.getenv(key)
    if v in (None, "", "None"):
        return default
    return str(v).strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _env_list(key: str, default: list[str]) -> list[str]:
    v = _env(key)
    if v is None:
        return list(default)
    return [part.strip() for part in v.split(",") if part.strip()]


def _resolve_sqlite_uri(db_url: str | None) -> str:
    if not db_url:
        os.makedirs(INSTANCE_DIR, exist_ok=True)
        db_path = os.path.join(INSTANCE_DIR, "zenith.db")
        return "sqlite:///" + db_path.replace("\\", "/")

    if db_url.startswith("sqlite:///"):
        raw_path = db_url.replace("sqlite:///", "", 1)
        if not os.path.isabs(raw_path):
            raw_path = os.path.join(BASE_DIR, raw_path)
        db_path = os.path.normpath(raw_path)
        os.makedirs(os.path.dirname(db_path), exist_ok=True)
        return "sqlite:///" + db_path.replace("\\", "/")

    return db_url


class Config:
    SECRET_KEY = _env("SECRET_KEY", "dev-please-change-me")

    SQLALCHEMY_DATABASE_URI = _resolve_sqlite_uri(_env("DATABASE_URL"))
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # SQLite waits for the writer lock instead of failing with "database is locked"
    SQLALCHEMY_ENGINE_OPTIONS = (
        {"connect_args": {"timeout": 30, "check_same_thread": False}}
        if SQLALCHEMY_DATABASE_URI.startswith("sqlite") else {}
    )
    JSON_AS_ASCII = False

    UPLOAD_FOLDER = _env("UPLOAD_FOLDER", os.path.join(BASE_DIR, "uploads"))
    MAX_CONTENT_LENGTH = int(_env("MAX_CONTENT_LENGTH", 2 * 1024 * 1024 * 1024))

    CORS_ORIGINS = _env_list("CORS_ORIGINS", ["http://localhost:3000", "http://localhost:5173"])

    MAIL_SERVER = _env("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(_env("MAIL_PORT", 465))
    MAIL_USE_SSL = _env_bool("MAIL_USE_SSL", True)
    MAIL_USE_TLS = _env_bool("MAIL_USE_TLS", False)
    MAIL_USERNAME = _env("MAIL_USERNAME")
    MAIL_PASSWORD = _env("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = _env("MAIL_DEFAULT_SENDER", _env("MAIL_USERNAME"))
    MAIL_SUPPRESS_SEND = _env_bool("MAIL_SUPPRESS_SEND", False)
    MAIL_DEBUG = _env_bool("MAIL_DEBUG", False)
    MAIL_CHECK_DNS = _env_bool("MAIL_CHECK_DNS", True)

    STUDIO_NAME = _env("STUDIO_NAME", "Zenith Studio")
    ORDER_NOTIFY_EMAIL = _env("ORDER_NOTIFY_EMAIL")

    RAZORPAY_KEY_ID = _env("RAZORPAY_KEY_ID")
    RAZORPAY_KEY_SECRET = _env("RAZORPAY_KEY_SECRET")
    RAZORPAY_API_URL = _env("RAZORPAY_API_URL", "https://api.razorpay.com/v1")
    RAZORPAY_TIMEOUT = int(_env("RAZORPAY_TIMEOUT", 10))

    UPI_VPA = _env("UPI_VPA")
    UPI_PAYEE_NAME = _env("UPI_PAYEE_NAME", "Zenith Studio")

    SERIAL_PREFIX = _env("SERIAL_PREFIX", "ZN")
    DEFAULT_DELIVERY_CHARGE = _env("DEFAULT_DELIVERY_CHARGE", "110.00")

    OTP_TTL_SECONDS = int(_env("OTP_TTL_SECONDS", 600))
    OTP_MAX_ATTEMPTS = int(_env("OTP_MAX_ATTEMPTS", 5))
    NOTIFY_ASYNC = _env_bool("NOTIFY_ASYNC", True)


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {"connect_args": {"timeout": 30, "check_same_thread": False}}
    BCRYPT_LOG_ROUNDS = 4
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "studio@example.com"
    MAIL_CHECK_DNS = False
    NOTIFY_ASYNC = False
    RAZORPAY_KEY_ID = "rzp_test_key"
    RAZORPAY_KEY_SECRET = "rzp_test_secret"
    UPI_VPA = "zenith@upi"
