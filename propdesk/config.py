import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


def env_flag(name, default=False):
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("true", "1", "yes", "on")


def env_number(name, default, cast=int):
    value = os.getenv(name)
    if value in (None, ""):
        return default
    return cast(value)


def database_url():
    """
    Hosted postgres add-ons hand out `postgres://` URLs, which SQLAlchemy 2
    no longer accepts as a dialect name.
    """
    url = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL")
    if url and url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY", "change-this-in-prod")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    # Database
    SQLALCHEMY_DATABASE_URI = database_url()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    # Mail (reminders)
    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = env_number("MAIL_PORT", 587)
    MAIL_USE_TLS = env_flag("MAIL_USE_TLS", True)
    MAIL_USERNAME = os.getenv("MAIL_USERNAME")
    MAIL_PASSWORD = os.getenv("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.getenv("MAIL_DEFAULT_SENDER", MAIL_USERNAME)
    MAIL_SUPPRESS_SEND = env_flag("MAIL_SUPPRESS_SEND")

    # Celery runs on the same redis instance for broker and results
    REDIS_URL = os.getenv("REDIS_URL")
    CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", REDIS_URL)
    CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", REDIS_URL)
    CELERY_TASK_ALWAYS_EAGER = env_flag("CELERY_TASK_ALWAYS_EAGER")
    CELERY_TIMEZONE = os.getenv("CELERY_TIMEZONE", "UTC")

    # Tokens are issued by the auth service; only verified here
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-this-in-prod")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=env_number("JWT_ACCESS_TOKEN_MINUTES", 15))

    # Lease and billing defaults
    DEFAULT_PAYMENT_DUE_DAY = env_number("DEFAULT_PAYMENT_DUE_DAY", 1)
    DEFAULT_LATE_FEE_AMOUNT = env_number("DEFAULT_LATE_FEE_AMOUNT", 50.0, cast=float)
    DEFAULT_LATE_FEE_GRACE_DAYS = env_number("DEFAULT_LATE_FEE_GRACE_DAYS", 5)
    EXPIRING_LEASE_DAYS = env_number("EXPIRING_LEASE_DAYS", 60)


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = "DEBUG"
    SQLALCHEMY_DATABASE_URI = database_url() or "sqlite:///propdesk-dev.db"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    MAIL_SUPPRESS_SEND = env_flag("MAIL_SUPPRESS_SEND", True)


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    MAIL_SUPPRESS_SEND = True
    MAIL_DEFAULT_SENDER = "noreply@propdesk.test"
    CELERY_TASK_ALWAYS_EAGER = True
    JWT_SECRET_KEY = "test-secret-key-with-enough-length-for-hs256"


CONFIGS = {
    "production": Config,
    "development": DevelopmentConfig,
    "testing": TestConfig,
}


def config_for(name):
    try:
        return CONFIGS[(name or "production").lower()]
    except KeyError:
        raise ValueError(f"Unknown configuration {name!r}. Choose one of: {', '.join(CONFIGS)}")
