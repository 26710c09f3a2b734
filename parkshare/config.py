import os
from datetime import timedelta
from decimal import Decimal


def normalize_database_url(raw_url: str) -> str:
    if raw_url.startswith("postgres://"):
        return raw_url.replace("postgres://", "postgresql://", 1)
    return raw_url


def _optional_int(name):
    raw = os.getenv(name, "").strip()
    return int(raw) if raw else None


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-unsafe-key")
    SQLALCHEMY_DATABASE_URI = normalize_database_url(
        os.getenv("DATABASE_URL", "sqlite:///instance/parkshare.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
        "pool_recycle": 300,
    }
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")
    RATELIMIT_DEFAULT = os.getenv("RATELIMIT_DEFAULT", "200 per day;80 per hour")
    QUOTE_RATE_LIMIT = os.getenv("QUOTE_RATE_LIMIT", "60 per minute")
    SENTRY_DSN = os.getenv("SENTRY_DSN")

    # Revenue
    COMMISSION_RATE = Decimal(os.getenv("COMMISSION_RATE", "0.15"))
    PAYOUT_PAYMENT_METHOD = os.getenv("PAYOUT_PAYMENT_METHOD", "bank_transfer")
    UNPROCESSED_COMMISSION_WARN_THRESHOLD = int(os.getenv("UNPROCESSED_COMMISSION_WARN_THRESHOLD", "100"))

    # Pricing
    PRICING_MODE = os.getenv("PRICING_MODE", "proportional")
    MIN_BILLABLE_HOURS = Decimal(os.getenv("MIN_BILLABLE_HOURS", "1"))
    DEFAULT_HOURLY_RATE = Decimal(os.getenv("DEFAULT_HOURLY_RATE", "10"))
    MAX_BILLABLE_HOURS = int(os.getenv("MAX_BILLABLE_HOURS", "8760"))

    # Lifecycle
    APPROVAL_TIMEOUT_MINUTES = _optional_int("APPROVAL_TIMEOUT_MINUTES")
    SWEEPER_ENABLED = os.getenv("SWEEPER_ENABLED", "true").lower() == "true"
    SWEEP_INTERVAL = timedelta(seconds=int(os.getenv("SWEEP_INTERVAL_SECONDS", "30")))


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class ProductionConfig(BaseConfig):
    DEBUG = False
    TESTING = False


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS = {}
    RATELIMIT_ENABLED = False
    SWEEPER_ENABLED = False
    APPROVAL_TIMEOUT_MINUTES = None
    PRICING_MODE = "proportional"
    COMMISSION_RATE = Decimal("0.15")
    MIN_BILLABLE_HOURS = Decimal("1")
    DEFAULT_HOURLY_RATE = Decimal("10")


config_by_env = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
