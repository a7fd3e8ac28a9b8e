"""
Environment-aware configuration.
Values come from the process environment (and .env via python-dotenv);
get_config() picks the class for the current APP_ENV.
"""
import os
from dotenv import load_dotenv
from datetime import timedelta

load_dotenv()  # Read .env if present


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class BaseConfig:
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")  # Set a strong key in production
    DEBUG = False
    TESTING = False
    APP_ENV = os.getenv("APP_ENV", "dev")
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///task-api.db")
    SQL_ECHO = _env_bool("SQL_ECHO", "false")

    # CORS: in dev we usually allow '*', in prod supply a comma-separated list in env
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")

    JWT_SECRET = os.getenv("JWT_SECRET", "dev-secret-change-me-to-32-bytes-or-more")
    JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
    JWT_ISSUER = os.getenv("JWT_ISSUER", "task-manager-api")
    JWT_AUDIENCE = os.getenv("JWT_AUDIENCE", "task-manager-client")
    ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.getenv("ACCESS_TOKEN_EXPIRES_MINUTES", "15")))
    REFRESH_TOKEN_EXPIRES = timedelta(days=int(os.getenv("REFRESH_TOKEN_EXPIRES_DAYS", "7")))
    RESET_TOKEN_EXPIRES = timedelta(minutes=int(os.getenv("RESET_TOKEN_EXPIRES_MINUTES", "60")))
    ALLOWED_ROLES = os.getenv("ALLOWED_ROLES", "admin,user").split(",")

    # Sliding window per client IP
    RATELIMIT_ENABLED = _env_bool("RATELIMIT_ENABLED", "true")
    RATELIMIT_WINDOW_SECONDS = int(os.getenv("RATELIMIT_WINDOW_SECONDS", "900"))
    RATELIMIT_DEFAULT = int(os.getenv("RATELIMIT_DEFAULT", "100"))
    RATELIMIT_AUTH = int(os.getenv("RATELIMIT_AUTH", "20"))


class DevelopmentConfig(BaseConfig):
    DEBUG = True


class TestingConfig(BaseConfig):
    TESTING = True
    APP_ENV = "testing"
    DATABASE_URL = "sqlite:///:memory:"
    JWT_SECRET = "testing-secret-key-with-at-least-32-bytes"
    RATELIMIT_ENABLED = False


class ProductionConfig(BaseConfig):
    DEBUG = False
    APP_ENV = "production"


def get_config(name: str | None):
    """
    Select config class.
    - If name is provided, choose by name.
    - Else choose based on APP_ENV (dev/testing/prod).
    """
    env = (name or os.getenv("APP_ENV", "dev")).lower()
    if env in ["prod", "production"]:
        return ProductionConfig
    if env in ["test", "testing"]:
        return TestingConfig
    return DevelopmentConfig
