"""
FASE Platform
Environment configuration, selected by ``APP_ENV``.

    app.config.from_object(config[os.getenv("APP_ENV", "development")]())

Production reads everything sensitive from the environment and refuses to
start without a database URL and a stable secret key.
"""

import os
import secrets

PROJECT_ROOT = os.path.abspath(os.path.dirname(os.path.dirname(__file__)))

SQLITE_DEV_URL = "sqlite:///" + os.path.join(PROJECT_ROOT, "instance", "fase_dev.db")
SQLITE_MEMORY_URL = "sqlite:///:memory:"

# Pool sizing shared by every server-backed database
POOL_OPTIONS = {
    "pool_pre_ping": True,
    "pool_size": 5,
    "max_overflow": 10,
    "pool_recycle": 300,
    "pool_timeout": 20,
}


def _env_bool(name: str, default: bool = False) -> bool:
    return os.getenv(name, str(default)).strip().lower() in ("1", "true", "yes")


def database_url(default: str | None = None) -> str | None:
    """``DATABASE_URL`` with the legacy ``postgres://`` scheme upgraded."""
    url = os.getenv("DATABASE_URL")
    if not url:
        return default
    if url.startswith("postgres://"):
        url = "postgresql://" + url[len("postgres://"):]
    return url


class Config:
    SECRET_KEY = os.getenv("SECRET_KEY") or secrets.token_hex(32)
    DEBUG = False
    TESTING = False

    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = dict(POOL_OPTIONS)

    # Bearer tokens are issued by the sign-in service and verified here
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
    JWT_ACCESS_EXPIRES = int(os.getenv("JWT_ACCESS_EXPIRES", "3600"))

    REDIS_URL = os.getenv("REDIS_URL", "memory://")
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
    MAX_CONTENT_LENGTH = 2 * 1024 * 1024

    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100

    # Migrations own the schema unless this is set
    AUTO_CREATE_TABLES = _env_bool("AUTO_CREATE_TABLES")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = database_url(SQLITE_DEV_URL)
    AUTO_CREATE_TABLES = True


class TestingConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URL", SQLITE_MEMORY_URL)
    # in-memory SQLite uses StaticPool, which takes no pool sizing
    SQLALCHEMY_ENGINE_OPTIONS = {}
    SECRET_KEY = "test-secret-key"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-bytes"
    RATELIMIT_ENABLED = False


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = database_url()
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "")
    SQLALCHEMY_ENGINE_OPTIONS = {
        **POOL_OPTIONS,
        "connect_args": {"options": "-c statement_timeout=30000"},
    }

    def __init__(self):
        missing = [
            name for name, value in (
                ("DATABASE_URL", self.SQLALCHEMY_DATABASE_URI),
                ("SECRET_KEY", os.getenv("SECRET_KEY")),
            )
            if not value
        ]
        if missing:
            raise RuntimeError(f"Missing required environment variables: {', '.join(missing)}")


config = {
    "development": DevelopmentConfig,
    "testing": TestingConfig,
    "production": ProductionConfig,
    "default": DevelopmentConfig,
}
