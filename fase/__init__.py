"""
FASE Platform
Flask Application Factory.

Usage:
    from fase import create_app
    app = create_app()           # defaults to APP_ENV or "development"
    app = create_app("testing")  # explicit config
"""

import logging
import os

from flask import Flask, abort, request
from flask_cors import CORS
from flask_limiter import Limiter
from flask_limiter.util import get_remote_address
from flask_migrate import Migrate
from sqlalchemy import engine as _sa_engine
from sqlalchemy import event as _sa_event

from fase.config import config
from fase.middleware.jwt_auth import init_jwt_middleware
from fase.middleware.logging_config import configure_logging
from fase.middleware.rate_limiter import init_rate_limits
from fase.middleware.security_headers import init_security_headers
from fase.middleware.timing import init_request_timing
from fase.models import db
from fase.utils.errors import register_error_handlers

logger = logging.getLogger(__name__)


# ── SQLite FK enforcement (global engine event) ─────────────────────────
@_sa_event.listens_for(_sa_engine.Engine, "connect")
def _enable_sqlite_fk(dbapi_conn, connection_record):
    """Enable foreign key enforcement for SQLite connections."""
    if "sqlite" in type(dbapi_conn).__module__:
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


migrate = Migrate()
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[],                     # limits are declared per blueprint
    storage_uri=os.getenv("REDIS_URL", "memory://"),
)


def create_app(config_name=None):
    """
    Create and configure the Flask application.

    Args:
        config_name: Configuration environment name.
                     One of: "development", "testing", "production".
                     Defaults to APP_ENV env var, or "development" if unset.

    Returns:
        Configured Flask application instance.
    """
    if config_name is None:
        config_name = os.getenv("APP_ENV", "development")

    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config[config_name]())
    os.makedirs(app.instance_path, exist_ok=True)

    # ── Structured logging (must be first) ───────────────────────────────
    configure_logging(app)

    # ── Extensions ───────────────────────────────────────────────────────
    db.init_app(app)
    migrate.init_app(app, db)
    limiter.init_app(app)
    cors_origins = app.config.get("CORS_ORIGINS", "*")
    if cors_origins and cors_origins != "*":
        CORS(app, origins=[o.strip() for o in cors_origins.split(",") if o.strip()])
    else:
        CORS(app)

    # ── Security headers, request timing, JWT identity ───────────────────
    init_security_headers(app)
    init_request_timing(app)
    init_jwt_middleware(app)

    # ── Request guards (Content-Type on mutating API calls) ──────────────
    @app.before_request
    def _guard_request():
        if request.method in ("POST", "PUT", "PATCH") and request.path.startswith("/api/"):
            if request.data and "json" not in (request.content_type or ""):
                abort(415, description="Content-Type must be application/json")

    # ── Import all models so Alembic can detect them ─────────────────────
    from fase.models import activity_log as _activity_log_models  # noqa: F401
    from fase.models import auth as _auth_models                  # noqa: F401
    from fase.models import feedback as _feedback_models          # noqa: F401
    from fase.models import gamification as _gamification_models  # noqa: F401
    from fase.models import planning as _planning_models          # noqa: F401

    if app.config.get("AUTO_CREATE_TABLES"):
        with app.app_context():
            db.create_all()
            app.logger.info("db.create_all() completed")

    # ── Blueprints ───────────────────────────────────────────────────────
    from fase.blueprints import all_blueprints

    for bp in all_blueprints():
        app.register_blueprint(bp)

    # ── Error envelope + rate limits ─────────────────────────────────────
    register_error_handlers(app)
    init_rate_limits(app, limiter)

    # ── CLI commands ─────────────────────────────────────────────────────
    @app.cli.command("seed-demo")
    def seed_demo_cmd():
        """Seed a demo company with one user per role."""
        from fase.services.seed_service import seed_demo
        count = seed_demo()
        logger.info("Seeded %s new demo users.", count)

    return app
