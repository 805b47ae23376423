"""
Health check blueprint.

Endpoints:
    GET /api/health  — liveness with database round-trip (no auth)
"""

import logging
import time

from flask import Blueprint, current_app
from sqlalchemy.exc import SQLAlchemyError

from fase.models import db
from fase.utils.errors import E, api_error, api_success

logger = logging.getLogger(__name__)

health_bp = Blueprint("health", __name__, url_prefix="/api")


@health_bp.route("/health", methods=["GET"])
def health():
    checks = {}
    status = 200

    # ── Database ─────────────────────────────────────────────────────
    try:
        t0 = time.perf_counter()
        db.session.execute(db.text("SELECT 1"))
        checks["database"] = {
            "status": "ok",
            "latency_ms": round((time.perf_counter() - t0) * 1000, 1),
        }
    except SQLAlchemyError as exc:
        checks["database"] = {"status": "error"}
        status = 503
        logger.error("Health check — database failed: %s", exc)

    checks["app"] = {"name": "FASE Platform", "testing": current_app.testing}
    if status != 200:
        return api_error(E.INTERNAL, "Servicio degradado", status=status, details=checks)
    return api_success({"status": "ok", "checks": checks})
