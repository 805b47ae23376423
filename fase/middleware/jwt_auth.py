"""
JWT Auth Middleware — parses the bearer token, sets g.jwt_*.

This hook only identifies the caller.  It never blocks: endpoints decorated
with ``require_auth`` turn a missing or invalid identity into a 401.

    Authorization: Bearer <token>  →  g.jwt_user_id, g.jwt_company_id
    invalid / expired token        →  g.jwt_error
"""

import logging

import jwt as pyjwt
from flask import g, request

from fase.services.jwt_service import decode_access_token

logger = logging.getLogger(__name__)

# Paths that skip JWT parsing entirely
JWT_SKIP_PREFIXES = (
    "/api/health",
    "/static/",
)


def init_jwt_middleware(app):
    """Register JWT middleware as a before_request hook."""

    @app.before_request
    def _jwt_auth():
        g.jwt_user_id = None
        g.jwt_company_id = None
        g.jwt_error = None

        path = request.path
        if not path.startswith("/api/"):
            return
        for prefix in JWT_SKIP_PREFIXES:
            if path.startswith(prefix):
                return

        auth_header = request.headers.get("Authorization", "")
        if not auth_header.startswith("Bearer "):
            return

        token = auth_header[7:]  # Strip "Bearer "

        try:
            payload = decode_access_token(token)
            g.jwt_user_id = int(payload["sub"])
            g.jwt_company_id = payload.get("company_id")
        except pyjwt.ExpiredSignatureError:
            g.jwt_error = "expired"
        except (pyjwt.InvalidTokenError, KeyError, ValueError) as exc:
            logger.info("Rejected bearer token on %s: %s", path, exc)
            g.jwt_error = "invalid"
