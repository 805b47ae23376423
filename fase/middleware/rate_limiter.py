"""
Rate limiting configuration.

Applies per-blueprint rate limits using Flask-Limiter.
The Limiter instance is created in fase/__init__.py with no default limits;
this module applies granular limits per route category.

Usage:
    from fase.middleware.rate_limiter import init_rate_limits
    init_rate_limits(app, limiter)
"""

import logging

from flask import g, request as flask_request

logger = logging.getLogger(__name__)

READ_LIMIT = "200/minute"
WRITE_LIMIT = "60/minute"
ADMIN_LIMIT = "30/minute"

# Blueprints that only administrators reach
_ADMIN_BLUEPRINTS = ("users", "companies")

# Everything else that serves the planning UI
_API_BLUEPRINTS = (
    "activity_logs",
    "big_rocks",
    "tars",
    "activities",
    "key_meetings",
    "key_people",
    "calendar",
    "planning",
    "feedback",
    "gamification",
)


def _user_or_ip_key():
    """Rate limit key: authenticated user id if known, else remote IP."""
    user_id = getattr(g, "jwt_user_id", None)
    if user_id:
        return f"user:{user_id}"
    return flask_request.remote_addr or "unknown"


def _method_limit():
    """Reads get the generous limit, mutations the tighter one."""
    if flask_request.method in ("GET", "HEAD", "OPTIONS"):
        return READ_LIMIT
    return WRITE_LIMIT


def init_rate_limits(app, limiter):
    """
    Apply rate limits to API blueprints.

    Limits (per user, or per remote IP when anonymous):
        - Admin endpoints:  30/minute
        - Write endpoints:  60/minute  (POST/PUT/DELETE)
        - Read endpoints:   200/minute
        - Health check:     exempt

    Rate limiting is disabled in testing mode.
    """
    if app.config.get("TESTING"):
        app.logger.info("Rate limiter disabled (TESTING=True)")
        return

    for name in _ADMIN_BLUEPRINTS:
        bp = app.blueprints.get(name)
        if bp:
            limiter.limit(ADMIN_LIMIT, key_func=_user_or_ip_key)(bp)

    for name in _API_BLUEPRINTS:
        bp = app.blueprints.get(name)
        if not bp:
            continue
        limiter.limit(_method_limit, key_func=_user_or_ip_key)(bp)

    health = app.blueprints.get("health")
    if health:
        limiter.exempt(health)

    logger.info("Rate limits applied to %d blueprints",
                len(_ADMIN_BLUEPRINTS) + len(_API_BLUEPRINTS))
