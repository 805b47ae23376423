"""
FASE Platform
Blueprint registry and shared request helpers.
"""

from flask import request

from fase.core.exceptions import ValidationError
from fase.utils.dates import is_valid_month, is_valid_week


def json_body() -> dict:
    """Request JSON as a dict (empty when missing or not an object)."""
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def int_arg(name: str, default: int | None = None) -> int | None:
    """Integer query parameter; a non-numeric value is a 400."""
    raw = request.args.get(name)
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValidationError(
            f"{name} debe ser un número entero", details={name: raw},
        ) from None


def present_fields(
    data: dict, payload: dict, aliases: dict | None = None, nullable: tuple = (),
) -> dict:
    """Keep only the payload keys whose JSON field was sent (PATCH-style updates).

    *aliases* maps a payload key to its camelCase JSON name when they differ.
    A null is kept only for keys listed in *nullable*.
    """
    aliases = aliases or {}
    return {
        key: value
        for key, value in payload.items()
        if aliases.get(key, key) in data and (value is not None or key in nullable)
    }


def require_month(value: str) -> str:
    if not is_valid_month(value):
        raise ValidationError(
            "El mes debe estar en formato YYYY-MM", details={"month": value},
        )
    return value


def require_week(value: str) -> str:
    if not is_valid_week(value):
        raise ValidationError(
            "Formato de semana invalido (YYYY-Wnn)", details={"week": value},
        )
    return value


def all_blueprints():
    from fase.blueprints.activity_log_bp import activity_log_bp
    from fase.blueprints.big_rock_bp import big_rock_bp
    from fase.blueprints.calendar_bp import calendar_bp
    from fase.blueprints.company_bp import company_bp
    from fase.blueprints.feedback_bp import feedback_bp
    from fase.blueprints.gamification_bp import gamification_bp
    from fase.blueprints.health_bp import health_bp
    from fase.blueprints.key_person_bp import key_person_bp
    from fase.blueprints.planning_bp import planning_bp
    from fase.blueprints.task_bp import activity_bp, key_meeting_bp, tar_bp
    from fase.blueprints.user_bp import user_bp

    return (
        health_bp,
        activity_log_bp,
        big_rock_bp,
        tar_bp,
        activity_bp,
        key_meeting_bp,
        key_person_bp,
        calendar_bp,
        planning_bp,
        feedback_bp,
        gamification_bp,
        user_bp,
        company_bp,
    )
