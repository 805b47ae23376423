"""
Calendar Blueprint — month / week / day projections and month opening.

Endpoints:
    GET  /api/calendar/month/<YYYY-MM>     — month grid (?userId)
    GET  /api/calendar/week/<YYYY-Wnn>     — ISO week (?userId)
    GET  /api/calendar/day/<YYYY-MM-DD>    — single day (?userId)
    POST /api/months/<YYYY-MM>/open        — open a future month for planning
"""

from datetime import date

from flask import Blueprint

from fase.blueprints import int_arg, require_month, require_week
from fase.core.exceptions import ValidationError
from fase.middleware.auth_required import current_context, require_auth
from fase.services import calendar_service
from fase.utils.errors import api_success

calendar_bp = Blueprint("calendar", __name__, url_prefix="/api")


@calendar_bp.route("/calendar/month/<month>", methods=["GET"])
@require_auth
def month_view(month):
    data = calendar_service.get_month_calendar(
        current_context(), require_month(month), user_id=int_arg("userId"),
    )
    return api_success(data)


@calendar_bp.route("/calendar/week/<week>", methods=["GET"])
@require_auth
def week_view(week):
    data = calendar_service.get_week_calendar(
        current_context(), require_week(week), user_id=int_arg("userId"),
    )
    return api_success(data)


@calendar_bp.route("/calendar/day/<day>", methods=["GET"])
@require_auth
def day_view(day):
    try:
        parsed = date.fromisoformat(day)
    except ValueError:
        raise ValidationError(
            "La fecha debe estar en formato YYYY-MM-DD", details={"date": day},
        ) from None
    data = calendar_service.get_day_calendar(current_context(), parsed, user_id=int_arg("userId"))
    return api_success(data)


@calendar_bp.route("/months/<month>/open", methods=["POST"])
@require_auth
def open_month(month):
    row = calendar_service.open_month(current_context(), require_month(month))
    return api_success(row.to_dict(), status=201)
