"""
Gamification Blueprint — points, streaks, medals and leaderboard.

Endpoints:
    GET  /api/gamification              — caller's summary (?userId for visible users)
    GET  /api/gamification/medals       — earned medals + progress
    GET  /api/gamification/leaderboard  — company ranking (?limit, 1..50)
    POST /api/gamification              — award points for an action (ADMIN / SUPERADMIN)
"""

from flask import Blueprint

from fase.blueprints import int_arg, json_body
from fase.core.exceptions import AuthorizationDenied
from fase.middleware.auth_required import current_context, require_auth, require_policy
from fase.services import gamification_service
from fase.services.visibility import can_view_user
from fase.utils.errors import api_success
from fase.utils.helpers import FieldErrors

gamification_bp = Blueprint("gamification", __name__, url_prefix="/api/gamification")


def _target(ctx) -> int:
    user_id = int_arg("userId")
    if user_id is None or user_id == ctx.user_id:
        return ctx.user_id
    if not can_view_user(ctx, user_id):
        raise AuthorizationDenied("No autorizado", user_id=ctx.user_id)
    return user_id


@gamification_bp.route("", methods=["GET"])
@require_auth
def summary():
    ctx = current_context()
    return api_success(gamification_service.get_summary(_target(ctx)))


@gamification_bp.route("/medals", methods=["GET"])
@require_auth
def medals():
    ctx = current_context()
    return api_success(gamification_service.get_medals(_target(ctx)))


@gamification_bp.route("/leaderboard", methods=["GET"])
@require_auth
def leaderboard():
    return api_success(
        gamification_service.get_leaderboard(current_context(), int_arg("limit", 10))
    )


@gamification_bp.route("", methods=["POST"])
@require_auth
@require_policy("can_manage_users")
def award_points():
    errs = FieldErrors(json_body())
    user_id = errs.integer("userId", 1)
    action = errs.choice("action", tuple(gamification_service.POINTS_CONFIG))
    points = errs.integer("points", 0, required=False)
    errs.raise_if_any()
    result = gamification_service.grant_points(current_context(), user_id, action, points)
    return api_success(result)
