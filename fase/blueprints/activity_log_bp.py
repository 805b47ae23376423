"""
Activity Log Blueprint — paginated audit trail filtered by role visibility.

Endpoints:
    GET /api/activity-logs                      — page of logs (?page&limit&entityType&action&userId)
    GET /api/activity-logs/viewable-users       — users the caller may filter by
    GET /api/activity-logs/supervisee-changes   — recent changes by direct supervisees (?since)
"""

from flask import Blueprint, request

from fase.blueprints import int_arg
from fase.core.exceptions import ValidationError
from fase.middleware.auth_required import current_context, require_auth
from fase.services import activity_log_service
from fase.services.visibility import viewable_users
from fase.utils.errors import api_success
from fase.utils.helpers import parse_datetime

activity_log_bp = Blueprint("activity_logs", __name__, url_prefix="/api/activity-logs")


@activity_log_bp.route("", methods=["GET"])
@require_auth
def list_activity_logs():
    result = activity_log_service.get_activity_logs(
        current_context(),
        page=int_arg("page", 1),
        limit=int_arg("limit", activity_log_service.DEFAULT_LIMIT),
        entity_type=request.args.get("entityType") or None,
        action=request.args.get("action") or None,
        user_id=int_arg("userId"),
    )
    return api_success(result)


@activity_log_bp.route("/viewable-users", methods=["GET"])
@require_auth
def list_viewable_users():
    return api_success(viewable_users(current_context()))


@activity_log_bp.route("/supervisee-changes", methods=["GET"])
@require_auth
def supervisee_changes():
    since = None
    raw = request.args.get("since")
    if raw:
        since = parse_datetime(raw)
        if since is None:
            raise ValidationError("since debe ser una fecha válida", details={"since": raw})
    return api_success(activity_log_service.get_supervisee_changes(current_context(), since))
